# /*
# Copyright 2026 The k8s-hook Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Looking up an image's entrypoint when a container step declares none."""

from __future__ import annotations

import docker

from k8s_hook import logger
from k8s_hook.constants import IMAGE_INSPECT_TIMEOUT_SECONDS
from k8s_hook.errors import InspectionError
from k8s_hook.types import RegistryCredentials


class ImageInspector:
    """Reads image configuration through the local Docker daemon.

    Args:
        docker_client: Client to use, or None to connect from the environment.
        timeout: Docker API timeout in seconds.
    """

    def __init__(self, docker_client: docker.DockerClient | None = None,
                 timeout: int = IMAGE_INSPECT_TIMEOUT_SECONDS) -> None:
        self._client = docker_client
        self._timeout = timeout

    def get_entrypoint(self, image_ref: str, registry: RegistryCredentials | None = None) -> str:
        """Return the image entrypoint, space-joined.

        An empty string means the image declares no entrypoint; callers fall
        back to their configured default then.

        Raises:
            InspectionError: If the image cannot be pulled or inspected.
        """
        auth_config = None
        if registry is not None and registry.username:
            auth_config = {"username": registry.username, "password": registry.password}
            logger.debug("Using registry authentication for %s", registry.username)

        owns_client = self._client is None
        try:
            client = self._client or docker.from_env(timeout=self._timeout)
        except docker.errors.DockerException as err:
            raise InspectionError(f"Failed to connect to Docker: {err}") from err
        try:
            image = client.images.pull(image_ref, auth_config=auth_config)
            entrypoint = (image.attrs.get("Config") or {}).get("Entrypoint") or []
        except docker.errors.DockerException as err:
            raise InspectionError(f"Failed to inspect image {image_ref}: {err}") from err
        finally:
            if owns_client:
                client.close()

        if isinstance(entrypoint, str):
            entrypoint = [entrypoint]
        if not entrypoint:
            logger.debug("Image %s has no entrypoint defined", image_ref)
            return ""
        result = " ".join(entrypoint)
        logger.debug("Found entrypoint %r in image %s", result, image_ref)
        return result
