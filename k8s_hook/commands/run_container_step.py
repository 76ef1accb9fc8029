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

"""run_container_step: run one step in its own short-lived pod."""

from __future__ import annotations

from k8s_hook import logger
from k8s_hook.client import HookClient
from k8s_hook.commands import delete_quietly, step_exit_status
from k8s_hook.config import HookConfig
from k8s_hook.errors import (
    HookError,
    InspectionError,
    MissingEntrypointError,
    PodNotReadyError,
    UnsupportedFeatureError,
)
from k8s_hook.inspector import ImageInspector
from k8s_hook.pod import PodPurpose
from k8s_hook.types import ContainerDefinition, ContainerHookInput


def resolve_entrypoint(step: ContainerDefinition, cfg: HookConfig,
                       inspector: ImageInspector | None = None) -> str:
    """Pick the entrypoint for a container step.

    Order: the step's own entrypoint, the image's (when image inspection is
    enabled), then ``ENV_HOOK_CONTAINER_STEP_ENTRYPOINT``.

    Raises:
        MissingEntrypointError: If none of them is set.
    """
    if step.entry_point:
        return step.entry_point

    if cfg.inspect_image:
        logger.info("Image inspection enabled, looking up entrypoint of %s", step.image)
        inspector = inspector or ImageInspector()
        try:
            entrypoint = inspector.get_entrypoint(step.image, step.registry)
        except InspectionError as err:
            logger.warning("Failed to inspect image for entrypoint, falling back to environment: %s", err)
            entrypoint = ""
        if entrypoint:
            logger.info("Using entrypoint %r from image %s", entrypoint, step.image)
            return entrypoint
        logger.debug("Image %s has no entrypoint defined, falling back to environment", step.image)

    if cfg.container_step_entrypoint:
        logger.info("Entrypoint not set, using ENV_HOOK_CONTAINER_STEP_ENTRYPOINT %r",
                    cfg.container_step_entrypoint)
        return cfg.container_step_entrypoint

    raise MissingEntrypointError("Self hosted container steps require an entrypoint to be set")


def run_container_step(hook_input: ContainerHookInput, client: HookClient, cfg: HookConfig,
                       inspector: ImageInspector | None = None) -> int:
    """Create a step pod, run the step in it and delete it again.

    A step failure is reported before any cleanup failure.

    Returns:
        Process exit status; the step's own exit code when it ran.
    """
    step = hook_input.args
    try:
        if step.dockerfile:
            raise UnsupportedFeatureError("Self hosted container steps do not support Docker builder at this time")
        step = step.model_copy(update={"entry_point": resolve_entrypoint(step, cfg, inspector)})
        pod_name = client.create_pod(step, PodPurpose.STEP)
    except PodNotReadyError as err:
        logger.error("Failed to create pod: %s", err)
        delete_quietly(client, err.pod_name)
        return 1
    except HookError as err:
        logger.error("Failed to prepare container step: %s", err)
        return 1

    try:
        status = step_exit_status(client.exec_step_in_pod(pod_name, step), client)
    except HookError as err:
        logger.error("Failed to run container step: %s", err)
        status = 1

    if not delete_quietly(client, pod_name) and status == 0:
        status = 1
    return status
