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

from unittest.mock import MagicMock

import docker
import pytest

from k8s_hook.errors import InspectionError
from k8s_hook.inspector import ImageInspector
from k8s_hook.types import RegistryCredentials


@pytest.fixture
def docker_client():
    return MagicMock()


def _image(entrypoint):
    image = MagicMock()
    image.attrs = {"Config": {"Entrypoint": entrypoint}}
    return image


class TestImageInspector:
    def test_entrypoint_is_space_joined(self, docker_client):
        docker_client.images.pull.return_value = _image(["/usr/bin/tini", "--"])
        assert ImageInspector(docker_client).get_entrypoint("app:1") == "/usr/bin/tini --"
        docker_client.images.pull.assert_called_once_with("app:1", auth_config=None)

    def test_no_entrypoint(self, docker_client):
        docker_client.images.pull.return_value = _image(None)
        assert ImageInspector(docker_client).get_entrypoint("app:1") == ""

    def test_registry_credentials_used(self, docker_client):
        docker_client.images.pull.return_value = _image(["run"])
        registry = RegistryCredentials(username="bot", password="s3cret", server_url="registry.example.com")

        ImageInspector(docker_client).get_entrypoint("registry.example.com/app", registry)

        assert docker_client.images.pull.call_args.kwargs["auth_config"] == {"username": "bot", "password": "s3cret"}

    def test_pull_failure(self, docker_client):
        docker_client.images.pull.side_effect = docker.errors.ImageNotFound("no such image")
        with pytest.raises(InspectionError):
            ImageInspector(docker_client).get_entrypoint("missing:1")
        docker_client.close.assert_not_called()
