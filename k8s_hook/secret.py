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

"""Image pull secret manifests for private registries."""

from __future__ import annotations

import json

from k8s_hook.constants import (
    DEFAULT_REGISTRY_SERVER,
    DOCKER_CONFIG_JSON_KEY,
    LABEL_RUNNER_POD,
    PULL_SECRET_INFIX,
    SECRET_TYPE_DOCKER_CONFIG_JSON,
)
from k8s_hook.pod import pod_postfix
from k8s_hook.types import RegistryCredentials


def docker_config_json(registry: RegistryCredentials) -> str:
    """Render the ``.dockerconfigjson`` payload for one registry."""
    server = registry.server_url or DEFAULT_REGISTRY_SERVER
    return json.dumps({"auths": {server: {"username": registry.username, "password": registry.password}}})


def pull_secret_manifest(registry: RegistryCredentials, runner_pod_name: str) -> dict:
    """Build an immutable dockerconfigjson Secret owned by the runner.

    The secret carries the ``runner-pod`` label so cleanup can prune it by
    selector without tracking its name.
    """
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {
            "name": f"{runner_pod_name}{PULL_SECRET_INFIX}{pod_postfix()}",
            "labels": {LABEL_RUNNER_POD: runner_pod_name},
        },
        "immutable": True,
        "type": SECRET_TYPE_DOCKER_CONFIG_JSON,
        "stringData": {DOCKER_CONFIG_JSON_KEY: docker_config_json(registry)},
    }
