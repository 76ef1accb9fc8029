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

import json

from k8s_hook.externals import copy_externals
from k8s_hook.secret import docker_config_json, pull_secret_manifest
from k8s_hook.types import RegistryCredentials


class TestCopyExternals:
    def test_copies_next_to_workspace(self, tmp_path):
        externals = tmp_path / "externals" / "node20" / "bin"
        externals.mkdir(parents=True)
        (externals / "node").write_text("#!/bin/sh\n")
        workspace = tmp_path / "_work" / "repo"
        workspace.mkdir(parents=True)

        copy_externals(str(workspace))

        assert (tmp_path / "_work" / "externals" / "node20" / "bin" / "node").read_text() == "#!/bin/sh\n"

    def test_missing_source_is_logged_only(self, tmp_path):
        workspace = tmp_path / "_work" / "repo"
        workspace.mkdir(parents=True)
        copy_externals(str(workspace))
        assert not (tmp_path / "_work" / "externals").exists()

    def test_empty_workspace_skips(self):
        copy_externals("")


class TestPullSecret:
    def test_docker_config_defaults_to_ghcr(self):
        config = json.loads(docker_config_json(RegistryCredentials(username="u", password="p")))
        assert config == {"auths": {"ghcr.io": {"username": "u", "password": "p"}}}

    def test_manifest(self):
        registry = RegistryCredentials(username="u", password="p", server_url="registry.example.com")
        secret = pull_secret_manifest(registry, "runner-abc")

        assert secret["metadata"]["name"].startswith("runner-abc-pull-secret-")
        assert secret["metadata"]["labels"] == {"runner-pod": "runner-abc"}
        assert secret["immutable"] is True
        assert secret["type"] == "kubernetes.io/dockerconfigjson"
        payload = json.loads(secret["stringData"][".dockerconfigjson"])
        assert payload["auths"]["registry.example.com"]["username"] == "u"
