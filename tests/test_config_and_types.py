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

import pytest
from pydantic import ValidationError as PydanticValidationError

from k8s_hook.config import HookConfig
from k8s_hook.types import PrepareJobResponse, ContainerInfo, ResponseState, parse_hook_input

ENV_VARS = (
    "ACTIONS_RUNNER_KUBERNETES_NAMESPACE",
    "ACTIONS_RUNNER_POD_NAME",
    "ACTIONS_RUNNER_CLAIM_NAME",
    "ACTIONS_RUNNER_PREPARE_JOB_TIMEOUT_SECONDS",
    "ACTIONS_RUNNER_CONTAINER_HOOK_TEMPLATE",
    "ENV_DISABLE_IMAGE_PULL",
    "ENV_USE_KUBE_SCHEDULER",
    "ENV_HOOK_INSPECT_IMAGE",
    "ENV_HOOK_CONTAINER_STEP_ENTRYPOINT",
    "DEBUG_HOOK",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestHookConfig:
    def test_defaults(self, clean_env):
        cfg = HookConfig()
        assert cfg.runner_pod_name == "local-pod"
        assert cfg.prepare_job_timeout == 600
        assert cfg.resolved_claim_name() == "local-pod-work"
        assert not cfg.use_kube_scheduler
        assert cfg.hook_template_path is None

    def test_reads_environment(self, clean_env):
        clean_env.setenv("ACTIONS_RUNNER_POD_NAME", "runner-xyz")
        clean_env.setenv("ACTIONS_RUNNER_CLAIM_NAME", "claim")
        clean_env.setenv("ACTIONS_RUNNER_PREPARE_JOB_TIMEOUT_SECONDS", "120")
        clean_env.setenv("ENV_USE_KUBE_SCHEDULER", "true")
        clean_env.setenv("ENV_DISABLE_IMAGE_PULL", "1")
        clean_env.setenv("DEBUG_HOOK", "0")

        cfg = HookConfig()

        assert cfg.runner_pod_name == "runner-xyz"
        assert cfg.resolved_claim_name() == "claim"
        assert cfg.prepare_job_timeout == 120
        assert cfg.use_kube_scheduler
        assert cfg.disable_image_pull
        assert not cfg.debug

    @pytest.mark.parametrize("value", ["abc", "0", "-5", ""])
    def test_invalid_timeout_falls_back(self, clean_env, value):
        clean_env.setenv("ACTIONS_RUNNER_PREPARE_JOB_TIMEOUT_SECONDS", value)
        assert HookConfig().prepare_job_timeout == 600

    def test_empty_values_are_unset(self, clean_env):
        clean_env.setenv("ACTIONS_RUNNER_CLAIM_NAME", "")
        clean_env.setenv("ACTIONS_RUNNER_CONTAINER_HOOK_TEMPLATE", "")
        cfg = HookConfig()
        assert cfg.claim_name is None
        assert cfg.hook_template_path is None

    def test_namespace_override(self, clean_env):
        clean_env.setenv("ACTIONS_RUNNER_KUBERNETES_NAMESPACE", "builds")
        assert HookConfig().resolved_namespace() == "builds"

    def test_namespace_from_service_account(self, clean_env, tmp_path):
        ns_file = tmp_path / "namespace"
        ns_file.write_text("runners\n")
        clean_env.setattr("k8s_hook.config.SERVICE_ACCOUNT_NAMESPACE_FILE", str(ns_file))
        assert HookConfig().resolved_namespace() == "runners"

    def test_namespace_default(self, clean_env, tmp_path):
        clean_env.setattr("k8s_hook.config.SERVICE_ACCOUNT_NAMESPACE_FILE", str(tmp_path / "missing"))
        assert HookConfig().resolved_namespace() == "default"


class TestHookInput:
    RAW = """
    {
        "command": "run_script_step",
        "responseFile": "/tmp/response.json",
        "args": {
            "entryPoint": "bash",
            "entryPointArgs": ["-e", "/__w/_temp/script.sh"],
            "environmentVariables": {"FOO": "bar"},
            "prependPath": ["/opt/tool"],
            "workingDirectory": "/__w/repo/repo",
            "futureField": 1
        },
        "state": {"jobPod": "runner-workflow"}
    }
    """

    def test_parses_camel_case(self):
        hook_input = parse_hook_input(self.RAW)
        assert hook_input.command == "run_script_step"
        assert hook_input.response_file == "/tmp/response.json"
        assert hook_input.args.entry_point == "bash"
        assert hook_input.args.entry_point_args == ["-e", "/__w/_temp/script.sh"]
        assert hook_input.args.prepend_path == ["/opt/tool"]
        assert hook_input.state == {"jobPod": "runner-workflow"}

    def test_strict_rejects_unknown_fields(self):
        with pytest.raises(PydanticValidationError, match="futureField"):
            parse_hook_input(self.RAW, strict=True)

    def test_prepare_job_container(self):
        hook_input = parse_hook_input(
            '{"command": "prepare_job", "responseFile": "r.json",'
            ' "args": {"container": {"image": "node:20", "registry": {"username": "u", "password": "p",'
            ' "serverUrl": "ghcr.io"}}, "services": []}}'
        )
        assert hook_input.args.container.image == "node:20"
        assert hook_input.args.container.registry.server_url == "ghcr.io"

    def test_missing_command(self):
        with pytest.raises(PydanticValidationError):
            parse_hook_input('{"args": {}}')

    def test_response_uses_runner_field_names(self):
        response = PrepareJobResponse(
            state=ResponseState(job_pod="runner-workflow"),
            context={"container": ContainerInfo(image="node:20")},
        )
        assert response.model_dump(by_alias=True) == {
            "state": {"jobPod": "runner-workflow"},
            "context": {"container": {"image": "node:20", "ports": {}}},
            "isAlpine": False,
        }
