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

"""Hook configuration, auto-loaded from the runner's environment."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from k8s_hook import logger
from k8s_hook.constants import (
    CLAIM_NAME_SUFFIX,
    DEFAULT_NAMESPACE,
    DEFAULT_PREPARE_JOB_TIMEOUT_SECONDS,
    DEFAULT_RUNNER_POD_NAME,
    SERVICE_ACCOUNT_NAMESPACE_FILE,
)

_TRUTHY = {"1", "true", "yes", "on"}


class HookConfig(BaseSettings):
    """Runner-provided configuration for one hook invocation.

    Every environment read the hook performs goes through this object, so the
    pod builder and the lifecycle client can be driven from tests without
    touching process-wide state.

    Attributes:
        namespace: Namespace override, or None to use the service account's.
        runner_pod_name: Name of the runner pod that owns the created pods.
        claim_name: Work volume claim override, or None for ``<runner>-work``.
        disable_image_pull: Leave the image pull policy to the cluster default.
        use_kube_scheduler: Pin via node affinity instead of setting nodeName.
        prepare_job_timeout: Seconds to wait for a created pod to be ready.
        github_workspace: Runner-side workspace path of the current job.
        runner_workspace: Runner workspace root, used to locate externals.
        runner_temp: Directory where run scripts are staged.
        hook_template_path: Pod extension file merged into every pod.
        inspect_image: Look up missing container step entrypoints in the image.
        container_step_entrypoint: Fallback entrypoint for container steps.
        debug: Verbose logging and strict request parsing.
    """

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    namespace: str | None = Field(default=None, validation_alias="ACTIONS_RUNNER_KUBERNETES_NAMESPACE")
    runner_pod_name: str = Field(default=DEFAULT_RUNNER_POD_NAME, validation_alias="ACTIONS_RUNNER_POD_NAME")
    claim_name: str | None = Field(default=None, validation_alias="ACTIONS_RUNNER_CLAIM_NAME")
    disable_image_pull: bool = Field(default=False, validation_alias="ENV_DISABLE_IMAGE_PULL")
    use_kube_scheduler: bool = Field(default=False, validation_alias="ENV_USE_KUBE_SCHEDULER")
    prepare_job_timeout: int = Field(
        default=DEFAULT_PREPARE_JOB_TIMEOUT_SECONDS,
        validation_alias="ACTIONS_RUNNER_PREPARE_JOB_TIMEOUT_SECONDS",
    )
    github_workspace: str = Field(default="", validation_alias="GITHUB_WORKSPACE")
    runner_workspace: str = Field(default="", validation_alias="RUNNER_WORKSPACE")
    runner_temp: str = Field(default_factory=tempfile.gettempdir, validation_alias="RUNNER_TEMP")
    hook_template_path: str | None = Field(default=None, validation_alias="ACTIONS_RUNNER_CONTAINER_HOOK_TEMPLATE")
    inspect_image: bool = Field(default=False, validation_alias="ENV_HOOK_INSPECT_IMAGE")
    container_step_entrypoint: str | None = Field(
        default=None, validation_alias="ENV_HOOK_CONTAINER_STEP_ENTRYPOINT"
    )
    debug: bool = Field(default=False, validation_alias="DEBUG_HOOK")

    @field_validator("disable_image_pull", "use_kube_scheduler", "inspect_image", "debug", mode="before")
    @classmethod
    def _parse_flag(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in _TRUTHY

    @field_validator("prepare_job_timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> int:
        try:
            timeout = int(value)
        except (TypeError, ValueError):
            logger.info("Invalid timeout value %r, using default of %d seconds",
                        value, DEFAULT_PREPARE_JOB_TIMEOUT_SECONDS)
            return DEFAULT_PREPARE_JOB_TIMEOUT_SECONDS
        if timeout <= 0:
            logger.info("Non-positive timeout value %d, using default of %d seconds",
                        timeout, DEFAULT_PREPARE_JOB_TIMEOUT_SECONDS)
            return DEFAULT_PREPARE_JOB_TIMEOUT_SECONDS
        return timeout

    @field_validator("namespace", "claim_name", "hook_template_path", "container_step_entrypoint")
    @classmethod
    def _empty_as_unset(cls, value: str | None) -> str | None:
        return value or None

    def resolved_namespace(self) -> str:
        """Return the namespace override, the service account's namespace, or ``default``."""
        if self.namespace:
            return self.namespace
        try:
            return Path(SERVICE_ACCOUNT_NAMESPACE_FILE).read_text().strip()
        except OSError as err:
            logger.warning("Failed to read namespace from ACTIONS_RUNNER_KUBERNETES_NAMESPACE "
                           "or service account, defaulting to '%s': %s", DEFAULT_NAMESPACE, err)
            return DEFAULT_NAMESPACE

    def resolved_claim_name(self) -> str:
        """Return the work volume claim name."""
        return self.claim_name or f"{self.runner_pod_name}{CLAIM_NAME_SUFFIX}"
