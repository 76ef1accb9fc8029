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

"""run_script_step: run one step in the job pod."""

from __future__ import annotations

from k8s_hook import logger
from k8s_hook.client import HookClient
from k8s_hook.commands import step_exit_status
from k8s_hook.config import HookConfig
from k8s_hook.constants import STATE_JOB_POD
from k8s_hook.errors import HookError
from k8s_hook.types import ContainerHookInput


def run_script_step(hook_input: ContainerHookInput, client: HookClient, cfg: HookConfig) -> int:
    """Exec the step into the job pod recorded by prepare_job.

    Returns:
        Process exit status; the step's own exit code when it ran.
    """
    job_pod = hook_input.state.get(STATE_JOB_POD)
    if not job_pod:
        logger.error("No job pod recorded in hook state")
        return 1
    try:
        exit_code = client.exec_step_in_pod(job_pod, hook_input.args)
    except HookError as err:
        logger.error("Failed to execute step in pod %s: %s", job_pod, err)
        return 1
    return step_exit_status(exit_code, client)
