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

"""cleanup_job: remove the job pod and anything else this runner left behind."""

from __future__ import annotations

from collections.abc import Callable

from k8s_hook import logger
from k8s_hook.client import HookClient
from k8s_hook.config import HookConfig
from k8s_hook.constants import STATE_JOB_POD
from k8s_hook.errors import CleanupError
from k8s_hook.types import ContainerHookInput


def cleanup_job(hook_input: ContainerHookInput, client: HookClient, cfg: HookConfig) -> int:
    """Delete the job pod, then prune the runner's pods and pull secrets.

    Every stage runs even if an earlier one failed.

    Returns:
        Process exit status.
    """
    stages: list[tuple[str, Callable[[], None]]] = []
    job_pod = hook_input.state.get(STATE_JOB_POD)
    if job_pod:
        stages.append((f"delete job pod {job_pod}", lambda: client.delete_pod(job_pod)))
    else:
        logger.warning("No job pod recorded in hook state")
    stages.append(("prune pods", client.prune_pods))
    stages.append(("prune pull secrets", client.prune_secrets))

    status = 0
    for description, stage in stages:
        try:
            stage()
        except CleanupError as err:
            logger.error("Failed to %s: %s", description, err)
            status = 1
    return status
