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

"""prepare_job: create the job pod all script steps run in."""

from __future__ import annotations

from pathlib import Path

from k8s_hook import console, logger
from k8s_hook.client import HookClient
from k8s_hook.commands import delete_quietly
from k8s_hook.config import HookConfig
from k8s_hook.constants import RESPONSE_CONTAINER_KEY
from k8s_hook.errors import CleanupError, HookError, PodNotReadyError
from k8s_hook.pod import PodPurpose
from k8s_hook.types import ContainerHookInput, ContainerInfo, PrepareJobResponse, ResponseState


def write_response(path: str, response: PrepareJobResponse) -> None:
    """Write the prepare_job response where the runner expects it.

    Raises:
        OSError: If the file cannot be written.
    """
    body = response.model_dump_json(by_alias=True, indent=2)
    logger.debug("Writing response: %s", body)
    Path(path).write_text(body)


def prepare_job(hook_input: ContainerHookInput, client: HookClient, cfg: HookConfig) -> int:
    """Create the job pod and report it back to the runner.

    Returns:
        Process exit status.
    """
    container = hook_input.args.container
    if container is None:
        logger.error("prepare_job requires a job container")
        return 1

    try:
        client.prune_pods()
    except CleanupError as err:
        logger.warning("Failed to prune stale pods: %s", err)

    try:
        pod_name = client.create_pod(container, PodPurpose.JOB)
    except PodNotReadyError as err:
        logger.error("Failed to create pod: %s", err)
        delete_quietly(client, err.pod_name)
        return 1
    except HookError as err:
        logger.error("Failed to create pod: %s", err)
        return 1
    logger.info("Created pod %s", pod_name)

    response = PrepareJobResponse(
        state=ResponseState(job_pod=pod_name),
        context={RESPONSE_CONTAINER_KEY: ContainerInfo(image=container.image)},
        is_alpine=False,
    )
    try:
        write_response(hook_input.response_file, response)
    except OSError as err:
        console.print(f"[red]\u274c Failed to write response: {err}[/red]")
        return 1
    return 0
