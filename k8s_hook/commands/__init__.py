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

"""Handlers for the four hook commands the job runner invokes."""

from __future__ import annotations

from k8s_hook import logger
from k8s_hook.client import HookClient
from k8s_hook.errors import CleanupError


def delete_quietly(client: HookClient, pod_name: str | None) -> bool:
    """Delete a pod left behind by a failed step; returns False on failure.

    Cleanup failures are logged here and never replace the failure that
    made the cleanup necessary.
    """
    if not pod_name:
        return True
    try:
        client.delete_pod(pod_name)
    except CleanupError as err:
        logger.error("Failed to clean up pod %s: %s", pod_name, err)
        return False
    return True


def step_exit_status(exit_code: int | None, client: HookClient) -> int:
    """Map a step's remote exit code to the hook's exit status."""
    if exit_code is None:
        return 1 if client.cancel_event.is_set() else 0
    return exit_code
