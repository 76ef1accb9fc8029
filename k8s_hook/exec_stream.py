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

"""Streaming a command's output out of a running pod."""

from __future__ import annotations

import sys
import threading
from typing import Any, TextIO

from kubernetes.client.rest import ApiException
from kubernetes.stream import stream
from websocket import WebSocketException

from k8s_hook import logger
from k8s_hook.constants import EXEC_POLL_INTERVAL_SECONDS
from k8s_hook.errors import ExecTransportError


def _relay(resp: Any, stdout: TextIO, stderr: TextIO) -> None:
    if resp.peek_stdout():
        stdout.write(resp.read_stdout())
        stdout.flush()
    if resp.peek_stderr():
        stderr.write(resp.read_stderr())
        stderr.flush()


def _exit_code(resp: Any) -> int | None:
    try:
        return resp.returncode
    except (TypeError, KeyError, IndexError, ValueError) as err:
        logger.debug("No exit status reported by the exec stream: %s", err)
        return None


def exec_stream(
    core_v1: Any,
    namespace: str,
    pod_name: str,
    container: str,
    command: list[str],
    *,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    cancel: threading.Event | None = None,
) -> int | None:
    """Run ``command`` in a pod container and relay its output as it arrives.

    Stdin is not connected. Setting ``cancel`` closes the stream; the remote
    process is not guaranteed to stop.

    Args:
        core_v1: CoreV1Api used to open the exec channel.
        namespace: Pod namespace.
        pod_name: Pod to exec into.
        container: Container in the pod.
        command: Command and arguments.
        stdout: Stream for the remote stdout, defaults to ``sys.stdout``.
        stderr: Stream for the remote stderr, defaults to ``sys.stderr``.
        cancel: Event that aborts streaming when set.

    Returns:
        The remote exit code, or None if it is unknown (e.g. cancelled).

    Raises:
        ExecTransportError: If the channel cannot be opened or breaks.
    """
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    try:
        resp = stream(
            core_v1.connect_get_namespaced_pod_exec,
            pod_name,
            namespace,
            container=container,
            command=command,
            stdin=False,
            stdout=True,
            stderr=True,
            tty=False,
            _preload_content=False,
        )
    except (ApiException, WebSocketException, OSError) as err:
        raise ExecTransportError(f"Failed to open exec stream to pod {pod_name}: {err}") from err

    try:
        while resp.is_open():
            if cancel is not None and cancel.is_set():
                logger.warning("Exec in pod %s cancelled", pod_name)
                return None
            resp.update(timeout=EXEC_POLL_INTERVAL_SECONDS)
            _relay(resp, stdout, stderr)
        _relay(resp, stdout, stderr)
        return _exit_code(resp)
    except (WebSocketException, OSError) as err:
        raise ExecTransportError(f"Exec stream to pod {pod_name} broke: {err}") from err
    finally:
        resp.close()
