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

"""Waiting for a freshly created pod to become usable.

The cluster pushes pod changes over a watch stream consumed on a background
thread. The first event that settles the outcome resolves a one-shot
subscription; the caller blocks on it with the readiness deadline.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from kubernetes import watch
from kubernetes.client.rest import ApiException
from tenacity import retry, retry_if_exception_type, wait_fixed
from urllib3.exceptions import HTTPError

from k8s_hook import logger
from k8s_hook.constants import (
    PHASE_FAILED,
    PHASE_RUNNING,
    REASON_CRASH_LOOP_BACKOFF,
    REASON_IMAGE_PULL_BACKOFF,
    WATCH_REQUEST_TIMEOUT_SECONDS,
    WATCH_RESTART_WAIT_SECONDS,
)


class ReadinessState(str, Enum):
    READY = "ready"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ReadinessOutcome:
    """Terminal result of one readiness wait.

    Attributes:
        state: Ready, failed or timed out.
        node_name: Node the pod landed on, for ready pods.
        reason: Human-readable failure reason, for failed pods.
    """

    state: ReadinessState
    node_name: str | None = None
    reason: str | None = None

    @classmethod
    def ready(cls, node_name: str | None = None) -> ReadinessOutcome:
        return cls(ReadinessState.READY, node_name=node_name)

    @classmethod
    def failed(cls, reason: str) -> ReadinessOutcome:
        return cls(ReadinessState.FAILED, reason=reason)

    @classmethod
    def timed_out(cls) -> ReadinessOutcome:
        return cls(ReadinessState.TIMED_OUT)


def classify_pod(pod: Any) -> ReadinessOutcome | None:
    """Decide whether a pod snapshot settles the readiness wait.

    Image pull and crash loop back-offs fail fast, before the pod phase
    turns terminal.

    Returns:
        The outcome, or None if the pod is still starting.
    """
    status = pod.status
    if status is None:
        return None
    for cs in status.container_statuses or []:
        waiting = cs.state.waiting if cs.state else None
        if waiting is None:
            continue
        logger.debug("Container %s waiting: %s", cs.name, waiting.reason)
        if waiting.reason == REASON_IMAGE_PULL_BACKOFF:
            logger.error("Runner failed to pull image for pod %s: %s", pod.metadata.name, waiting.message)
            return ReadinessOutcome.failed(f"failed to pull image: {waiting.message}")
        if waiting.reason == REASON_CRASH_LOOP_BACKOFF:
            logger.error("Runner image crashing on startup in pod %s: %s", pod.metadata.name, waiting.message)
            return ReadinessOutcome.failed(f"image crashing on startup: {waiting.message}")
    if status.phase == PHASE_RUNNING:
        return ReadinessOutcome.ready(pod.spec.node_name if pod.spec else None)
    if status.phase == PHASE_FAILED:
        return ReadinessOutcome.failed("pod failed")
    return None


class _StreamClosed(Exception):
    """The watch stream ended before an outcome was reached."""


class _Subscription:
    """One-shot completion signal shared by the watch thread and the waiter."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._watch: watch.Watch | None = None
        self.done = threading.Event()
        self.outcome: ReadinessOutcome | None = None

    def resolve(self, outcome: ReadinessOutcome) -> None:
        with self._lock:
            if self.outcome is not None:
                return
            self.outcome = outcome
        self.done.set()

    def attach(self, w: watch.Watch) -> bool:
        """Register the active watch; returns False once resolved."""
        with self._lock:
            if self.outcome is not None:
                return False
            self._watch = w
            return True

    def close(self) -> None:
        with self._lock:
            w, self._watch = self._watch, None
        if w is not None:
            w.stop()


class PodReadinessWatcher:
    """Blocks until a named pod is ready, failed, or the deadline passes.

    Args:
        core_v1: CoreV1Api used for the pod watch.
        namespace: Namespace the pod lives in.
        watch_factory: Factory for watch objects, replaceable in tests.
    """

    def __init__(self, core_v1: Any, namespace: str,
                 watch_factory: Callable[[], watch.Watch] = watch.Watch) -> None:
        self._core_v1 = core_v1
        self._namespace = namespace
        self._watch_factory = watch_factory

    def wait(self, name: str, timeout: float) -> ReadinessOutcome:
        """Wait for pod ``name`` to settle.

        Exactly one outcome is returned and the watch is always stopped. Each
        read on the stream is bounded by WATCH_REQUEST_TIMEOUT_SECONDS, so the
        background connection is released within that time after the return;
        quiet streams are re-established and replay the pod state as ADDED.
        """
        sub = _Subscription()
        deadline = time.monotonic() + timeout
        thread = threading.Thread(
            target=self._consume, args=(name, deadline, sub), name=f"watch-{name}", daemon=True,
        )
        thread.start()
        try:
            if not sub.done.wait(timeout):
                sub.resolve(ReadinessOutcome.timed_out())
        finally:
            sub.close()
        logger.debug("Readiness of pod %s: %s", name, sub.outcome)
        return sub.outcome

    def _consume(self, name: str, deadline: float, sub: _Subscription) -> None:
        def _should_stop(_state: Any) -> bool:
            return sub.done.is_set() or time.monotonic() >= deadline

        @retry(
            retry=retry_if_exception_type((_StreamClosed, ApiException, HTTPError, OSError)),
            stop=_should_stop,
            wait=wait_fixed(WATCH_RESTART_WAIT_SECONDS),
            reraise=True,
        )
        def _watch_once() -> None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            w = self._watch_factory()
            if not sub.attach(w):
                return
            try:
                for event in w.stream(
                    self._core_v1.list_namespaced_pod,
                    namespace=self._namespace,
                    field_selector=f"metadata.name={name}",
                    timeout_seconds=max(1, int(remaining)),
                    _request_timeout=WATCH_REQUEST_TIMEOUT_SECONDS,
                ):
                    outcome = self._handle_event(name, event)
                    if outcome is not None:
                        sub.resolve(outcome)
                    if sub.done.is_set():
                        return
            except ApiException as err:
                if err.status in (401, 403):
                    sub.resolve(ReadinessOutcome.failed(f"not allowed to watch pod {name}: {err.reason}"))
                    return
                logger.debug("Watch on pod %s broke: %s", name, err)
                raise
            finally:
                w.stop()
            if not sub.done.is_set():
                logger.debug("Watch on pod %s closed, re-establishing", name)
                raise _StreamClosed()

        try:
            _watch_once()
        except Exception as err:  # noqa: BLE001
            if time.monotonic() < deadline:
                sub.resolve(ReadinessOutcome.failed(f"watch on pod {name} failed: {err}"))
            else:
                logger.debug("Giving up watching pod %s: %s", name, err)

    @staticmethod
    def _handle_event(name: str, event: dict) -> ReadinessOutcome | None:
        kind = event.get("type")
        if kind == "ERROR":
            raise _StreamClosed()
        if kind == "DELETED":
            return ReadinessOutcome.failed(f"pod {name} was deleted")
        pod = event["object"]
        logger.debug("Pod %s event %s, phase %s", name, kind, pod.status.phase if pod.status else None)
        return classify_pod(pod)
