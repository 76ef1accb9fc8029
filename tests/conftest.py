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

"""Shared fixtures for the hook tests."""

from __future__ import annotations

import threading
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from k8s_hook.client import HookClient
from k8s_hook.config import HookConfig
from k8s_hook.types import ContainerDefinition

FIXTURES = Path(__file__).parent / "fixtures"


def make_pod(name="runner-workflow", phase="Pending", node_name="node-1", waiting=None):
    """Build a pod snapshot shaped like the objects a watch stream yields.

    Args:
        waiting: Optional (reason, message) of the job container's waiting state.
    """
    statuses = []
    if waiting is not None:
        reason, message = waiting
        statuses.append(SimpleNamespace(
            name="job",
            state=SimpleNamespace(waiting=SimpleNamespace(reason=reason, message=message)),
        ))
    return SimpleNamespace(
        metadata=SimpleNamespace(name=name),
        spec=SimpleNamespace(node_name=node_name),
        status=SimpleNamespace(phase=phase, container_statuses=statuses),
    )


@pytest.fixture
def cfg(tmp_path):
    """Configuration for a runner pod named ``runner-abc`` in namespace ``ci``."""
    return HookConfig(
        namespace="ci",
        runner_pod_name="runner-abc",
        github_workspace="/home/runner/_work/repo/repo",
        runner_workspace="",
        runner_temp=str(tmp_path),
        prepare_job_timeout=5,
    )


@pytest.fixture
def container():
    return ContainerDefinition(
        image="alpine:latest",
        environment_variables={"FOO": "bar"},
    )


@pytest.fixture
def core_v1():
    core = MagicMock()
    core.read_namespaced_pod.return_value = make_pod(name="runner-abc", phase="Running", node_name="node-1")
    core.create_namespaced_pod.side_effect = lambda namespace, body: SimpleNamespace(
        metadata=SimpleNamespace(name=body["metadata"]["name"])
    )
    core.create_namespaced_secret.side_effect = lambda namespace, body: SimpleNamespace(
        metadata=SimpleNamespace(name=body["metadata"]["name"])
    )
    return core


@pytest.fixture
def hook_client(cfg, core_v1):
    return HookClient(cfg, core_v1=core_v1, authorization_v1=MagicMock())


@pytest.fixture
def mock_client():
    """A stand-in HookClient for the command handler tests."""
    client = MagicMock()
    client.cancel_event = threading.Event()
    return client
