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

"""Pod manifest construction for job pods and container step pods."""

from __future__ import annotations

import random
from enum import Enum

from k8s_hook.config import HookConfig
from k8s_hook.constants import (
    CI_ENV,
    IDLE_ARGS,
    IDLE_COMMAND,
    JOB_CONTAINER_NAME,
    JOB_POD_SUFFIX,
    JOB_VOLUME_NAME,
    LABEL_HOSTNAME,
    LABEL_RUNNER_POD,
    MOUNT_EXTERNALS,
    MOUNT_FILE_COMMANDS,
    MOUNT_GITHUB_HOME,
    MOUNT_GITHUB_WORKFLOW,
    MOUNT_GITHUB_WORKSPACE,
    MOUNT_WORK_ROOT,
    POD_SUFFIX_ALPHABET,
    POD_SUFFIX_LENGTH,
    PULL_IF_NOT_PRESENT,
    RESTART_POLICY_NEVER,
    STEP_POD_INFIX,
    SUBPATH_EXTERNALS,
    SUBPATH_FILE_COMMANDS,
    SUBPATH_GITHUB_HOME,
    SUBPATH_GITHUB_WORKFLOW,
    WORK_DIR_MARKER,
)
from k8s_hook.errors import UnsupportedFeatureError, ValidationError
from k8s_hook.extension import apply_extension
from k8s_hook.types import ContainerDefinition


class PodPurpose(str, Enum):
    """Why a pod is created.

    JOB pods idle for the whole job and receive every script step; STEP pods
    run a single container step and are deleted right after.
    """

    JOB = "job"
    STEP = "step"


def pod_postfix() -> str:
    """Return a random suffix for pod and secret names."""
    return "".join(random.choices(POD_SUFFIX_ALPHABET, k=POD_SUFFIX_LENGTH))  # noqa: S311


def workspace_sub_path(workspace: str) -> str:
    """Derive the work volume sub-path of a runner workspace path.

    ``/home/runner/_work/repo/repo`` maps to ``repo/repo``.

    Raises:
        ValidationError: If the path has no ``_work/`` segment.
    """
    idx = workspace.rfind(WORK_DIR_MARKER)
    if idx < 0:
        raise ValidationError(f"workspace path {workspace!r} is not inside the runner's _work directory")
    return workspace[idx + len(WORK_DIR_MARKER):]


def ensure_supported(container: ContainerDefinition) -> None:
    """Reject container features the hook cannot honour.

    Raises:
        UnsupportedFeatureError: If the container carries raw create options.
    """
    if container.create_options:
        raise UnsupportedFeatureError(f"CreateOptions provided: {container.create_options}")


def _mount(mount_path: str, sub_path: str | None = None) -> dict:
    mount = {"name": JOB_VOLUME_NAME, "mountPath": mount_path}
    if sub_path:
        mount["subPath"] = sub_path
    return mount


def _base_mounts() -> list[dict]:
    return [
        _mount(MOUNT_WORK_ROOT),
        _mount(MOUNT_GITHUB_HOME, SUBPATH_GITHUB_HOME),
        _mount(MOUNT_GITHUB_WORKFLOW, SUBPATH_GITHUB_WORKFLOW),
    ]


def job_container(container: ContainerDefinition, cfg: HookConfig) -> dict:
    """Build the idle job container that steps are exec'd into."""
    env = [{"name": name, "value": value} for name, value in CI_ENV]
    env.extend({"name": name, "value": value} for name, value in container.environment_variables.items())
    manifest = {
        "name": JOB_CONTAINER_NAME,
        "image": container.image,
        "command": list(IDLE_COMMAND),
        "args": list(IDLE_ARGS),
        "env": env,
        "volumeMounts": _base_mounts(),
    }
    if not cfg.disable_image_pull:
        manifest["imagePullPolicy"] = PULL_IF_NOT_PRESENT
    if container.working_directory:
        manifest["workingDir"] = container.working_directory
    return manifest


def node_affinity(hostname: str) -> dict:
    """Required node affinity pinning a pod to the node with ``hostname``."""
    return {
        "nodeAffinity": {
            "requiredDuringSchedulingIgnoredDuringExecution": {
                "nodeSelectorTerms": [
                    {"matchExpressions": [{"key": LABEL_HOSTNAME, "operator": "In", "values": [hostname]}]}
                ]
            }
        }
    }


def build_pod_manifest(
    container: ContainerDefinition,
    purpose: PodPurpose,
    cfg: HookConfig,
    *,
    node_name: str | None = None,
) -> dict:
    """Build the Pod manifest for a job or step pod.

    No cluster I/O happens here. The caller resolves the runner's node, and
    provisions and attaches a pull secret only once the manifest is built.

    Args:
        container: Container definition from the runner.
        purpose: Whether this is the job pod or a step pod.
        cfg: Hook configuration.
        node_name: Node the runner pod runs on, or None if unknown.

    Returns:
        Pod manifest as a dictionary ready for the Kubernetes API.

    Raises:
        UnsupportedFeatureError: If the container carries create options.
        ValidationError: If a step pod's workspace path cannot be mapped.
        ExtensionError: If the configured pod extension cannot be loaded.
    """
    ensure_supported(container)

    job = job_container(container, cfg)
    runner = cfg.runner_pod_name
    if purpose is PodPurpose.STEP:
        name = f"{runner}{STEP_POD_INFIX}{pod_postfix()}"
        job["volumeMounts"] = [
            _mount(MOUNT_GITHUB_WORKSPACE, workspace_sub_path(cfg.github_workspace)),
            _mount(MOUNT_FILE_COMMANDS, SUBPATH_FILE_COMMANDS),
            *job["volumeMounts"],
        ]
    else:
        name = f"{runner}{JOB_POD_SUFFIX}"
        job["volumeMounts"] = [_mount(MOUNT_EXTERNALS, SUBPATH_EXTERNALS), *job["volumeMounts"]]

    spec: dict = {
        "restartPolicy": RESTART_POLICY_NEVER,
        "containers": [job],
        "volumes": [
            {"name": JOB_VOLUME_NAME, "persistentVolumeClaim": {"claimName": cfg.resolved_claim_name()}}
        ],
    }
    if node_name:
        if cfg.use_kube_scheduler:
            spec["affinity"] = node_affinity(node_name)
        else:
            spec["nodeName"] = node_name
    pod = {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": name, "labels": {LABEL_RUNNER_POD: runner}},
        "spec": spec,
    }
    if cfg.hook_template_path:
        apply_extension(pod, cfg.hook_template_path)
    return pod


def attach_pull_secret(pod: dict, secret_name: str) -> None:
    """Reference image pull secret ``secret_name`` from ``pod``."""
    pod["spec"]["imagePullSecrets"] = [{"name": secret_name}]
