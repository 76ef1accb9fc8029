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

"""Kubernetes client driving the pod lifecycle for one hook invocation.

The cluster is the only source of truth: the client keeps the connection
and configuration, never pod state. Callers own the ordering of
create -> exec* -> delete for a pod and must clean up a pod whose
readiness wait failed.
"""

from __future__ import annotations

import os
import threading
from typing import Any

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from k8s_hook import console, logger
from k8s_hook.config import HookConfig
from k8s_hook.constants import (
    JOB_CONTAINER_NAME,
    LABEL_RUNNER_POD,
    REQUIRED_PERMISSIONS,
    RUN_SCRIPT_SHELL,
)
from k8s_hook.errors import (
    AuthorizationError,
    CleanupError,
    ClusterConnectionError,
    HookError,
    PodCreationError,
    ReadinessFailure,
    ReadinessTimeout,
)
from k8s_hook.exec_stream import exec_stream
from k8s_hook.externals import copy_externals
from k8s_hook.pod import PodPurpose, attach_pull_secret, build_pod_manifest
from k8s_hook.readiness import PodReadinessWatcher, ReadinessOutcome, ReadinessState
from k8s_hook.script import write_run_script
from k8s_hook.secret import pull_secret_manifest
from k8s_hook.types import ContainerDefinition, RegistryCredentials

_AUTH_FAILURE_STATUSES = (401, 403)


class HookClient:
    """Creates, waits for, execs into and deletes the hook's pods.

    Args:
        cfg: Hook configuration.
        core_v1: CoreV1Api to use instead of connecting, mainly for tests.
        authorization_v1: AuthorizationV1Api used for permission diagnostics.
    """

    def __init__(self, cfg: HookConfig, core_v1: Any = None, authorization_v1: Any = None) -> None:
        self.cfg = cfg
        self.namespace = cfg.resolved_namespace()
        self.core_v1 = core_v1
        self.authorization_v1 = authorization_v1
        self.cancel_event = threading.Event()

    def connect(self) -> None:
        """Load in-cluster credentials, falling back to the local kubeconfig.

        Raises:
            ClusterConnectionError: If neither can be loaded.
        """
        try:
            config.load_incluster_config()
            logger.debug("Loaded in-cluster Kubernetes configuration")
        except config.ConfigException:
            try:
                config.load_kube_config()
                logger.debug("Loaded kubeconfig from default location")
            except config.ConfigException as err:
                raise ClusterConnectionError(f"Failed to load Kubernetes configuration: {err}") from err
        self.core_v1 = client.CoreV1Api()
        self.authorization_v1 = client.AuthorizationV1Api()

    def cancel(self) -> None:
        """Abort a running exec stream."""
        self.cancel_event.set()

    # ------------------------------------------------------------------
    # Pods
    # ------------------------------------------------------------------

    def create_pod(self, container: ContainerDefinition, purpose: PodPurpose) -> str:
        """Create a job or step pod and wait until it is running.

        Args:
            container: Container definition from the runner.
            purpose: Job pod or step pod.

        Returns:
            Name of the running pod.

        Raises:
            UnsupportedFeatureError: If the container uses create options.
            ValidationError: If a step pod's workspace path cannot be mapped.
            ExtensionError: If the pod extension cannot be applied.
            AuthorizationError: If the cluster denied the pod creation.
            PodCreationError: If the cluster rejected the pod otherwise.
            ReadinessFailure: If the pod failed to start. The pod still exists.
            ReadinessTimeout: If the pod was not ready in time. The pod still exists.
        """
        manifest = build_pod_manifest(
            container, purpose, self.cfg, node_name=self.get_pod_node_name(self.cfg.runner_pod_name),
        )
        if container.registry is not None:
            try:
                attach_pull_secret(manifest, self.create_image_pull_secret(container.registry))
            except PodCreationError as err:
                logger.warning("Failed to create pull secret: %s", err)
        if purpose is PodPurpose.JOB:
            copy_externals(self.cfg.runner_workspace)

        pod_name = manifest["metadata"]["name"]
        try:
            created = self.core_v1.create_namespaced_pod(namespace=self.namespace, body=manifest)
        except ApiException as err:
            if err.status in _AUTH_FAILURE_STATUSES:
                self.check_permissions()
                raise AuthorizationError(f"Not allowed to create pod {pod_name}: {err.reason}") from err
            raise PodCreationError(f"Failed to create pod {pod_name}: {err.reason}") from err
        pod_name = created.metadata.name
        console.print(f"[yellow]\u2139\ufe0f  Created pod {pod_name}, waiting for it to be ready...[/yellow]")

        self.wait_for_pod_ready(pod_name)
        console.print(f"[green]\u2705 Pod {pod_name} is running[/green]")
        return pod_name

    def wait_for_pod_ready(self, name: str) -> ReadinessOutcome:
        """Block until pod ``name`` is running.

        Raises:
            ReadinessFailure: If the pod failed to start.
            ReadinessTimeout: If the configured timeout elapsed first.
        """
        timeout = self.cfg.prepare_job_timeout
        outcome = PodReadinessWatcher(self.core_v1, self.namespace).wait(name, timeout)
        if outcome.state is ReadinessState.FAILED:
            raise ReadinessFailure(f"pod {name} failed to start: {outcome.reason}", pod_name=name)
        if outcome.state is ReadinessState.TIMED_OUT:
            raise ReadinessTimeout(f"timeout waiting for {timeout} seconds for pod {name} to be ready", pod_name=name)
        return outcome

    def get_pod_node_name(self, name: str) -> str | None:
        """Return the node pod ``name`` is scheduled on, or None if unknown."""
        try:
            pod = self.core_v1.read_namespaced_pod(name=name, namespace=self.namespace)
        except ApiException as err:
            logger.warning("Failed to look up node of pod %s: %s", name, err.reason)
            return None
        return pod.spec.node_name if pod.spec else None

    def delete_pod(self, name: str) -> None:
        """Delete pod ``name``; a pod that is already gone counts as deleted.

        Raises:
            CleanupError: If the deletion was rejected.
        """
        try:
            self.core_v1.delete_namespaced_pod(name=name, namespace=self.namespace)
        except ApiException as err:
            if err.status == 404:
                logger.info("Pod %s already deleted or not found", name)
                return
            raise CleanupError(f"Failed to delete pod {name}: {err.reason}") from err
        console.print(f"[green]\u2705 Deleted pod {name}[/green]")

    def prune_pods(self) -> None:
        """Delete every pod labelled with this runner; stops at the first failure.

        Raises:
            CleanupError: If listing or any deletion fails.
        """
        try:
            pods = self.core_v1.list_namespaced_pod(namespace=self.namespace, label_selector=self._runner_selector())
        except ApiException as err:
            raise CleanupError(f"Failed to list pods for pruning: {err.reason}") from err
        for pod in pods.items:
            logger.info("Pruning pod %s", pod.metadata.name)
            self.delete_pod(pod.metadata.name)

    # ------------------------------------------------------------------
    # Pull secrets
    # ------------------------------------------------------------------

    def create_image_pull_secret(self, registry: RegistryCredentials) -> str:
        """Create a pull secret for ``registry`` and return its name.

        Raises:
            PodCreationError: If the secret was rejected.
        """
        manifest = pull_secret_manifest(registry, self.cfg.runner_pod_name)
        try:
            created = self.core_v1.create_namespaced_secret(namespace=self.namespace, body=manifest)
        except ApiException as err:
            raise PodCreationError(f"Failed to create pull secret: {err.reason}") from err
        return created.metadata.name

    def prune_secrets(self) -> None:
        """Delete every secret labelled with this runner; stops at the first failure.

        Raises:
            CleanupError: If listing or any deletion fails.
        """
        try:
            secrets = self.core_v1.list_namespaced_secret(
                namespace=self.namespace, label_selector=self._runner_selector()
            )
        except ApiException as err:
            raise CleanupError(f"Failed to list secrets for pruning: {err.reason}") from err
        for secret in secrets.items:
            logger.info("Pruning secret %s", secret.metadata.name)
            try:
                self.core_v1.delete_namespaced_secret(name=secret.metadata.name, namespace=self.namespace)
            except ApiException as err:
                raise CleanupError(f"Failed to delete secret {secret.metadata.name}: {err.reason}") from err

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def exec_step_in_pod(self, name: str, step: ContainerDefinition) -> int | None:
        """Run a step in the job container of pod ``name``, streaming its output.

        A non-zero exit of the step is returned, not raised.

        Returns:
            Exit code of the step, or None if unknown.

        Raises:
            ValidationError: If the step environment is invalid.
            ExecTransportError: If the exec stream failed.
        """
        try:
            container_path, local_path = write_run_script(step, self.cfg.runner_temp)
        except OSError as err:
            raise HookError(f"Failed to write run script: {err}") from err
        logger.debug("Executing %s in pod %s", container_path, name)
        try:
            exit_code = exec_stream(
                self.core_v1, self.namespace, name, JOB_CONTAINER_NAME,
                [*RUN_SCRIPT_SHELL, container_path],
                cancel=self.cancel_event,
            )
        finally:
            try:
                os.remove(local_path)
            except OSError as err:
                logger.warning("Failed to remove temporary run script %s: %s", local_path, err)
        if exit_code:
            logger.info("Step in pod %s exited with code %d", name, exit_code)
        return exit_code

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def check_permissions(self) -> None:
        """Log which of the hook's required permissions are denied.

        Best effort: diagnostic failures are logged at debug level only.
        """
        if self.authorization_v1 is None:
            return
        for resource, subresource, verb in REQUIRED_PERMISSIONS:
            attributes = {"namespace": self.namespace, "verb": verb, "resource": resource}
            if subresource:
                attributes["subresource"] = subresource
            review = {
                "apiVersion": "authorization.k8s.io/v1",
                "kind": "SelfSubjectAccessReview",
                "spec": {"resourceAttributes": attributes},
            }
            try:
                result = self.authorization_v1.create_self_subject_access_review(body=review)
            except ApiException as err:
                logger.debug("Permission check for %s %s failed: %s", verb, resource, err.reason)
                continue
            if not result.status.allowed:
                target = f"{resource}/{subresource}" if subresource else resource
                logger.error("Missing permission: %s %s in namespace %s", verb, target, self.namespace)

    def _runner_selector(self) -> str:
        return f"{LABEL_RUNNER_POD}={self.cfg.runner_pod_name}"
