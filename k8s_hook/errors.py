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

"""Error kinds raised by the hook.

Every failure the lifecycle client surfaces is a HookError; the CLI maps
them all to a non-zero exit status. Cluster API errors are wrapped at the
client boundary and kept as ``__cause__``.
"""

from __future__ import annotations


class HookError(RuntimeError):
    """Base exception for the hook."""


class ClusterConnectionError(HookError):
    """Neither in-cluster nor kubeconfig credentials could be loaded."""


class UnsupportedFeatureError(HookError):
    """The request uses a feature the Kubernetes hook does not implement."""


class PodCreationError(HookError):
    """The cluster rejected a pod or secret submission."""


class AuthorizationError(PodCreationError):
    """The submission was rejected for lack of permissions."""


class PodNotReadyError(HookError):
    """A created pod did not become ready. The pod still exists.

    Attributes:
        pod_name: Name of the pod left behind, for cleanup.
    """

    def __init__(self, message: str, pod_name: str | None = None) -> None:
        super().__init__(message)
        self.pod_name = pod_name


class ReadinessFailure(PodNotReadyError):
    """The pod reached a state that will never become ready."""


class ReadinessTimeout(PodNotReadyError):
    """No ready or failed signal was observed before the deadline."""


class ExecTransportError(HookError):
    """The exec stream could not be established or broke mid-step."""


class ValidationError(HookError):
    """Invalid step input, rejected before any remote action."""


class ExtensionError(HookError):
    """The pod extension file could not be read or parsed."""


class CleanupError(HookError):
    """Deleting or pruning pods or secrets failed."""


class MissingEntrypointError(HookError):
    """A container step has no entrypoint and none could be resolved."""


class InspectionError(HookError):
    """The image configuration could not be fetched."""
