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

"""Merging an operator-supplied pod extension into a generated pod manifest."""

from __future__ import annotations

from pathlib import Path

import yaml

from k8s_hook import logger
from k8s_hook.constants import EXTENSION_JOB_CONTAINER
from k8s_hook.errors import ExtensionError


def load_extension(path: str | Path) -> dict:
    """Read and parse a pod extension file.

    Args:
        path: YAML file holding a (partial) Pod manifest.

    Returns:
        The parsed manifest; an empty file yields an empty dict.

    Raises:
        ExtensionError: If the file is unreadable, not YAML, or not a mapping.
    """
    try:
        content = Path(path).read_text()
    except OSError as err:
        raise ExtensionError(f"Failed to read pod extension {path}: {err}") from err
    try:
        extension = yaml.safe_load(content)
    except yaml.YAMLError as err:
        raise ExtensionError(f"Failed to parse pod extension {path}: {err}") from err
    if extension is None:
        return {}
    if not isinstance(extension, dict):
        raise ExtensionError(f"Pod extension {path} must be a mapping, got {type(extension).__name__}")
    return extension


_FIELD_TYPES = {
    "metadata": dict,
    "spec": dict,
    "metadata.labels": dict,
    "metadata.annotations": dict,
    "spec.serviceAccountName": str,
    "spec.volumes": list,
    "spec.containers": list,
}
_CONTAINER_FIELD_TYPES = {"env": list, "volumeMounts": list}


def _expect(value: object, kind: type, field: str) -> None:
    if value is not None and not isinstance(value, kind):
        raise ExtensionError(f"Pod extension field {field} must be a {kind.__name__}, got {type(value).__name__}")


def check_extension(extension: dict) -> None:
    """Check that the fields merge_extension reads have Pod manifest shapes.

    Raises:
        ExtensionError: On the first field with the wrong type.
    """
    for path, kind in _FIELD_TYPES.items():
        parent, _, key = path.rpartition(".")
        holder = extension.get(parent) if parent else extension
        if isinstance(holder, dict):
            _expect(holder.get(key), kind, path)
    for i, container in enumerate((extension.get("spec") or {}).get("containers") or []):
        _expect(container, dict, f"spec.containers[{i}]")
        for key, kind in _CONTAINER_FIELD_TYPES.items():
            _expect(container.get(key), kind, f"spec.containers[{i}].{key}")


def merge_extension(pod: dict, extension: dict) -> None:
    """Merge the significant parts of an extension into ``pod`` in place.

    - ``spec.volumes`` are appended.
    - ``spec.serviceAccountName`` replaces the pod's when non-empty.
    - ``metadata.labels`` and ``metadata.annotations`` override on key collision.
    - Env and volume mounts of the extension container named ``$job`` are
      appended to the pod's first container. Other containers are ignored.

    Everything else in the extension is ignored.

    Raises:
        ExtensionError: If a merged field does not have the shape of a Pod field.
    """
    check_extension(extension)
    ext_meta = extension.get("metadata") or {}
    ext_spec = extension.get("spec") or {}
    meta = pod.setdefault("metadata", {})
    spec = pod.setdefault("spec", {})

    ext_volumes = ext_spec.get("volumes") or []
    if ext_volumes:
        spec["volumes"] = list(spec.get("volumes") or []) + list(ext_volumes)

    if ext_spec.get("serviceAccountName"):
        spec["serviceAccountName"] = ext_spec["serviceAccountName"]

    for key in ("labels", "annotations"):
        if ext_meta.get(key) is not None:
            merged = dict(meta.get(key) or {})
            merged.update(ext_meta[key])
            meta[key] = merged

    containers = spec.get("containers") or []
    if not containers:
        return
    job_container = containers[0]
    for ext_container in ext_spec.get("containers") or []:
        if ext_container.get("name") != EXTENSION_JOB_CONTAINER:
            continue
        job_container["env"] = list(job_container.get("env") or []) + list(ext_container.get("env") or [])
        job_container["volumeMounts"] = (
            list(job_container.get("volumeMounts") or []) + list(ext_container.get("volumeMounts") or [])
        )


def apply_extension(pod: dict, path: str | Path) -> None:
    """Load the extension at ``path`` and merge it into ``pod``.

    Raises:
        ExtensionError: If the extension cannot be loaded.
    """
    logger.debug("Applying pod extension %s", path)
    merge_extension(pod, load_extension(path))
