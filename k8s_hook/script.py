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

"""Run script generation and staging.

The step command is not passed to the exec call directly. It is wrapped in a
small POSIX shell script that sets up PATH, the working directory and the
step environment, staged on the work volume shared with the pod, and run
with ``sh -e``.
"""

from __future__ import annotations

import os
import shlex
import tempfile
from collections.abc import Mapping, Sequence

from k8s_hook.constants import (
    CONTAINER_TEMP_DIR,
    INVALID_ENV_KEY_CHARS,
    RUN_SCRIPT_PREFIX,
    RUN_SCRIPT_SUFFIX,
)
from k8s_hook.errors import ValidationError
from k8s_hook.types import ContainerDefinition


def escape_value(value: str) -> str:
    """Escape a value for interpolation inside double quotes.

    Backslashes go first so the escapes added for the other characters are
    not escaped again.
    """
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("$", "\\$")
        .replace("`", "\\`")
    )


def validate_env_key(key: str) -> None:
    """Reject environment keys that would break out of ``"KEY=VALUE"``.

    Raises:
        ValidationError: If the key contains ``"``, ``'``, ``=`` or ``$``.
    """
    if any(ch in key for ch in INVALID_ENV_KEY_CHARS):
        raise ValidationError(
            f"invalid character [\"'=$] in environment variable key: {key}"
        )


def script_environment(env: Mapping[str, str]) -> str:
    """Build the ``env "K=V" ...`` prefix for the step command line.

    Raises:
        ValidationError: If any key is invalid. No output is produced then.
    """
    tokens = ["env"]
    for key, value in env.items():
        validate_env_key(key)
        tokens.append(f'"{key}={escape_value(value)}"')
    return " ".join(tokens)


def build_script(
    entrypoint: str,
    args: Sequence[str],
    env: Mapping[str, str],
    prepend_path: Sequence[str],
    workdir: str,
) -> str:
    """Build the run script for one step.

    The entrypoint is emitted as given, since image entrypoints arrive
    space-joined; each argument is quoted as a single word.

    Args:
        entrypoint: Command to exec.
        args: Arguments for the entrypoint.
        env: Step environment.
        prepend_path: Entries to put in front of ``PATH``.
        workdir: Directory to run in, or empty to stay in the default.

    Returns:
        The script text.

    Raises:
        ValidationError: If an environment key is invalid.
    """
    command_line = " ".join([script_environment(env), entrypoint, *(shlex.quote(a) for a in args)])
    lines = ["#!/bin/sh -l", "set -e"]
    if prepend_path:
        lines.append(f'export PATH="{escape_value(":".join(prepend_path))}:$PATH"')
    if workdir:
        lines.append(f"cd {shlex.quote(workdir)} && exec {command_line}")
    else:
        lines.append(f"exec {command_line}")
    return "\n".join(lines) + "\n"


def write_run_script(step: ContainerDefinition, runner_temp: str) -> tuple[str, str]:
    """Write the run script for a step into the runner's temp directory.

    Args:
        step: Step definition with entrypoint, arguments and environment.
        runner_temp: Runner temp directory, mounted in pods under ``/__w/_temp``.

    Returns:
        Tuple of (path inside the pod, local path).

    Raises:
        ValidationError: If an environment key is invalid. Nothing is written then.
    """
    script = build_script(
        step.entry_point,
        step.entry_point_args,
        step.environment_variables,
        step.prepend_path,
        step.working_directory,
    )
    fd, local_path = tempfile.mkstemp(prefix=RUN_SCRIPT_PREFIX, suffix=RUN_SCRIPT_SUFFIX, dir=runner_temp)
    with os.fdopen(fd, "w") as f:
        f.write(script)
    return f"{CONTAINER_TEMP_DIR}/{os.path.basename(local_path)}", local_path
