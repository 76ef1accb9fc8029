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

"""Copying the runner's externals onto the shared work volume."""

from __future__ import annotations

import shutil
from pathlib import Path

from k8s_hook import logger


def copy_externals(runner_workspace: str) -> None:
    """Copy ``<workspace>/../../externals`` into ``<workspace>/../externals``.

    The job pod mounts the latter as ``/__e``. Failures are logged only; a
    job without externals can still run plain script steps.

    Args:
        runner_workspace: Runner workspace path; nothing is copied when empty.
    """
    if not runner_workspace:
        logger.debug("RUNNER_WORKSPACE not set, skipping externals copy")
        return
    workspace = Path(runner_workspace)
    src = workspace / ".." / ".." / "externals"
    dst = workspace / ".." / "externals"
    logger.info("Copying externals to workspace %s", workspace)
    try:
        shutil.copytree(src, dst, dirs_exist_ok=True)
    except (OSError, shutil.Error) as err:
        logger.error("Failed to copy externals: %s", err)
