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

"""Constants shared by the pod builder, the lifecycle client and the commands."""

from __future__ import annotations

# -- Container and volume names --
JOB_CONTAINER_NAME = "job"
JOB_VOLUME_NAME = "work"
EXTENSION_JOB_CONTAINER = "$job"

# -- Labels --
LABEL_RUNNER_POD = "runner-pod"
LABEL_HOSTNAME = "kubernetes.io/hostname"

# -- Pod naming --
POD_SUFFIX_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
POD_SUFFIX_LENGTH = 5
STEP_POD_INFIX = "-step-"
JOB_POD_SUFFIX = "-workflow"
PULL_SECRET_INFIX = "-pull-secret-"

# -- Job container --
IDLE_COMMAND = ["tail"]
IDLE_ARGS = ["-f", "/dev/null"]
CI_ENV = (("GITHUB_ACTIONS", "true"), ("CI", "true"))
PULL_IF_NOT_PRESENT = "IfNotPresent"
RESTART_POLICY_NEVER = "Never"

# -- Mount paths and sub-paths on the work volume --
MOUNT_WORK_ROOT = "/__w"
MOUNT_EXTERNALS = "/__e"
MOUNT_GITHUB_HOME = "/github/home"
MOUNT_GITHUB_WORKFLOW = "/github/workflow"
MOUNT_GITHUB_WORKSPACE = "/github/workspace"
MOUNT_FILE_COMMANDS = "/github/file_commands"
SUBPATH_EXTERNALS = "externals"
SUBPATH_GITHUB_HOME = "_temp/_github_home"
SUBPATH_GITHUB_WORKFLOW = "_temp/_github_workflow"
SUBPATH_FILE_COMMANDS = "_temp/_runner_file_commands"
WORK_DIR_MARKER = "_work/"

# -- Run script staging --
CONTAINER_TEMP_DIR = "/__w/_temp"
RUN_SCRIPT_PREFIX = "run-script-"
RUN_SCRIPT_SUFFIX = ".sh"
RUN_SCRIPT_SHELL = ["sh", "-e"]
INVALID_ENV_KEY_CHARS = "\"'=$"

# -- Pod phases and waiting reasons --
PHASE_RUNNING = "Running"
PHASE_FAILED = "Failed"
REASON_IMAGE_PULL_BACKOFF = "ImagePullBackOff"
REASON_CRASH_LOOP_BACKOFF = "CrashLoopBackOff"

# -- Pull secrets --
DEFAULT_REGISTRY_SERVER = "ghcr.io"
SECRET_TYPE_DOCKER_CONFIG_JSON = "kubernetes.io/dockerconfigjson"
DOCKER_CONFIG_JSON_KEY = ".dockerconfigjson"

# -- Cluster defaults --
DEFAULT_NAMESPACE = "default"
DEFAULT_RUNNER_POD_NAME = "local-pod"
CLAIM_NAME_SUFFIX = "-work"
SERVICE_ACCOUNT_NAMESPACE_FILE = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"

# -- Timeouts --
DEFAULT_PREPARE_JOB_TIMEOUT_SECONDS = 600
WATCH_RESTART_WAIT_SECONDS = 1
WATCH_REQUEST_TIMEOUT_SECONDS = 10
EXEC_POLL_INTERVAL_SECONDS = 1
IMAGE_INSPECT_TIMEOUT_SECONDS = 30

# -- Hook state and response --
STATE_JOB_POD = "jobPod"
RESPONSE_CONTAINER_KEY = "container"

# -- Permission diagnostics: (resource, subresource, verb) --
REQUIRED_PERMISSIONS = (
    ("pods", "", "create"),
    ("pods", "", "get"),
    ("pods", "", "list"),
    ("pods", "", "watch"),
    ("pods", "", "delete"),
    ("pods", "exec", "create"),
    ("secrets", "", "create"),
    ("secrets", "", "list"),
    ("secrets", "", "delete"),
)
