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

"""Request and response models exchanged with the job runner."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, model_validator
from pydantic.alias_generators import to_camel


class HookModel(BaseModel):
    """Base model using the runner's camelCase field names.

    Unknown fields are ignored unless validation runs with
    ``context={"strict": True}``, in which case they are rejected.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _reject_unknown_fields(cls, data: Any, info: ValidationInfo) -> Any:
        if not (info.context or {}).get("strict") or not isinstance(data, dict):
            return data
        known = set()
        for name, field in cls.model_fields.items():
            known.add(name)
            if field.alias:
                known.add(field.alias)
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown fields: {', '.join(unknown)}")
        return data


class RegistryCredentials(HookModel):
    """Private registry credentials for pulling the step or job image."""

    username: str = ""
    password: str = ""
    server_url: str = ""


class MountVolume(HookModel):
    source_volume_path: str = ""
    target_volume_path: str = ""
    read_only: bool = False
    user_provided_value: Any = None


class ContainerDefinition(HookModel):
    """A container the runner asks the hook to run.

    Attributes:
        image: Image reference.
        dockerfile: Dockerfile path for image builds (unsupported).
        entry_point: Command to run; the image inspector may fill it in.
        entry_point_args: Arguments passed to the entrypoint.
        environment_variables: Environment for the job container or step.
        working_directory: Directory the step runs in.
        prepend_path: Entries prepended to ``PATH`` in the run script.
        registry: Credentials for a private registry, if any.
        create_options: Raw container runtime options (unsupported).
        port_mappings: Declared port mappings.
        system_mount_volumes: Runner-managed volumes.
        user_mount_volumes: Workflow-declared volumes.
    """

    image: str = ""
    dockerfile: str = ""
    entry_point: str = ""
    entry_point_args: list[str] = Field(default_factory=list)
    environment_variables: dict[str, str] = Field(default_factory=dict)
    working_directory: str = ""
    prepend_path: list[str] = Field(default_factory=list)
    registry: RegistryCredentials | None = None
    create_options: Any = None
    port_mappings: list[Any] = Field(default_factory=list)
    system_mount_volumes: list[MountVolume] = Field(default_factory=list)
    user_mount_volumes: list[MountVolume] = Field(default_factory=list)


class InputArgs(ContainerDefinition):
    """Command arguments.

    Container and script steps carry their definition inline; ``prepare_job``
    carries the job container under ``container``.
    """

    container: ContainerDefinition | None = None
    services: list[dict[str, Any]] = Field(default_factory=list)


class ContainerHookInput(HookModel):
    command: str
    response_file: str = ""
    args: InputArgs = Field(default_factory=InputArgs)
    state: dict[str, Any] = Field(default_factory=dict)


class ResponseState(HookModel):
    job_pod: str


class ContainerInfo(HookModel):
    image: str
    ports: dict[str, int] = Field(default_factory=dict)


class PrepareJobResponse(HookModel):
    state: ResponseState
    context: dict[str, ContainerInfo] = Field(default_factory=dict)
    is_alpine: bool = False


def parse_hook_input(raw: str | bytes, strict: bool = False) -> ContainerHookInput:
    """Parse the JSON request the runner writes to the hook's stdin.

    Args:
        raw: JSON document.
        strict: Reject fields the hook does not know about.

    Raises:
        pydantic.ValidationError: If the document does not match the schema.
    """
    return ContainerHookInput.model_validate_json(raw, context={"strict": strict})
