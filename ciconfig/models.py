"""Core data models shared across ciconfig components."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import DecodeFailure


@dataclass(frozen=True)
class File:
    """A named configuration document."""

    name: str
    data: str


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class Repository(_Section):
    """Repository the build runs for."""

    name: str = ""
    full_name: str = ""
    owner: str = ""
    branch: str = Field("", validation_alias=AliasChoices("default_branch", "branch"))
    config_path: str = Field("", validation_alias=AliasChoices("config_file", "config_path"))


class PipelineEvent(_Section):
    """The build event that triggered the configuration lookup."""

    event: str = ""
    title: str = ""
    commit: str = ""
    ref: str = ""
    branch: str = ""
    message: str = ""
    sender: str = ""


class Credential(_Section):
    """Forge credentials of the build. Never exposed to scripts."""

    type: str = ""
    login: str = ""
    machine: str = ""
    password: str = ""


class Environment(BaseModel):
    """Everything known about the build a configuration is requested for."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    repo: Repository = Field(default_factory=Repository)
    pipeline: PipelineEvent = Field(default_factory=PipelineEvent)
    netrc: Credential = Field(default_factory=Credential)

    @field_validator("repo", "pipeline", "netrc", mode="before")
    @classmethod
    def _null_section(cls, value: Any) -> Any:
        return {} if value is None else value

    @classmethod
    def decode(cls, raw: bytes | str) -> "Environment":
        """Decode a JSON request body, raising DecodeFailure on malformed input."""
        try:
            return cls.model_validate_json(raw)
        except ValidationError as exc:
            raise DecodeFailure(f"failed to decode environment: {exc}") from exc


def duplicate_names(files: Iterable[File]) -> List[str]:
    """Return every name used by more than one file, in first-seen order."""
    counts = Counter(file.name for file in files)
    return [name for name, count in counts.items() if count > 1]


__all__ = [
    "Credential",
    "Environment",
    "File",
    "PipelineEvent",
    "Repository",
    "duplicate_names",
]
