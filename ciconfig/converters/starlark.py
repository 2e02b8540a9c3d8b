"""Converter that transpiles Starlark pipeline scripts into YAML documents."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any, Dict, List

import yaml

from ..errors import DecodeFailure, MissingName, NoContent
from ..logging import get_logger
from ..models import Environment, File
from .base import Converter
from .interpreter import StarlarkInterpreter


def build_context(env: Environment) -> Dict[str, Dict[str, str]]:
    """Return the records handed to the script entrypoint as ``ctx.repo`` and ``ctx.build``.

    Only repository and build metadata are exposed. ``env.netrc`` holds the
    forge credentials and must never be added here: scripts are authored by
    third parties.
    """
    return {
        "repo": {
            "owner": env.repo.owner,
            "name": env.repo.name,
            "fullName": env.repo.full_name,
            "branch": env.repo.branch,
        },
        "build": {
            "event": env.pipeline.event,
            "title": env.pipeline.title,
            "commit": env.pipeline.commit,
            "ref": env.pipeline.ref,
            "branch": env.pipeline.branch,
            "message": env.pipeline.message,
            "sender": env.pipeline.sender,
        },
    }


def normalize(value: Any) -> Any:
    """Map interpreter values onto what the YAML documents expect (None becomes [])."""
    if value is None:
        return []
    if isinstance(value, dict):
        return {key: normalize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize(item) for item in value]
    return value


class _IndentedDumper(yaml.SafeDumper):
    """Indents block sequences below their parent key."""

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


def dump_document(body: Dict[str, Any]) -> str:
    return yaml.dump(
        body,
        Dumper=_IndentedDumper,
        indent=2,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )


class StarlarkConverter(Converter):
    """Runs ``main(ctx)`` of a Starlark file and emits one document per returned workflow."""

    suffixes = (".star",)
    entrypoint = "main"

    def __init__(self, interpreter: StarlarkInterpreter | None = None) -> None:
        self.interpreter = interpreter or StarlarkInterpreter()
        self.logger = get_logger("converters.starlark")

    def compatible(self, file: File) -> bool:
        return PurePosixPath(file.name).suffix in self.suffixes

    def convert(self, file: File, env: Environment) -> List[File]:
        if not file.data:
            raise NoContent()

        result = self.interpreter.execute(file.data, self.entrypoint, build_context(env))
        workflows = self._workflows(normalize(result))

        names: List[str] = []
        for workflow in workflows:
            name = workflow.get("name")
            if not isinstance(name, str) or not name:
                raise MissingName("name")
            names.append(name)

        files: List[File] = []
        for name, workflow in zip(names, workflows):
            body = {key: value for key, value in workflow.items() if key != "name"}
            files.append(File(name=name, data=dump_document(body)))
        self.logger.debug("Transpiled %s into %d workflows", file.name or "<inline>", len(files))
        return files

    @staticmethod
    def _workflows(value: Any) -> List[Dict[str, Any]]:
        if not isinstance(value, list):
            raise DecodeFailure(f"entrypoint must return a list of workflows, got {type(value).__name__}")
        for index, item in enumerate(value):
            if not isinstance(item, dict):
                raise DecodeFailure(f"workflow {index} is a {type(item).__name__}, expected a dict")
        return value


__all__ = ["StarlarkConverter", "build_context", "dump_document", "normalize"]
