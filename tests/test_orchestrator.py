"""Orchestrator pipeline tests."""

from __future__ import annotations

from typing import List

import pytest

from ciconfig.converters import Converter, Converters
from ciconfig.errors import DuplicateNames, IOFailure
from ciconfig.models import Environment, File
from ciconfig.orchestrator import Orchestrator, sanitize, sanitize_name
from ciconfig.providers import Provider, Providers
from tests._fixtures.source_tree import make_env


class StaticProvider(Provider):
    def __init__(self, files: List[File] | None = None, error: Exception | None = None) -> None:
        self.files = files or []
        self.error = error

    def get(self, env: Environment) -> List[File]:
        if self.error is not None:
            raise self.error
        return list(self.files)


class UpperConverter(Converter):
    def compatible(self, file: File) -> bool:
        return file.name.endswith(".star")

    def convert(self, file: File, env: Environment) -> List[File]:
        return [File(file.name[: -len(".star")], file.data.upper())]


def _orchestrator(*providers: Provider) -> Orchestrator:
    return Orchestrator(Providers(providers), Converters([UpperConverter()]))


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("a/b.yaml", "a__b"),
        (".woodpecker/deploy.yml", ".woodpecker__deploy"),
        ("build", "build"),
        ("nested/dir/release.v2.yaml", "nested__dir__release.v2"),
    ],
)
def test_sanitize_name(name: str, expected: str) -> None:
    assert sanitize_name(name) == expected


def test_sanitize_detects_collisions_after_flattening() -> None:
    with pytest.raises(DuplicateNames) as excinfo:
        sanitize([File("a.yaml", "x"), File("a.yml", "y")])

    assert excinfo.value.names == ["a"]


def test_resolve_converts_and_sanitizes() -> None:
    orchestrator = _orchestrator(
        StaticProvider([File("ci/lint.yaml", "lint"), File("ci/build.star", "build")])
    )

    files = orchestrator.resolve(make_env())

    assert files == [File("ci__lint", "lint"), File("ci__build", "BUILD")]


def test_resolve_returns_empty_without_files() -> None:
    assert _orchestrator(StaticProvider([])).resolve(make_env()) == []


def test_resolve_rejects_names_colliding_after_sanitization() -> None:
    orchestrator = _orchestrator(StaticProvider([File("a.yaml", "one"), File("a.star", "two")]))

    with pytest.raises(DuplicateNames):
        orchestrator.resolve(make_env())


def test_resolve_propagates_provider_failures() -> None:
    orchestrator = _orchestrator(StaticProvider(error=IOFailure("disk on fire")))

    with pytest.raises(IOFailure, match="disk on fire"):
        orchestrator.resolve(make_env())
