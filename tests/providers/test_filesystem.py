"""Tests for the filesystem provider."""

from __future__ import annotations

from pathlib import Path

import pytest

from ciconfig.errors import BadPattern, IOFailure
from ciconfig.providers import FilesystemProvider
from ciconfig.providers.filesystem import split_pattern, validate_pattern
from tests._fixtures.source_tree import SourceTree, make_env


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        ("/srv/configs/*.star", ("/srv/configs", "*.star")),
        ("/srv/configs/**/*.{star,yaml}", ("/srv/configs", "**/*.{star,yaml}")),
        ("/srv/configs/main.star", ("/srv/configs", "main.star")),
        ("*.star", (".", "*.star")),
        ("/*.star", ("/", "*.star")),
        ("configs/ci-[ab]/*.yaml", ("configs", "ci-[ab]/*.yaml")),
    ],
)
def test_split_pattern(source: str, expected: tuple[str, str]) -> None:
    assert split_pattern(source) == expected


@pytest.mark.parametrize("pattern", ["*/[]a]", "[abc", "*.{star,yaml", "trailing\\"])
def test_validate_pattern_rejects_malformed(pattern: str) -> None:
    with pytest.raises(BadPattern):
        validate_pattern(pattern)


@pytest.mark.parametrize("pattern", ["**", "*.{star,yaml}", "[!a]*.star", "a\\*b", "}odd"])
def test_validate_pattern_accepts_wellformed(pattern: str) -> None:
    validate_pattern(pattern)


def test_missing_base_directory_fails(tmp_path: Path) -> None:
    with pytest.raises(IOFailure, match="does not exist"):
        FilesystemProvider(f"{tmp_path}/unknown/unknown.star")


def test_base_must_be_a_directory(tmp_path: Path) -> None:
    target = tmp_path / "test.star"
    target.write_text("", encoding="utf-8")

    with pytest.raises(IOFailure, match="not a directory"):
        FilesystemProvider(f"{target}/unknown.star")


def test_plain_file_source_is_accepted(tmp_path: Path) -> None:
    target = tmp_path / "test.star"
    target.write_text("", encoding="utf-8")

    provider = FilesystemProvider(str(target))

    assert provider.base == tmp_path
    assert provider.pattern == "test.star"


def test_get_returns_matching_files_with_content(source_tree: SourceTree) -> None:
    source_tree.write({"a.star": "star content", "b.yaml": "yaml content", "c.xlsx": "sheet"})

    files = source_tree.provider("*.{star,yaml}").get(make_env())

    by_name = {file.name: file.data for file in files}
    assert by_name == {"a.star": "star content", "b.yaml": "yaml content"}


def test_get_walks_subdirectories_and_skips_directories(source_tree: SourceTree) -> None:
    source_tree.write(
        {
            "build.star": "root",
            "nested/deploy.star": "nested",
            "nested/deeper/release.yaml": "deeper",
            "notes.md": "ignored",
        }
    )
    (source_tree.root / "empty.star").mkdir()

    files = source_tree.provider("**/*.{star,yaml}").get(make_env())

    assert sorted(file.name for file in files) == [
        "build.star",
        "nested/deeper/release.yaml",
        "nested/deploy.star",
    ]


def test_configured_path_narrows_matches(source_tree: SourceTree) -> None:
    source_tree.write(
        {
            "build.star": "root",
            "nested/deploy.star": "nested",
            "nested/release.yaml": "release",
        }
    )

    files = source_tree.provider("**").get(make_env(config_path="nested/*.star"))

    assert [file.name for file in files] == ["nested/deploy.star"]


def test_no_matches_is_not_an_error(source_tree: SourceTree) -> None:
    source_tree.write({"readme.md": "nothing to see"})

    assert source_tree.provider("*.star").get(make_env()) == []


def test_bad_pattern_fails_before_reading(source_tree: SourceTree, monkeypatch) -> None:
    source_tree.write({"a.star": "content"})
    provider = source_tree.provider("*/[]a]")

    def _unexpected(*args, **kwargs):
        raise AssertionError("filesystem must not be touched")

    monkeypatch.setattr("ciconfig.providers.filesystem.glob.glob", _unexpected)

    with pytest.raises(BadPattern):
        provider.get(make_env())


def test_single_read_failure_aborts_the_call(source_tree: SourceTree) -> None:
    source_tree.write({"a.star": "fine", "c.star": "fine too"})
    (source_tree.root / "b.star").write_bytes(b"\xff\xfe\xfa")

    with pytest.raises(IOFailure, match="b.star"):
        source_tree.provider("*.star").get(make_env())


def test_hidden_configuration_paths_are_matched(source_tree: SourceTree) -> None:
    source_tree.write(
        {
            ".woodpecker/build.yaml": "steps: []\n",
            ".woodpecker.star": "def main(ctx):\n    return []\n",
            "docs/readme.md": "hello\n",
        }
    )

    files = source_tree.provider("**").get(make_env())

    assert [file.name for file in files] == [
        ".woodpecker.star",
        ".woodpecker/build.yaml",
        "docs/readme.md",
    ]


def test_configured_path_may_point_into_hidden_directories(source_tree: SourceTree) -> None:
    source_tree.write(
        {
            ".woodpecker/build.yaml": "steps: [build]\n",
            ".woodpecker/lint.yaml": "steps: [lint]\n",
            "ci.yaml": "steps: []\n",
        }
    )

    files = source_tree.provider("**/*.yaml").get(make_env(config_path=".woodpecker/*.yaml"))

    assert [file.name for file in files] == [".woodpecker/build.yaml", ".woodpecker/lint.yaml"]
