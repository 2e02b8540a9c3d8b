"""Provider that serves configuration files from a local directory."""

from __future__ import annotations

import re
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Dict, List, Tuple

from wcmatch import glob

from ..errors import BadPattern, IOFailure
from ..logging import get_logger
from ..models import Environment, File
from .base import Provider

_GLOB_FLAGS = glob.GLOBSTAR | glob.BRACE | glob.DOTGLOB
_MAGIC = re.compile(r"[*?\[{\\]")


def split_pattern(source: str) -> Tuple[str, str]:
    """Split ``source`` into the static base directory and the glob below it."""
    match = _MAGIC.search(source)
    end = match.start() if match else len(source)
    slash = source.rfind("/", 0, end)
    if slash == -1:
        return ".", source
    if slash == 0:
        return "/", source[1:]
    return source[:slash], source[slash + 1 :]


def validate_pattern(pattern: str) -> None:
    """Raise BadPattern for unterminated classes, braces or escapes."""
    depth = 0
    index = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]
        if char == "\\":
            if index + 1 >= length:
                raise BadPattern(pattern, "trailing escape")
            index += 2
            continue
        if char == "[":
            index = _class_end(pattern, index)
            continue
        if char == "{":
            depth += 1
        elif char == "}" and depth:
            depth -= 1
        index += 1
    if depth:
        raise BadPattern(pattern, "unclosed brace")


def _class_end(pattern: str, start: int) -> int:
    index = start + 1
    if index < len(pattern) and pattern[index] in "!^":
        index += 1
    if index < len(pattern) and pattern[index] == "]":
        raise BadPattern(pattern, "empty character class")
    while index < len(pattern):
        char = pattern[index]
        if char == "\\":
            index += 2
            continue
        if char == "]":
            return index + 1
        index += 1
    raise BadPattern(pattern, "unclosed character class")


class FilesystemProvider(Provider):
    """Reads every file below a base directory that matches a glob pattern."""

    def __init__(self, source: str) -> None:
        base, pattern = split_pattern(source)
        self.base = Path(base).expanduser()
        self.pattern = pattern or "**"
        self.logger = get_logger("providers.fs")
        if not self.base.exists():
            raise IOFailure(f"Provider source {self.base} does not exist")
        if not self.base.is_dir():
            raise IOFailure(f"Provider source {self.base} is not a directory")

    def get(self, env: Environment) -> List[File]:
        validate_pattern(self.pattern)
        matches = glob.glob(self.pattern, root_dir=str(self.base), flags=_GLOB_FLAGS | glob.NODIR)

        # consider all files if the repository does not narrow the selection
        selector = env.repo.config_path or "**"
        paths = [
            Path(match).as_posix()
            for match in sorted(matches)
            if glob.globmatch(Path(match).as_posix(), selector, flags=_GLOB_FLAGS)
        ]
        self.logger.debug("Matched %d files below %s", len(paths), self.base)
        if not paths:
            return []

        results: Dict[int, File] = {}
        lock = threading.Lock()

        def _read(index: int, relative: str) -> None:
            try:
                data = (self.base / relative).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise IOFailure(f"Failed to read {relative}: {exc}") from exc
            with lock:
                results[index] = File(name=relative, data=data)

        with ThreadPoolExecutor(max_workers=len(paths)) as executor:
            futures = [executor.submit(_read, index, path) for index, path in enumerate(paths)]
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()
            for future in futures:
                if future in done and future.exception() is not None:
                    raise future.exception()  # type: ignore[misc]

        return [results[index] for index in range(len(paths))]


__all__ = ["FilesystemProvider", "split_pattern", "validate_pattern"]
