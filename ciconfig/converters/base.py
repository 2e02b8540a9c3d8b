"""Base classes for converters that turn raw files into pipeline documents."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence

from ..errors import DuplicateNames
from ..logging import get_logger
from ..models import Environment, File, duplicate_names


class Converter(ABC):
    """Contract for transforms from one raw file into pipeline documents."""

    @abstractmethod
    def compatible(self, file: File) -> bool:
        """Return True when this converter handles the given file."""

    @abstractmethod
    def convert(self, file: File, env: Environment) -> List[File]:
        """Produce zero or more documents replacing ``file``."""


class Converters:
    """Applies the first compatible converter to every file."""

    def __init__(self, converters: Iterable[Converter]) -> None:
        self._converters = list(converters)
        self.logger = get_logger("converters")

    def select(self, file: File) -> Optional[Converter]:
        for converter in self._converters:
            if converter.compatible(file):
                return converter
        return None

    def convert(self, files: Sequence[File], env: Environment) -> List[File]:
        results: List[File] = []
        for file in files:
            converter = self.select(file)
            if converter is None:
                results.append(file)
                continue
            converted = converter.convert(file, env)
            self.logger.debug(
                "%s turned %s into %d files",
                converter.__class__.__name__,
                file.name,
                len(converted),
            )
            results.extend(converted)

        duplicates = duplicate_names(results)
        if duplicates:
            raise DuplicateNames(duplicates)
        return results


__all__ = ["Converter", "Converters"]
