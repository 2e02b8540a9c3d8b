"""Resolution pipeline: providers, converters, name sanitization and duplicate checks."""

from __future__ import annotations

from enum import Enum
from pathlib import PurePosixPath
from typing import List, Sequence

from .converters import Converters
from .errors import DuplicateNames
from .logging import get_logger
from .models import Environment, File, duplicate_names
from .providers import Providers


class Stage(str, Enum):
    """Steps a resolution request passes through."""

    RECEIVED = "received"
    PROVIDERS_RESOLVED = "providers_resolved"
    CONVERTED = "converted"
    SANITIZED = "sanitized"


def sanitize_name(name: str) -> str:
    """Flatten path separators to ``__`` and drop the file extension."""
    flat = name.replace("/", "__")
    suffix = PurePosixPath(flat).suffix if flat else ""
    return flat[: -len(suffix)] if suffix else flat


def sanitize(files: Sequence[File]) -> List[File]:
    sanitized = [File(name=sanitize_name(file.name), data=file.data) for file in files]
    duplicates = duplicate_names(sanitized)
    if duplicates:
        raise DuplicateNames(duplicates)
    return sanitized


class Orchestrator:
    """Coordinates providers and converters for one build environment at a time.

    Providers and converters are read-only after construction, so a single
    orchestrator serves concurrent requests.
    """

    def __init__(self, providers: Providers, converters: Converters) -> None:
        self.providers = providers
        self.converters = converters
        self.logger = get_logger("orchestrator")

    def resolve(self, env: Environment) -> List[File]:
        """Return the sanitized configuration files for ``env``.

        An empty list means no source had anything to say and the caller should
        fall back to its own configuration discovery. Hard failures propagate
        as ``ResolutionError`` subclasses.
        """
        repo = env.repo.full_name or env.repo.name
        stage = Stage.RECEIVED
        self._trace(stage, repo)
        try:
            provided = self.providers.get(env)
            stage = Stage.PROVIDERS_RESOLVED
            self._trace(stage, repo, len(provided))

            converted = self.converters.convert(provided, env)
            stage = Stage.CONVERTED
            self._trace(stage, repo, len(converted))
            if not converted:
                return []

            files = sanitize(converted)
            stage = Stage.SANITIZED
            self._trace(stage, repo, len(files))
            return files
        except Exception:
            self.logger.debug("Resolution for %s failed after stage %s", repo, stage.value)
            raise

    def _trace(self, stage: Stage, repo: str, count: int | None = None) -> None:
        if count is None:
            self.logger.debug("Resolution for %s: %s", repo, stage.value)
        else:
            self.logger.debug("Resolution for %s: %s (%d files)", repo, stage.value, count)


__all__ = ["Orchestrator", "Stage", "sanitize", "sanitize_name"]
