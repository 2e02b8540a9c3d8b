"""Error taxonomy used to classify resolution outcomes."""

from __future__ import annotations

from typing import Iterable, List


class ResolutionError(RuntimeError):
    """Base class for every failure raised while resolving configurations."""


class SoftProviderError(ResolutionError):
    """A provider has nothing to contribute for the given environment."""


class NoConfigConfigured(SoftProviderError):
    """Raised when the repository does not declare a configuration path."""

    def __init__(self, message: str = "no configuration file provided") -> None:
        super().__init__(message)


class UnknownSourceType(SoftProviderError):
    """Raised when no source is registered for the requested forge kind."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"unknown type: {kind}")
        self.kind = kind


class NoContent(ResolutionError):
    """Raised when a file handed to a converter is empty."""

    def __init__(self, message: str = "no content provided") -> None:
        super().__init__(message)


class NoEntrypoint(ResolutionError):
    """Raised when a script does not define its entrypoint function."""

    def __init__(self, entrypoint: str) -> None:
        super().__init__(f"no entrypoint found: {entrypoint}")
        self.entrypoint = entrypoint


class MissingName(ResolutionError):
    """Raised when a produced pipeline record lacks a usable name."""

    def __init__(self, field: str = "name") -> None:
        super().__init__(f"missing parameter: {field}")
        self.field = field


class BadPattern(ResolutionError):
    """Raised for malformed glob patterns."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"syntax error in pattern {pattern!r}: {reason}")
        self.pattern = pattern


class IOFailure(ResolutionError):
    """Raised when reading from a source fails."""


class DecodeFailure(ResolutionError):
    """Raised when a payload or script result has an unexpected shape."""


class ScriptExecutionError(ResolutionError):
    """Raised when the embedded interpreter fails to run a script."""


class ScriptTimeout(ScriptExecutionError):
    """Raised when a script exceeds the configured execution time."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"script execution exceeded {timeout:g}s")
        self.timeout = timeout


class DuplicateNames(ResolutionError):
    """Raised when two or more documents share the same name."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names: List[str] = sorted(set(names))
        super().__init__(f"conversion contains duplicated files: {', '.join(self.names)}")


__all__ = [
    "BadPattern",
    "DecodeFailure",
    "DuplicateNames",
    "IOFailure",
    "MissingName",
    "NoConfigConfigured",
    "NoContent",
    "NoEntrypoint",
    "ResolutionError",
    "ScriptExecutionError",
    "ScriptTimeout",
    "SoftProviderError",
    "UnknownSourceType",
]
