"""Base classes for configuration providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List

from ..errors import SoftProviderError
from ..logging import get_logger
from ..models import Environment, File


class Provider(ABC):
    """Contract for sources that supply raw configuration files."""

    @abstractmethod
    def get(self, env: Environment) -> List[File]:
        """Return the configuration files this source holds for the environment."""


class Providers:
    """Queries providers in order and concatenates their files."""

    def __init__(self, providers: Iterable[Provider]) -> None:
        self._providers = list(providers)
        self.logger = get_logger("providers")

    def get(self, env: Environment) -> List[File]:
        results: List[File] = []
        for provider in self._providers:
            try:
                files = provider.get(env)
            except SoftProviderError as exc:
                # Nothing to contribute for this environment; the next provider may.
                self.logger.debug("Skipping %s: %s", provider.__class__.__name__, exc)
                continue
            results.extend(files)
        return results


__all__ = ["Provider", "Providers"]
