"""Configuration providers and the registry that builds them from settings."""

from __future__ import annotations

from typing import Callable, Dict, List

from ..config import ProviderConfig
from .base import Provider, Providers
from .clients import ForgeClient, GitHubClient, GiteaClient
from .filesystem import FilesystemProvider
from .forge import ForgeProvider, default_clients

PROVIDER_FACTORIES: Dict[str, Callable[[ProviderConfig], Provider]] = {
    "forge": lambda config: ForgeProvider(
        default_clients(
            github_url=config.github_url,
            gitea_url=config.gitea_url,
            request_timeout=config.request_timeout,
        )
    ),
    "fs": lambda config: FilesystemProvider(config.fs_source or ""),
}


def build_providers(config: ProviderConfig) -> Providers:
    """Instantiate the configured providers, preserving their configured order."""
    providers: List[Provider] = []
    for kind in config.types:
        factory = PROVIDER_FACTORIES.get(kind)
        if factory is None:
            raise ValueError(f"Unknown provider type: {kind}")
        providers.append(factory(config))
    return Providers(providers)


__all__ = [
    "FilesystemProvider",
    "ForgeClient",
    "ForgeProvider",
    "GitHubClient",
    "GiteaClient",
    "Provider",
    "Providers",
    "build_providers",
    "default_clients",
]
