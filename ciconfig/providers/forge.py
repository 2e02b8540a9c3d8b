"""Provider that fetches the configured pipeline file from the build's forge."""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from ..errors import IOFailure, NoConfigConfigured, UnknownSourceType
from ..logging import get_logger
from ..models import Environment, File
from .base import Provider
from .clients import ForgeClient, GitHubClient, GiteaClient


def default_clients(
    *,
    github_url: str = "https://api.github.com",
    gitea_url: Optional[str] = None,
    request_timeout: Optional[float] = 30.0,
) -> Dict[str, ForgeClient]:
    """Build the forge lookup table keyed by credential kind."""
    clients: Dict[str, ForgeClient] = {
        "github": GitHubClient(github_url, request_timeout=request_timeout),
    }
    if gitea_url:
        gitea = GiteaClient(gitea_url, request_timeout=request_timeout)
        clients["gitea"] = gitea
        clients["forgejo"] = gitea
    return clients


class ForgeProvider(Provider):
    """Fetches exactly one file, the repository's configured path, from its forge."""

    def __init__(self, clients: Mapping[str, ForgeClient] | None = None) -> None:
        self._clients = dict(clients) if clients is not None else default_clients()
        self.logger = get_logger("providers.forge")

    def get(self, env: Environment) -> List[File]:
        client = self._clients.get(env.netrc.type)
        if client is None:
            raise UnknownSourceType(env.netrc.type)

        # The configured path must point at a single file; globs are not supported.
        path = env.repo.config_path
        if not path:
            raise NoConfigConfigured()

        self.logger.debug("Fetching %s for %s from %s", path, env.repo.full_name, env.netrc.type)
        try:
            data = client.fetch_file(env, path, token=env.netrc.login)
        except IOFailure:
            raise
        except Exception as exc:
            raise IOFailure(f"Fetching {path} from {env.netrc.type} failed: {exc}") from exc
        return [File(name=path, data=data)]


__all__ = ["ForgeProvider", "default_clients"]
