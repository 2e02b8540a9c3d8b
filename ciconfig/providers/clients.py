"""Clients that fetch single files from hosted git forges."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from ..errors import IOFailure
from ..models import Environment

Opener = Callable[..., object]


class ForgeClient(ABC):
    """Fetches a file at a path for the repository and revision of a build."""

    accept = "*/*"

    def __init__(
        self,
        base_url: str,
        *,
        request_timeout: Optional[float] = 30.0,
        opener: Opener | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self._opener = opener or urlopen

    @abstractmethod
    def file_url(self, env: Environment, path: str) -> str:
        """Return the URL serving the raw content of ``path``."""

    @abstractmethod
    def auth_headers(self, token: str) -> Dict[str, str]:
        """Return the headers carrying the access token."""

    def fetch_file(self, env: Environment, path: str, *, token: str) -> str:
        url = self.file_url(env, path)
        headers = {"Accept": self.accept}
        if token:
            headers.update(self.auth_headers(token))
        request = Request(url, headers=headers, method="GET")
        try:
            with self._opener(request, timeout=self.request_timeout) as response:  # type: ignore[attr-defined]
                raw = response.read()
        except HTTPError as exc:
            raise IOFailure(f"Fetching {path} failed with status {exc.code}: {exc.reason}") from exc
        except URLError as exc:
            raise IOFailure(f"Fetching {path} failed: {exc.reason}") from exc
        except OSError as exc:
            raise IOFailure(f"Fetching {path} failed: {exc}") from exc
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise IOFailure(f"{path} is not valid UTF-8") from exc

    @staticmethod
    def revision(env: Environment) -> str:
        return env.pipeline.commit or env.pipeline.ref or env.repo.branch

    @staticmethod
    def slug(env: Environment) -> str:
        if env.repo.full_name:
            return env.repo.full_name
        return f"{env.repo.owner}/{env.repo.name}"


class GitHubClient(ForgeClient):
    """GitHub REST API contents endpoint."""

    accept = "application/vnd.github.raw"

    def __init__(self, base_url: str = "https://api.github.com", **kwargs) -> None:
        super().__init__(base_url, **kwargs)

    def file_url(self, env: Environment, path: str) -> str:
        url = f"{self.base_url}/repos/{quote(self.slug(env))}/contents/{quote(path.lstrip('/'))}"
        revision = self.revision(env)
        if revision:
            url = f"{url}?{urlencode({'ref': revision})}"
        return url

    def auth_headers(self, token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }


class GiteaClient(ForgeClient):
    """Gitea and Forgejo raw file endpoint."""

    def file_url(self, env: Environment, path: str) -> str:
        url = f"{self.base_url}/api/v1/repos/{quote(self.slug(env))}/raw/{quote(path.lstrip('/'))}"
        revision = self.revision(env)
        if revision:
            url = f"{url}?{urlencode({'ref': revision})}"
        return url

    def auth_headers(self, token: str) -> Dict[str, str]:
        return {"Authorization": f"token {token}"}


__all__ = ["ForgeClient", "GitHubClient", "GiteaClient"]
