"""Configuration loading for ciconfig (.ciconfig.yml plus CICONFIG_* variables)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

DEFAULT_CONFIG_NAME = ".ciconfig.yml"
PROVIDER_TYPES = ("forge", "fs")

_ENV_KEYS = (
    "CICONFIG_LOG_LEVEL",
    "CICONFIG_LOG_FILE",
    "CICONFIG_SERVER_ADDRESS",
    "CICONFIG_SERVER_ENDPOINT",
    "CICONFIG_SERVER_ALLOWED_METHODS",
    "CICONFIG_SERVER_PUBLIC_KEY",
    "CICONFIG_PROVIDER_TYPES",
    "CICONFIG_PROVIDER_FS_SOURCE",
    "CICONFIG_PROVIDER_GITHUB_URL",
    "CICONFIG_PROVIDER_GITEA_URL",
    "CICONFIG_PROVIDER_REQUEST_TIMEOUT",
    "CICONFIG_SCRIPT_TIMEOUT",
)


class ConfigError(RuntimeError):
    """Raised when the configuration cannot be parsed or is invalid."""


@dataclass
class ServerConfig:
    """HTTP server settings."""

    address: str = "0.0.0.0:8080"
    endpoint: str = "/ciconfig"
    allowed_methods: List[str] = field(default_factory=lambda: ["POST"])
    public_key: Optional[Path] = None

    @property
    def host(self) -> str:
        host, _, _ = self.address.rpartition(":")
        return host or "0.0.0.0"

    @property
    def port(self) -> int:
        _, _, port = self.address.rpartition(":")
        try:
            return int(port)
        except ValueError as exc:
            raise ConfigError(f"Invalid server address: {self.address}") from exc


@dataclass
class ProviderConfig:
    """Which providers are enabled, in lookup order, and how they reach their sources."""

    types: List[str] = field(default_factory=lambda: ["forge"])
    fs_source: Optional[str] = None
    github_url: str = "https://api.github.com"
    gitea_url: Optional[str] = None
    request_timeout: float = 30.0


@dataclass
class ConverterConfig:
    """Script conversion settings."""

    script_timeout: Optional[float] = None


@dataclass
class ServiceConfig:
    """Represents the settings defined in .ciconfig.yml and the environment."""

    log_level: str = "INFO"
    log_file: Optional[Path] = None
    server: ServerConfig = field(default_factory=ServerConfig)
    providers: ProviderConfig = field(default_factory=ProviderConfig)
    converters: ConverterConfig = field(default_factory=ConverterConfig)


def load_config(
    config_path: Path | None = None, environ: Mapping[str, str] | None = None
) -> ServiceConfig:
    """Load configuration from disk, then apply environment overrides."""
    environ = os.environ if environ is None else environ
    config = ServiceConfig()

    config_file = _resolve_config_path(config_path)
    if config_file.exists():
        _apply_file(config, _read_config(config_file))
    elif config_path is not None and not config_path.expanduser().is_dir():
        raise ConfigError(f"Configuration file not found: {config_file}")

    _apply_environ(config, environ)
    _validate(config)
    return config


def _resolve_config_path(config_path: Path | None) -> Path:
    if config_path is None:
        return (Path.cwd() / DEFAULT_CONFIG_NAME).resolve()
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / DEFAULT_CONFIG_NAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _apply_file(config: ServiceConfig, data: Mapping[str, Any]) -> None:
    log_level = _as_str(data.get("log_level"))
    if log_level:
        config.log_level = log_level
    log_file = _as_str(data.get("log_file"))
    if log_file:
        config.log_file = Path(log_file).expanduser()

    server_data = _as_dict(data.get("server"))
    if server_data:
        server = config.server
        server.address = _as_str(server_data.get("address")) or server.address
        server.endpoint = _as_str(server_data.get("endpoint")) or server.endpoint
        methods = _as_str_list(server_data.get("allowed_methods"))
        if methods:
            server.allowed_methods = methods
        public_key = _as_str(server_data.get("public_key"))
        if public_key:
            server.public_key = Path(public_key).expanduser()

    provider_data = _as_dict(data.get("providers"))
    if provider_data:
        providers = config.providers
        if "types" in provider_data:
            providers.types = _as_str_list(provider_data.get("types"))
        providers.fs_source = _as_str(provider_data.get("fs_source")) or providers.fs_source
        providers.github_url = _as_str(provider_data.get("github_url")) or providers.github_url
        providers.gitea_url = _as_str(provider_data.get("gitea_url")) or providers.gitea_url
        if "request_timeout" in provider_data:
            providers.request_timeout = _require_float(
                provider_data.get("request_timeout"), "providers.request_timeout"
            )

    converter_data = _as_dict(data.get("converters"))
    if converter_data and converter_data.get("script_timeout") is not None:
        config.converters.script_timeout = _require_float(
            converter_data.get("script_timeout"), "converters.script_timeout"
        )


def _apply_environ(config: ServiceConfig, environ: Mapping[str, str]) -> None:
    values = {
        key: environ[key].strip()
        for key in _ENV_KEYS
        if key in environ and environ[key].strip()
    }

    if "CICONFIG_LOG_LEVEL" in values:
        config.log_level = values["CICONFIG_LOG_LEVEL"]
    if "CICONFIG_LOG_FILE" in values:
        config.log_file = Path(values["CICONFIG_LOG_FILE"]).expanduser()
    if "CICONFIG_SERVER_ADDRESS" in values:
        config.server.address = values["CICONFIG_SERVER_ADDRESS"]
    if "CICONFIG_SERVER_ENDPOINT" in values:
        config.server.endpoint = values["CICONFIG_SERVER_ENDPOINT"]
    if "CICONFIG_SERVER_ALLOWED_METHODS" in values:
        config.server.allowed_methods = _split_list(values["CICONFIG_SERVER_ALLOWED_METHODS"])
    if "CICONFIG_SERVER_PUBLIC_KEY" in values:
        config.server.public_key = Path(values["CICONFIG_SERVER_PUBLIC_KEY"]).expanduser()
    if "CICONFIG_PROVIDER_TYPES" in values:
        config.providers.types = _split_list(values["CICONFIG_PROVIDER_TYPES"])
    if "CICONFIG_PROVIDER_FS_SOURCE" in values:
        config.providers.fs_source = values["CICONFIG_PROVIDER_FS_SOURCE"]
    if "CICONFIG_PROVIDER_GITHUB_URL" in values:
        config.providers.github_url = values["CICONFIG_PROVIDER_GITHUB_URL"]
    if "CICONFIG_PROVIDER_GITEA_URL" in values:
        config.providers.gitea_url = values["CICONFIG_PROVIDER_GITEA_URL"]
    if "CICONFIG_PROVIDER_REQUEST_TIMEOUT" in values:
        config.providers.request_timeout = _require_float(
            values["CICONFIG_PROVIDER_REQUEST_TIMEOUT"], "CICONFIG_PROVIDER_REQUEST_TIMEOUT"
        )
    if "CICONFIG_SCRIPT_TIMEOUT" in values:
        config.converters.script_timeout = _require_float(
            values["CICONFIG_SCRIPT_TIMEOUT"], "CICONFIG_SCRIPT_TIMEOUT"
        )


def _validate(config: ServiceConfig) -> None:
    config.providers.types = [kind.lower() for kind in config.providers.types]
    unknown = [kind for kind in config.providers.types if kind not in PROVIDER_TYPES]
    if unknown:
        raise ConfigError(f"Unknown provider types: {', '.join(unknown)}")
    if "fs" in config.providers.types and not config.providers.fs_source:
        raise ConfigError("The fs provider requires providers.fs_source to be set")
    config.server.allowed_methods = [method.upper() for method in config.server.allowed_methods]
    if not config.server.endpoint.startswith("/"):
        config.server.endpoint = f"/{config.server.endpoint}"
    timeout = config.converters.script_timeout
    if timeout is not None and timeout <= 0:
        raise ConfigError("converters.script_timeout must be positive")


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _require_float(value: Any, key: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be a number, got {value!r}") from exc


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return _split_list(value)
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []
