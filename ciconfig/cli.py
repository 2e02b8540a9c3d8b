"""CLI entrypoints for ciconfig commands."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Callable

from .config import ConfigError, ServiceConfig, load_config
from .converters import build_converters
from .errors import DecodeFailure, ResolutionError
from .logging import configure_logging, get_logger
from .models import Environment, File
from .orchestrator import Orchestrator
from .providers import build_providers


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_config_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=argparse.SUPPRESS if suppress_default else None,
        help="Path to the configuration file (defaults to ./.ciconfig.yml).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ciconfig",
        description="Resolve and convert CI pipeline configurations.",
    )
    _add_verbose_option(parser)
    _add_config_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    server_parser = subparsers.add_parser(
        "server",
        help="Start the configuration service.",
    )
    _add_verbose_option(server_parser, suppress_default=True)
    _add_config_option(server_parser, suppress_default=True)

    convert_parser = subparsers.add_parser(
        "convert",
        help="Resolve and convert configurations for an environment file.",
    )
    _add_verbose_option(convert_parser, suppress_default=True)
    _add_config_option(convert_parser, suppress_default=True)
    convert_parser.add_argument(
        "env",
        help="Path to a JSON file describing the build environment.",
    )
    convert_parser.add_argument(
        "--out",
        default=None,
        help="Write converted files into this directory instead of printing them.",
    )

    return parser


def build_orchestrator(config: ServiceConfig) -> Orchestrator:
    return Orchestrator(
        build_providers(config.providers),
        build_converters(config.converters),
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for ciconfig commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        parser.exit(1, f"ciconfig: {exc}\n")

    configure_logging(
        level=config.log_level, verbose=bool(args.verbose), log_file=config.log_file
    )

    if args.command == "server":
        _run_server(parser, config)
    elif args.command == "convert":
        _run_convert(parser, config, args.env, args.out)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_server(parser: argparse.ArgumentParser, config: ServiceConfig) -> None:  # pragma: no cover - integration path
    from .service import Ed25519SignatureVerifier, run_service

    logger = get_logger("cli")
    try:
        orchestrator = build_orchestrator(config)
        verifier = None
        if config.server.public_key is not None:
            verifier = Ed25519SignatureVerifier.from_file(config.server.public_key)
    except (ConfigError, ResolutionError) as exc:
        parser.exit(1, f"ciconfig server failed: {exc}\n")

    logger.info("listening on %s", config.server.address)
    run_service(orchestrator, config.server, verifier, log_level=config.log_level)


def _run_convert(
    parser: argparse.ArgumentParser, config: ServiceConfig, env_path: str, out: str | None
) -> None:
    try:
        raw = Path(env_path).read_text(encoding="utf-8")
    except OSError as exc:
        parser.exit(1, f"Unable to read environment {env_path}: {exc}\n")

    try:
        env = Environment.decode(os.path.expandvars(raw))
        orchestrator = build_orchestrator(config)
        files = orchestrator.converters.convert(orchestrator.providers.get(env), env)
    except DecodeFailure as exc:
        parser.exit(1, f"{exc}\n")
    except (ConfigError, ResolutionError) as exc:
        parser.exit(1, f"ciconfig convert failed: {exc}\nRun with --verbose for more details.\n")

    report = _file_writer(Path(out)) if out else _file_printer
    for file in files:
        report(file)


def _file_writer(root: Path) -> Callable[[File], None]:
    def _write(file: File) -> None:
        target = root / file.name
        if not target.suffix:
            target = target.with_name(f"{target.name}.yaml")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(file.data, encoding="utf-8")

    return _write


def _file_printer(file: File) -> None:
    print(f"\n{file.name}\n{'=' * len(file.name)}\n{file.data}")


if __name__ == "__main__":
    main(sys.argv[1:])
