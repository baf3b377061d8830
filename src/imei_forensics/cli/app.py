"""Command line application entry point for IMEI forensics."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

from ..logging.config import setup_logging
from .errors import CliError, log_cli_error
from .io import load_cli_config
from .parser import build_parser

CommandHandler = Callable[[argparse.Namespace, Mapping[str, Any]], str]

__all__ = ["main", "run_cli"]


def _preliminary_parser() -> argparse.ArgumentParser:
    config_parser = argparse.ArgumentParser(add_help=False)
    config_parser.add_argument("--config", dest="config_path", type=Path, default=None)
    config_parser.add_argument("--log-level", dest="log_level", default=None)
    config_parser.add_argument("--log-output", dest="log_output", default=None)
    config_parser.add_argument(
        "--log-format", dest="log_format", choices=("json", "text"), default=None
    )
    return config_parser


def _write(message: str) -> None:
    sys.stdout.write(message)
    if not message.endswith("\n"):
        sys.stdout.write("\n")


def run_cli(args: Optional[Sequence[str]] = None) -> str:
    """Execute the IMEI forensics command line interface.

    Returns the rendered report.  A :class:`CliError` is logged, its message
    printed and converted into ``SystemExit`` with the category exit status.
    """

    preliminary, remaining = _preliminary_parser().parse_known_args(args)

    try:
        config = load_cli_config(preliminary.config_path)
    except ValueError as exc:
        # tomllib.TOMLDecodeError subclasses ValueError.
        error = CliError(
            f"Invalid configuration file: {exc}",
            category="usage",
            context={"path": preliminary.config_path},
        )
        _write(error.payload.message)
        raise SystemExit(error.status_code) from exc

    logging_config = dict(config.get("logging", {}))
    if preliminary.log_level is not None:
        logging_config["level"] = preliminary.log_level
    if preliminary.log_output is not None:
        logging_config["output"] = preliminary.log_output
    if preliminary.log_format is not None:
        logging_config["format"] = preliminary.log_format
    logging_config.setdefault("level", "info")
    logging_config.setdefault("output", "stderr")
    logging_config.setdefault("format", "json")
    config["logging"] = logging_config
    setup_logging(config)

    parser = build_parser(config)
    namespace = parser.parse_args(remaining, namespace=preliminary)
    namespace.config = config
    namespace.log_level = logging_config["level"]
    namespace.log_output = logging_config["output"]
    namespace.log_format = logging_config["format"]
    namespace.config_path = preliminary.config_path or config.get("_config_path")

    handler: Optional[CommandHandler] = getattr(namespace, "handler", None)
    try:
        if handler is None:
            raise CliError(
                f"Unknown command '{getattr(namespace, 'command', None)}'.",
                category="usage",
                context={"command": getattr(namespace, "command", None)},
            )
        result = handler(namespace, config=config)
    except CliError as exc:
        if not exc.logged:
            log_cli_error(exc.payload, exc_info=exc)
            exc.logged = True
        if exc.payload.message:
            _write(exc.payload.message)
        raise SystemExit(exc.status_code) from exc
    if result:
        _write(result)
    return result


def main() -> None:  # pragma: no cover - thin wrapper
    run_cli()


if __name__ == "__main__":  # pragma: no cover - CLI invocation guard
    main()
