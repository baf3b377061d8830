"""Root logger configuration shared by the command line tools."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

__all__ = ["JsonFormatter", "setup_logging"]

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_HANDLER_MARKER = "_imei_forensics_handler"

# Attributes present on every LogRecord; anything else came from ``extra=``.
_RESERVED = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    return str(value)


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object including its ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key in _RESERVED or key.startswith("_"):
                continue
            payload[key] = _jsonable(value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, sort_keys=True)


def _resolve_level(value: Any) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value or "info").upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown logging level '{value}'")
    return level


def _build_handler(output: str) -> logging.Handler:
    target = (output or "stderr").strip()
    if target.lower() == "stderr":
        return logging.StreamHandler(sys.stderr)
    if target.lower() == "stdout":
        return logging.StreamHandler(sys.stdout)
    path = Path(target).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, encoding="utf8")


def setup_logging(config: Mapping[str, Any] | None = None) -> logging.Logger:
    """Configure the root logger from the ``logging`` table of ``config``.

    Recognised keys are ``level`` (``info`` by default), ``output``
    (``stderr``, ``stdout`` or a file path) and ``format`` (``json`` or
    ``text``).  Calling it again replaces the handler installed previously.
    """

    section: Mapping[str, Any] = {}
    if isinstance(config, Mapping):
        nested = config.get("logging")
        section = nested if isinstance(nested, Mapping) else {}

    fmt = str(section.get("format", "json")).lower()
    if fmt not in {"json", "text"}:
        raise ValueError(f"Unknown logging format '{fmt}'")

    logger = logging.getLogger()
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()

    handler = _build_handler(str(section.get("output", "stderr")))
    handler.setFormatter(JsonFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT))
    setattr(handler, _HANDLER_MARKER, True)
    logger.addHandler(handler)
    logger.setLevel(_resolve_level(section.get("level", "info")))
    return logger
