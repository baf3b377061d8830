"""Stream loading, configuration discovery and table persistence for the CLI."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from ..configuration import PROJECT_FILENAME, load_project_config
from ..ingestion import ParseResult, load_events
from .errors import CliError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "IMEI_FORENSICS_CONFIG"

_PARQUET_DEPENDENCY_MESSAGE = (
    "Writing Parquet reports requires a pandas Parquet engine "
    "(install 'pyarrow' or 'fastparquet')."
)

__all__ = [
    "CONFIG_ENV_VAR",
    "load_cli_config",
    "load_stream",
    "persist_table",
]


def _iter_unique_paths(candidates: List[Path]) -> List[Path]:
    seen: Dict[Path, None] = {}
    ordered: List[Path] = []
    for candidate in candidates:
        resolved = candidate.expanduser().resolve(strict=False)
        if resolved in seen:
            continue
        seen[resolved] = None
        ordered.append(resolved)
    return ordered


def _pyproject_candidates(base: Path) -> List[Path]:
    base = base.expanduser()
    if base.name == PROJECT_FILENAME:
        return [base]
    if base.suffix:
        return []
    return [base / PROJECT_FILENAME]


def load_cli_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load CLI defaults from ``pyproject.toml`` files.

    ``path`` wins over the ``IMEI_FORENSICS_CONFIG`` environment variable,
    which wins over the working directory.  The resolved source is stored
    under ``_config_path`` (``None`` when nothing was found).
    """

    env_config = os.environ.get(CONFIG_ENV_VAR)
    bases: List[Path] = []
    if path is not None:
        bases.append(Path(path))
    if env_config:
        bases.append(Path(env_config))
    bases.append(Path.cwd())

    candidates: List[Path] = []
    for base in bases:
        candidates.extend(_pyproject_candidates(base))

    for candidate in _iter_unique_paths(candidates):
        loaded = load_project_config(candidate)
        if not loaded:
            continue
        payload, resolved = loaded
        payload["_config_path"] = str(resolved)
        return payload

    return {"_config_path": None}


def load_stream(source: Path) -> ParseResult:
    """Parse the swap event stream at ``source``."""

    if not source.exists():
        raise CliError(
            f"Swap event stream {source} does not exist",
            category="not_found",
            context={"path": str(source)},
        )
    try:
        result = load_events(source)
    except (OSError, EOFError) as exc:
        raise CliError(
            f"Unable to read swap event stream {source}: {exc}",
            category="io",
            context={"path": str(source)},
        ) from exc

    logger.info(
        "Loaded swap event stream",
        extra={
            "event": "cli.stream_loaded",
            "path": str(source),
            "accepted": result.accepted_count,
            "errors": result.error_count,
        },
    )
    return result


def persist_table(frame: pd.DataFrame, destination: Path) -> Path:
    """Write ``frame`` as CSV, JSON or Parquet depending on the suffix."""

    suffix = destination.suffix.lower()
    context = {"destination": str(destination), "format": suffix.lstrip(".")}
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        if suffix == ".csv":
            frame.to_csv(destination, index=False)
        elif suffix == ".json":
            frame.to_json(destination, orient="records", indent=2)
        elif suffix == ".parquet":
            try:
                frame.to_parquet(destination, index=False)
            except (ImportError, ValueError) as exc:
                raise CliError(
                    _PARQUET_DEPENDENCY_MESSAGE, category="usage", context=context
                ) from exc
        else:
            raise CliError(
                f"Unsupported output format '{suffix or destination.name}'.",
                category="usage",
                context=context,
            )
    except OSError as exc:
        raise CliError(
            f"Unable to write {destination}: {exc}", category="io", context=context
        ) from exc
    return destination
