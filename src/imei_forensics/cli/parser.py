"""Argument parsing helpers for the IMEI forensics CLI."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Mapping, Optional

from .common import add_export_argument, add_filter_arguments, validated_export
from .commands import handle_audit, handle_lifecycle, handle_map, handle_metrics


def _section(config: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = config.get(name, {})
    return value if isinstance(value, Mapping) else {}


def _add_stream_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "stream",
        type=Path,
        help="Newline-delimited JSON swap event stream (plain or gzip).",
    )


def build_parser(config: Optional[Mapping[str, Any]] = None) -> argparse.ArgumentParser:
    config = dict(config or {})
    logging_cfg = _section(config, "logging")

    parser = argparse.ArgumentParser(
        prog="imei-forensics",
        description="Forensic analysis of IMEI and SIM swaps on vehicle tracking units",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        type=Path,
        default=None,
        help="Path to the pyproject.toml holding a [tool.imei_forensics] table.",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default=logging_cfg.get("level", "info"),
        help="Logging level (e.g. debug, info, warning).",
    )
    parser.add_argument(
        "--log-output",
        dest="log_output",
        default=logging_cfg.get("output", "stderr"),
        help="Logging destination (stdout, stderr or a file path).",
    )
    parser.add_argument(
        "--log-format",
        dest="log_format",
        choices=("json", "text"),
        default=logging_cfg.get("format", "json"),
        help="Logging formatter (json or text).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    audit_cfg = _section(config, "audit")
    audit_parser = subparsers.add_parser(
        "audit",
        help="List enriched swap events with risk, power-cut and SIM-swap flags.",
    )
    _add_stream_argument(audit_parser)
    add_filter_arguments(audit_parser)
    audit_parser.add_argument(
        "--grouped",
        action="store_true",
        default=bool(audit_cfg.get("grouped", False)),
        help="Group the audit rows per unit, most recently changed unit first.",
    )
    audit_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Also write the audit table to this path (.csv, .json or .parquet).",
    )
    add_export_argument(
        audit_parser,
        default=validated_export(audit_cfg.get("export"), fallback="csv"),
        help_text="Exporter used to render the audit table (default: csv).",
    )
    audit_parser.set_defaults(handler=handle_audit)

    lifecycle_cfg = _section(config, "lifecycle")
    lifecycle_parser = subparsers.add_parser(
        "lifecycle",
        help="Reconstruct per-unit device histories and failure rates.",
    )
    _add_stream_argument(lifecycle_parser)
    add_filter_arguments(lifecycle_parser)
    lifecycle_parser.add_argument(
        "--intervals",
        action="store_true",
        help="Tabulate the longest closed device intervals instead of the unit histories.",
    )
    add_export_argument(
        lifecycle_parser,
        default=validated_export(lifecycle_cfg.get("export"), fallback="markdown"),
        help_text="Exporter used to render the lifecycle report (default: markdown).",
    )
    lifecycle_parser.set_defaults(handler=handle_lifecycle)

    metrics_cfg = _section(config, "metrics")
    metrics_parser = subparsers.add_parser(
        "metrics",
        help="Compute downtime percentiles, buckets and unit rankings.",
    )
    _add_stream_argument(metrics_parser)
    add_filter_arguments(metrics_parser)
    add_export_argument(
        metrics_parser,
        default=validated_export(metrics_cfg.get("export"), fallback="json"),
        help_text="Exporter used to render the metrics (default: json).",
    )
    metrics_parser.set_defaults(handler=handle_metrics)

    map_cfg = _section(config, "map")
    map_parser = subparsers.add_parser(
        "map",
        help="List the positions reported before and after every swap.",
    )
    _add_stream_argument(map_parser)
    add_filter_arguments(map_parser)
    add_export_argument(
        map_parser,
        default=validated_export(map_cfg.get("export"), fallback="json"),
        help_text="Exporter used to render the swap locations (default: json).",
    )
    map_parser.set_defaults(handler=handle_map)

    return parser
