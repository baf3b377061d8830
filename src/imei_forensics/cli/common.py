"""Shared helpers for the IMEI forensics command modules."""

from __future__ import annotations

import argparse
from typing import Any, Iterable, List, Mapping, Sequence

from ..analysis.filters import FilterState, InvalidFilterError
from ..analysis.pipeline import ForensicsSession, StatisticsLimits
from ..configuration import filter_defaults
from ..core.cache import resolve_cache_size
from ..core.clock import Clock, FixedClock, SystemClock
from ..core.models import RawEvent
from ..core.thresholds import ForensicThresholds
from ..exporters import exporters_registry
from .errors import CliError

__all__ = [
    "FILTER_OPTIONS",
    "add_export_argument",
    "add_filter_arguments",
    "build_session",
    "render_payload",
    "resolve_clock",
    "resolve_exports",
    "resolve_filters",
    "validated_export",
]

# (flag, destination, kind, help)
FILTER_OPTIONS: tuple[tuple[str, str, str, str], ...] = (
    ("--search", "search", "text", "Case-insensitive substring of the unit name."),
    ("--date-from", "date_from", "text", "Earliest change date (ISO-8601, inclusive)."),
    ("--date-to", "date_to", "text", "Latest change date (ISO-8601, inclusive)."),
    ("--min-downtime", "min_downtime", "number", "Minimum downtime in seconds."),
    ("--max-downtime", "max_downtime", "number", "Maximum downtime in seconds."),
    ("--only-with-downtime", "only_with_downtime", "flag", "Drop swaps with unknown downtime."),
    ("--hide-installations", "hide_installations", "flag", "Drop first installations."),
    (
        "--only-multiple-changes",
        "only_multiple_changes",
        "flag",
        "Keep units with more than one swap in the stream.",
    ),
    ("--only-power-cuts", "only_power_cuts", "flag", "Keep swaps preceded by a voltage drop."),
    (
        "--unknown-downtime-as-zero",
        "unknown_downtime_as_zero",
        "flag",
        "Compare unknown downtime as 0 against downtime bounds.",
    ),
)


def validated_export(value: Any, *, fallback: str) -> str:
    """Return ``value`` when it matches a registered exporter, else ``fallback``."""

    if isinstance(value, str) and value in exporters_registry:
        return value
    return fallback


def add_export_argument(
    parser: argparse.ArgumentParser, *, default: str, help_text: str
) -> None:
    """Register the ``--export`` flag on ``parser`` with standard semantics."""

    parser.add_argument(
        "--export",
        dest="exports",
        choices=sorted(exporters_registry.keys()),
        action="append",
        help=f"{help_text} Repeat the flag to combine exporters.",
    )
    parser.set_defaults(exports=None, export_default=default)


def add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    """Register the shared filter flags; unset flags keep configured defaults."""

    group = parser.add_argument_group("filters")
    for flag, dest, kind, help_text in FILTER_OPTIONS:
        if kind == "flag":
            group.add_argument(
                flag, dest=dest, action=argparse.BooleanOptionalAction, default=None, help=help_text
            )
        elif kind == "number":
            group.add_argument(flag, dest=dest, type=float, default=None, help=help_text)
        else:
            group.add_argument(flag, dest=dest, default=None, help=help_text)
    parser.add_argument(
        "--now",
        dest="now",
        type=int,
        default=None,
        help="Reference epoch timestamp for lifecycle durations (default: current time).",
    )


def resolve_filters(namespace: argparse.Namespace, config: Mapping[str, Any]) -> FilterState:
    """Merge the configured filter defaults with the flags given on the command line."""

    try:
        base = filter_defaults(config)
        overrides = {
            dest: getattr(namespace, dest)
            for _, dest, _, _ in FILTER_OPTIONS
            if getattr(namespace, dest, None) is not None
        }
        if not overrides:
            return base
        # Round-trip through from_mapping so CLI values get the same validation.
        merged = {
            field: getattr(base, field)
            for field in FilterState.__dataclass_fields__
        }
        merged.update(overrides)
        return FilterState.from_mapping(merged)
    except InvalidFilterError as exc:
        raise CliError(str(exc), category="usage", context={"kind": "filters"}) from exc


def resolve_clock(namespace: argparse.Namespace) -> Clock:
    now = getattr(namespace, "now", None)
    return FixedClock(now) if now is not None else SystemClock()


def build_session(
    namespace: argparse.Namespace, config: Mapping[str, Any], events: Iterable[RawEvent]
) -> ForensicsSession:
    performance = config.get("performance")
    cache_size = performance.get("cache_size") if isinstance(performance, Mapping) else None
    try:
        size = resolve_cache_size(cache_size)
    except (TypeError, ValueError):
        size = resolve_cache_size(None)
    return ForensicsSession(
        events,
        thresholds=ForensicThresholds.from_config(config),
        clock=resolve_clock(namespace),
        cache_size=size,
        limits=StatisticsLimits.from_config(config),
    )


def _unique_export_list(values: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def resolve_exports(namespace: argparse.Namespace) -> List[str]:
    """Return the exporters requested by ``namespace`` or raise :class:`CliError`."""

    exports = getattr(namespace, "exports", None)
    if exports:
        return _unique_export_list(exports)
    default = getattr(namespace, "export_default", None)
    if isinstance(default, str):
        return [default]
    raise CliError("No exporter configured for this command.", category="usage")


def render_payload(payload: Mapping[str, Any], exporters: Sequence[str] | str) -> str:
    """Render ``payload`` with every selected exporter, separated by blank lines."""

    selected = [exporters] if isinstance(exporters, str) else _unique_export_list(exporters)
    rendered: List[str] = []
    for name in selected:
        exporter = exporters_registry.get(name)
        if exporter is None:
            raise CliError(
                f"Unknown exporter '{name}'.", category="usage", context={"exporter": name}
            )
        try:
            rendered.append(exporter(payload))
        except ValueError as exc:
            raise CliError(
                f"Exporter '{name}' cannot render this report: {exc}",
                category="usage",
                context={"exporter": name},
            ) from exc
    return "\n\n".join(rendered)
