"""Decoding of newline-delimited JSON swap event streams."""

from __future__ import annotations

import gzip
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, Tuple

from ..core.models import OK_STATUS, RawEvent, Telemetry
from ..core.utils import is_number

logger = logging.getLogger(__name__)

__all__ = [
    "ParseResult",
    "RecordDecodeError",
    "decode_event",
    "decode_telemetry",
    "iter_lines",
    "load_events",
    "parse_lines",
    "parse_text",
]


# Upstream exporter keys mapped to model attributes.  The attribute names are
# accepted too so re-serialised streams decode unchanged.
_EVENT_ALIASES: Mapping[str, str] = {
    "unidad": "unit_name",
    "unit_name": "unit_name",
    "unit_id": "unit_id",
    "imei_ant": "old_identifier",
    "old_identifier": "old_identifier",
    "imei_nuevo": "new_identifier",
    "new_identifier": "new_identifier",
    "cambio_ts": "change_timestamp",
    "change_timestamp": "change_timestamp",
    "cambio_time": "change_time_display",
    "change_time_display": "change_time_display",
    "last": "last_signal",
    "last_signal": "last_signal",
    "first_after": "first_signal_after",
    "first_signal_after": "first_signal_after",
    "downtime_seconds": "downtime_seconds",
    "status": "status",
}

_TELEMETRY_ALIASES: Mapping[str, str] = {
    "ts": "timestamp",
    "timestamp": "timestamp",
    "time": "display_time",
    "display_time": "display_time",
    "lat": "latitude",
    "latitude": "latitude",
    "lon": "longitude",
    "longitude": "longitude",
    "iccid": "iccid",
    "io_11": "iccid_part_a",
    "iccid_part_a": "iccid_part_a",
    "io_14": "iccid_part_b",
    "iccid_part_b": "iccid_part_b",
    "pwr_ext": "external_voltage",
    "external_voltage": "external_voltage",
    "pwr_int": "internal_voltage",
    "internal_voltage": "internal_voltage",
    "gsm": "gsm_signal",
    "gsm_signal": "gsm_signal",
    "hdop": "hdop",
}


_GZIP_MAGIC = b"\x1f\x8b"


class RecordDecodeError(ValueError):
    """Raised when a payload does not have the shape of a swap event."""


@dataclass(frozen=True, slots=True)
class ParseResult:
    """Accepted events plus the number of rejected lines."""

    events: Tuple[RawEvent, ...]
    error_count: int

    @property
    def accepted_count(self) -> int:
        return len(self.events)

    @property
    def line_count(self) -> int:
        return len(self.events) + self.error_count


def _canonical(payload: Mapping[str, Any], aliases: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, value in payload.items():
        target = aliases.get(str(key))
        if target is None:
            continue
        # The first spelling wins when both the wire key and the alias appear.
        values.setdefault(target, value)
    return values


def _optional_float(value: Any) -> Optional[float]:
    if not is_number(value):
        return None
    return float(value)


def _optional_int(value: Any) -> Optional[int]:
    if not is_number(value):
        return None
    return int(value)


def _identifier(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if is_number(value) and float(value).is_integer():
        return str(int(value))
    return None


def _fragment(value: Any) -> Optional[str]:
    """Return an ICCID fragment as text; zero or empty means not reported."""

    if isinstance(value, str):
        text = value.strip()
        return text if text and text != "0" else None
    if not is_number(value) or value == 0:
        return None
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _display_from_timestamp(timestamp: int) -> str:
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError) as exc:
        raise RecordDecodeError(f"Change timestamp {timestamp} is out of range") from exc


def decode_telemetry(payload: Any) -> Optional[Telemetry]:
    """Decode a telemetry mapping; anything else means no reading."""

    if not isinstance(payload, Mapping):
        return None
    values = _canonical(payload, _TELEMETRY_ALIASES)
    iccid = _identifier(values.get("iccid"))
    display = values.get("display_time")
    return Telemetry(
        timestamp=_optional_int(values.get("timestamp")),
        display_time=display if isinstance(display, str) else None,
        latitude=_optional_float(values.get("latitude")),
        longitude=_optional_float(values.get("longitude")),
        iccid=iccid or None,
        iccid_part_a=_fragment(values.get("iccid_part_a")),
        iccid_part_b=_fragment(values.get("iccid_part_b")),
        external_voltage=_optional_float(values.get("external_voltage")),
        internal_voltage=_optional_float(values.get("internal_voltage")),
        gsm_signal=_optional_float(values.get("gsm_signal")),
        hdop=_optional_float(values.get("hdop")),
    )


def decode_event(payload: Any) -> RawEvent:
    """Convert one decoded JSON object into a :class:`RawEvent`.

    Raises
    ------
    RecordDecodeError
        If the payload is not a mapping, its ``status`` is not ``"ok"`` or a
        required field (unit name, new identifier, change timestamp) is
        missing or malformed.
    """

    if not isinstance(payload, Mapping):
        raise RecordDecodeError("Swap event payload must be a JSON object")
    values = _canonical(payload, _EVENT_ALIASES)

    status = values.get("status")
    if status != OK_STATUS:
        raise RecordDecodeError(f"Rejected record status {status!r}")

    unit_name = values.get("unit_name")
    if not isinstance(unit_name, str):
        raise RecordDecodeError("Missing unit name")

    new_identifier = _identifier(values.get("new_identifier"))
    if not new_identifier:
        raise RecordDecodeError("Missing new identifier")

    change_timestamp = _optional_int(values.get("change_timestamp"))
    if change_timestamp is None:
        raise RecordDecodeError("Missing change timestamp")

    unit_id_raw = values.get("unit_id")
    unit_id = _optional_int(unit_id_raw)
    if unit_id is None and isinstance(unit_id_raw, str) and unit_id_raw.strip().isdigit():
        unit_id = int(unit_id_raw)

    display = values.get("change_time_display")
    if not isinstance(display, str) or not display:
        display = _display_from_timestamp(change_timestamp)

    return RawEvent(
        unit_name=unit_name,
        unit_id=unit_id if unit_id is not None else 0,
        old_identifier=_identifier(values.get("old_identifier")) or "",
        new_identifier=new_identifier,
        change_timestamp=change_timestamp,
        change_time_display=display,
        last_signal=decode_telemetry(values.get("last_signal")),
        first_signal_after=decode_telemetry(values.get("first_signal_after")),
        downtime_seconds=_optional_int(values.get("downtime_seconds")),
        status=OK_STATUS,
    )


def _decode_line(line: str | bytes) -> RawEvent:
    if isinstance(line, bytes):
        try:
            line = line.decode("utf8")
        except UnicodeDecodeError as exc:
            raise RecordDecodeError("Line is not valid UTF-8") from exc
    try:
        payload = json.loads(line)
    except ValueError as exc:
        raise RecordDecodeError("Line is not valid JSON") from exc
    return decode_event(payload)


def parse_lines(lines: Iterable[str | bytes]) -> ParseResult:
    """Decode every non-blank line, counting the ones that are rejected.

    A rejected line never aborts the batch, so ``accepted + error_count``
    always equals the number of non-blank input lines.
    """

    events: list[RawEvent] = []
    errors = 0
    for line in lines:
        if not line.strip():
            continue
        try:
            events.append(_decode_line(line))
        except RecordDecodeError:
            errors += 1
        except (RecursionError, OverflowError):
            # Pathologically nested or out-of-range payloads.
            errors += 1

    if errors:
        logger.warning(
            "Rejected swap event lines",
            extra={"event": "ingestion.rejected", "accepted": len(events), "errors": errors},
        )
    elif logger.isEnabledFor(logging.DEBUG):
        logger.debug("Parsed swap event lines", extra={"accepted": len(events)})
    return ParseResult(events=tuple(events), error_count=errors)


def parse_text(text: str) -> ParseResult:
    """Parse an in-memory NDJSON blob."""

    return parse_lines(text.split("\n"))


def iter_lines(path: str | Path) -> Iterator[bytes]:
    """Yield raw lines from a plain or gzip-compressed stream file.

    Compression is detected from the gzip magic bytes.  Lines are left
    undecoded so one bad byte sequence only rejects its own line.
    """

    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Swap event stream {source} does not exist")

    with source.open("rb") as head:
        compressed = head.read(len(_GZIP_MAGIC)) == _GZIP_MAGIC

    opener = gzip.open if compressed else open
    with opener(source, "rb") as handle:
        yield from handle


def load_events(path: str | Path) -> ParseResult:
    """Read and parse the swap event stream stored at ``path``.

    Raises
    ------
    OSError
        The file cannot be read or its gzip framing is corrupt.
    EOFError
        A gzip stream ends before its end-of-stream marker.
    """

    return parse_lines(iter_lines(path))
