"""Error helpers for the IMEI forensics command line tools."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

__all__ = [
    "CATEGORY_STATUS_CODES",
    "CliError",
    "ErrorPayload",
    "build_error_payload",
    "log_cli_error",
]


CATEGORY_STATUS_CODES: Mapping[str, int] = {
    "runtime": 1,
    "usage": 2,
    "io": 3,
    "not_found": 4,
}

_DEFAULT_CATEGORY = "runtime"
_DEFAULT_LOGGER_NAME = "imei_forensics.cli"


@dataclass(frozen=True, slots=True)
class ErrorPayload:
    """Structured description of a failed command."""

    status_code: int
    category: str
    message: str
    context: Mapping[str, Any]

    def as_dict(self) -> dict[str, Any]:
        return {
            "status_code": self.status_code,
            "category": self.category,
            "message": self.message,
            "context": dict(self.context),
        }


def _scalar_context(context: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    # Paths, exceptions and other objects are stringified for log sinks.
    if not context:
        return {}
    return {
        str(key): value
        if isinstance(value, (str, int, float, bool)) or value is None
        else str(value)
        for key, value in context.items()
    }


def build_error_payload(
    message: str,
    *,
    category: str = _DEFAULT_CATEGORY,
    status_code: Optional[int] = None,
    context: Optional[Mapping[str, Any]] = None,
) -> ErrorPayload:
    """Create an :class:`ErrorPayload`; unknown categories exit with status 1."""

    category = category or _DEFAULT_CATEGORY
    if status_code is None:
        status_code = CATEGORY_STATUS_CODES.get(
            category, CATEGORY_STATUS_CODES[_DEFAULT_CATEGORY]
        )
    return ErrorPayload(
        status_code=status_code,
        category=category,
        message=message,
        context=_scalar_context(context),
    )


def log_cli_error(
    payload: ErrorPayload,
    *,
    logger: Optional[logging.Logger] = None,
    exc_info: Optional[BaseException] = None,
) -> None:
    """Emit ``payload`` through ``logger.error`` with structured context."""

    target = logger or logging.getLogger(_DEFAULT_LOGGER_NAME)
    target.error(
        payload.message,
        extra={
            "event": "cli.error",
            "category": payload.category,
            "status_code": payload.status_code,
            "context": dict(payload.context),
        },
        exc_info=exc_info,
    )


class CliError(RuntimeError):
    """Failure surfaced to the user with a category-specific exit status."""

    def __init__(
        self,
        message: str,
        *,
        category: str = _DEFAULT_CATEGORY,
        status_code: Optional[int] = None,
        context: Optional[Mapping[str, Any]] = None,
        payload: Optional[ErrorPayload] = None,
        logged: bool = False,
    ) -> None:
        super().__init__(message)
        self.payload = payload or build_error_payload(
            message, category=category, status_code=status_code, context=context
        )
        self.logged = logged

    @property
    def category(self) -> str:
        return self.payload.category

    @property
    def status_code(self) -> int:
        return self.payload.status_code

    @property
    def context(self) -> Mapping[str, Any]:
        return self.payload.context

    @classmethod
    def from_context(
        cls,
        message: str,
        *,
        category: str = _DEFAULT_CATEGORY,
        context: Optional[Mapping[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
        cause: Optional[BaseException] = None,
    ) -> "CliError":
        """Build the error and log it immediately."""

        payload = build_error_payload(message, category=category, context=context)
        log_cli_error(payload, logger=logger, exc_info=cause)
        return cls(message, payload=payload, logged=True)
