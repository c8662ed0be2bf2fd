# src/logging/context.py - v1
"""Contextual logging support: attach request_id, report and operation to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Set per incoming request by the host application.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
# Set by the reporting service while a report is being composed.
_report: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "report", default=None
)
# Set by the instrumented store around each data-store call ("Model.action").
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    report: str | None = None
    operation: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        report=_report.get(),
        operation=_operation.get(),
    )


def set_request_context(request_id: str) -> None:
    """Set request-level context (called once per incoming request)."""
    _request_id.set(request_id)


def set_report_context(report: str | None) -> contextvars.Token[str | None]:
    """Set the report being composed. Returns a token for reset_report_context."""
    return _report.set(report)


def reset_report_context(token: contextvars.Token[str | None]) -> None:
    _report.reset(token)


def set_operation_context(operation: str | None) -> contextvars.Token[str | None]:
    """Set the data-store operation in flight."""
    return _operation.set(operation)


def reset_operation_context(token: contextvars.Token[str | None]) -> None:
    _operation.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _report.set(None)
    _operation.set(None)
