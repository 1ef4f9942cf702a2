"""Contracts for leveled diagnostic events and recoverable results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from .sinks import DiagnosticRouter

T = TypeVar("T")


def now_utc() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class Severity(StrEnum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.DEBUG: 10,
    Severity.INFO: 20,
    Severity.WARNING: 30,
    Severity.ERROR: 40,
}


@dataclass(slots=True)
class Diagnostic:
    """Structured diagnostic event attached to a calculation result."""

    severity: Severity
    source: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=now_utc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": str(self.severity),
            "source": self.source,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(slots=True)
class Result(Generic[T]):
    """
    Value of a lenient calculation plus the diagnostics raised while producing it.

    `value` is None when the calculation could not produce anything; an
    error-level diagnostic accompanies that case.
    """

    value: T | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.value is not None and not any(d.severity is Severity.ERROR for d in self.diagnostics)

    def with_diagnostic(
        self,
        severity: Severity,
        source: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> "Result[T]":
        self.diagnostics.append(
            Diagnostic(severity=severity, source=source, message=message, details=details or {})
        )
        return self

    def extend(self, other: "Result[Any]") -> "Result[T]":
        self.diagnostics.extend(other.diagnostics)
        return self

    def unwrap_or(self, default: T, router: "DiagnosticRouter | None" = None) -> T:
        """Route diagnostics and return the value, or default when absent."""
        if router is not None:
            for diagnostic in self.diagnostics:
                router.route(diagnostic)
        return default if self.value is None else self.value

    @staticmethod
    def failure(source: str, message: str, details: dict[str, Any] | None = None) -> "Result[Any]":
        return Result(value=None).with_diagnostic(Severity.ERROR, source, message, details)
