"""Diagnostic routing layer: console, JSONL file and in-memory sinks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
import json

from .contracts import Diagnostic, Severity


class DiagnosticSink(ABC):
    """Abstract sink for diagnostic events."""

    @abstractmethod
    def send(self, event: Diagnostic) -> None:
        """Deliver one diagnostic event."""


class ConsoleDiagnosticSink(DiagnosticSink):
    """Simple sink that prints diagnostics to stdout."""

    def send(self, event: Diagnostic) -> None:
        payload = event.to_dict()
        print(
            f"[{payload['timestamp']}] [{payload['severity'].upper()}] "
            f"{payload['source']}: {payload['message']} details={payload['details']}"
        )


class FileDiagnosticSink(DiagnosticSink):
    """Persist diagnostics as JSONL for later review."""

    def __init__(self, output_path: str | Path) -> None:
        self.output_path = Path(output_path)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

    def send(self, event: Diagnostic) -> None:
        with self.output_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(event.to_dict(), default=str) + "\n")


class MemoryDiagnosticSink(DiagnosticSink):
    """Collects diagnostics in memory, e.g. for non-blocking UI warnings."""

    def __init__(self) -> None:
        self.events: list[Diagnostic] = []

    def send(self, event: Diagnostic) -> None:
        self.events.append(event)

    def messages(self, severity: Severity | None = None) -> list[str]:
        return [e.message for e in self.events if severity is None or e.severity is severity]


@dataclass(slots=True)
class DiagnosticRouter:
    """
    Routes diagnostic events to sinks.

    Events below min_severity are dropped before reaching any sink.
    """

    sinks: list[DiagnosticSink] = field(default_factory=list)
    min_severity: Severity = Severity.INFO

    def route(self, event: Diagnostic) -> None:
        if event.severity.rank < self.min_severity.rank:
            return
        for sink in self.sinks:
            sink.send(event)

    def emit(
        self,
        severity: Severity,
        source: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.route(Diagnostic(severity=severity, source=source, message=message, details=details or {}))

    def info(self, source: str, message: str, details: dict[str, Any] | None = None) -> None:
        self.emit(Severity.INFO, source, message, details)

    def warning(self, source: str, message: str, details: dict[str, Any] | None = None) -> None:
        self.emit(Severity.WARNING, source, message, details)

    def error(self, source: str, message: str, details: dict[str, Any] | None = None) -> None:
        self.emit(Severity.ERROR, source, message, details)

    @staticmethod
    def from_config(console: bool = False, file_path: str | Path | None = None, min_severity: str = "info") -> "DiagnosticRouter":
        sinks: list[DiagnosticSink] = []
        if console:
            sinks.append(ConsoleDiagnosticSink())
        if file_path:
            sinks.append(FileDiagnosticSink(file_path))
        return DiagnosticRouter(sinks=sinks, min_severity=Severity(min_severity))

    @staticmethod
    def collecting() -> tuple["DiagnosticRouter", MemoryDiagnosticSink]:
        sink = MemoryDiagnosticSink()
        return DiagnosticRouter(sinks=[sink], min_severity=Severity.DEBUG), sink
