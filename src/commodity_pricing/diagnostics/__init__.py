"""Leveled diagnostics and recoverable result types."""

from .contracts import Diagnostic, Result, Severity, now_utc
from .sinks import (
    ConsoleDiagnosticSink,
    DiagnosticRouter,
    DiagnosticSink,
    FileDiagnosticSink,
    MemoryDiagnosticSink,
)

__all__ = [
    "ConsoleDiagnosticSink",
    "Diagnostic",
    "DiagnosticRouter",
    "DiagnosticSink",
    "FileDiagnosticSink",
    "MemoryDiagnosticSink",
    "Result",
    "Severity",
    "now_utc",
]
