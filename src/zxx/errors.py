"""Rust-style diagnostics: construction, rendering, and reporting."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from zxx.source import SourceFile, Span


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    NOTE = "note"


# Header colour per severity
_COLORS = {
    Severity.ERROR: "\033[1;31m",    # bold red
    Severity.WARNING: "\033[1;33m",  # bold yellow
    Severity.INFO: "\033[1;32m",     # bold green
    Severity.NOTE: "\033[1;36m",     # bold cyan
}
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


@dataclass
class Diagnostic:
    """A single diagnostic with one primary span and free-text notes."""

    severity: Severity
    code: str
    message: str
    span: Span | None = None
    label: str = ""
    notes: list[str] = field(default_factory=list)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


class DiagnosticRenderer:
    """Formats one Diagnostic as text, optionally with ANSI colour."""

    def __init__(self, *, color: bool = True) -> None:
        self.color = color

    def _c(self, code: str) -> str:
        return code if self.color else ""

    def render(self, diag: Diagnostic, source: SourceFile | None = None) -> str:
        lines: list[str] = []
        sev = diag.severity
        color = _COLORS[sev]

        # Header: error[E003]: message
        lines.append(
            f"{self._c(color)}{sev.value}[{diag.code}]{self._c(_RESET)}"
            f"{self._c(_BOLD)}: {diag.message}{self._c(_RESET)}"
        )

        if diag.span is not None and source is not None:
            lines.extend(self._render_span(diag, source, color))

        for note in diag.notes:
            lines.append(f"  {self._c(_BLUE)}={self._c(_RESET)} note: {note}")

        return "\n".join(lines)

    def _render_span(
        self, diag: Diagnostic, source: SourceFile, color: str,
    ) -> list[str]:
        span = diag.span
        assert span is not None
        start_line, start_col = source.location(span.start)
        end_line, end_col = source.end_location(span)
        width = len(str(end_line))
        bar = f"  {self._c(_BLUE)}{' ' * width} |{self._c(_RESET)}"

        lines = [
            f"  {' ' * width}{self._c(_BLUE)}-->{self._c(_RESET)} "
            f"{source.name}:{start_line}:{start_col}",
            bar,
        ]
        for line_no in range(start_line, end_line + 1):
            text = source.line_at(line_no)
            lines.append(
                f"  {self._c(_BLUE)}{line_no:>{width}} |{self._c(_RESET)} {text}"
            )
            first = start_col if line_no == start_line else 1
            last = end_col if line_no == end_line else len(text) + 1
            caret_len = max(1, last - first)
            lines.append(
                f"{bar} {' ' * (first - 1)}"
                f"{self._c(color)}{'^' * caret_len}{self._c(_RESET)}"
            )

        if diag.label:
            lines.append(f"{bar}   {self._c(color)}{diag.label}{self._c(_RESET)}")
        return lines


class Reporter:
    """Builds and emits diagnostics against one named source unit.

    Every emitted diagnostic is rendered to ``stream`` right away (when a
    stream is given), recorded in ``diagnostics`` in emission order, and
    returned to the caller.
    """

    def __init__(
        self,
        source: SourceFile,
        stream: TextIO | None = None,
        renderer: DiagnosticRenderer | None = None,
    ) -> None:
        self.source = source
        self.stream = stream
        self.renderer = renderer or DiagnosticRenderer(color=False)
        self.diagnostics: list[Diagnostic] = []

    def emit(
        self,
        severity: Severity,
        message: str,
        span: Span | None,
        notes: Iterable[str] = (),
        code: str = "",
        label: str = "",
    ) -> Diagnostic:
        diag = Diagnostic(
            severity=severity,
            code=code,
            message=message,
            span=span,
            label=label,
            notes=list(notes),
        )
        if self.stream is not None:
            self.stream.write(self.renderer.render(diag, self.source) + "\n")
        self.diagnostics.append(diag)
        return diag

    def error(self, message: str, span: Span | None, notes: Iterable[str] = (),
              code: str = "", label: str = "") -> Diagnostic:
        return self.emit(Severity.ERROR, message, span, notes, code, label)

    def warning(self, message: str, span: Span | None, notes: Iterable[str] = (),
                code: str = "", label: str = "") -> Diagnostic:
        return self.emit(Severity.WARNING, message, span, notes, code, label)

    def info(self, message: str, span: Span | None, notes: Iterable[str] = (),
             code: str = "", label: str = "") -> Diagnostic:
        return self.emit(Severity.INFO, message, span, notes, code, label)

    def note(self, message: str, span: Span | None, notes: Iterable[str] = (),
             code: str = "", label: str = "") -> Diagnostic:
        return self.emit(Severity.NOTE, message, span, notes, code, label)

    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)


class CompileError(Exception):
    """Compilation failure carrying every diagnostic emitted so far."""

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics = diagnostics
        messages = [d.message for d in diagnostics if d.is_error]
        super().__init__(f"{len(messages)} error(s): {'; '.join(messages)}")

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.is_error]
