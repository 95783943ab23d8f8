"""
Trace context value type and identifier parsing.

A zero identifier means "unset"; parsing never raises and degrades to zero.
"""

import re
from dataclasses import dataclass
from typing import Any

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import INVALID_SPAN_ID, INVALID_TRACE_ID

_TRACE_ID_RE = re.compile(r"^[0-9a-f]{32}$")
_SPAN_ID_RE = re.compile(r"^[0-9a-f]{16}$")


def parse_trace_id(value: Any) -> int:
    """Parse 32 lowercase hex chars into a trace id; 0 when absent or malformed."""
    if not isinstance(value, str) or not _TRACE_ID_RE.match(value):
        return INVALID_TRACE_ID
    return int(value, 16)


def parse_span_id(value: Any) -> int:
    """Parse 16 lowercase hex chars into a span id; 0 when absent or malformed."""
    if not isinstance(value, str) or not _SPAN_ID_RE.match(value):
        return INVALID_SPAN_ID
    return int(value, 16)


@dataclass(frozen=True)
class TraceContext:
    """Trace/span identifier pair plus optional parent span id."""

    trace_id: int = INVALID_TRACE_ID
    span_id: int = INVALID_SPAN_ID
    parent_span_id: int | None = None

    @property
    def is_valid(self) -> bool:
        return self.trace_id != INVALID_TRACE_ID and self.span_id != INVALID_SPAN_ID

    @property
    def trace_id_hex(self) -> str:
        return trace.format_trace_id(self.trace_id)

    @property
    def span_id_hex(self) -> str:
        return trace.format_span_id(self.span_id)

    @property
    def parent_span_id_hex(self) -> str | None:
        if self.parent_span_id is None:
            return None
        return trace.format_span_id(self.parent_span_id)

    @classmethod
    def from_context(cls, context: Context | None = None) -> "TraceContext":
        """Read the current span of an OpenTelemetry context (the ambient one when None)."""
        span_context = trace.get_current_span(context).get_span_context()
        if not span_context.is_valid:
            return UNSET_TRACE_CONTEXT
        return cls(trace_id=span_context.trace_id, span_id=span_context.span_id)

    @classmethod
    def from_span(cls, span: Any) -> "TraceContext":
        """Read identifiers from a live or readable span, including its parent when present."""
        span_context = span.get_span_context()
        parent = getattr(span, "parent", None)
        return cls(
            trace_id=span_context.trace_id,
            span_id=span_context.span_id,
            parent_span_id=parent.span_id if parent is not None else None,
        )


UNSET_TRACE_CONTEXT = TraceContext()
