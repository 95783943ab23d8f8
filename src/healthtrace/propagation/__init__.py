"""Trace-context extraction, injection and identifier generation."""

from .context import UNSET_TRACE_CONTEXT, TraceContext, parse_span_id, parse_trace_id
from .extractors import (
    TRACE_ID_KEY,
    ContextExtractor,
    HeaderPassthroughExtractor,
    TraceparentExtractor,
    create_extractor,
)
from .id_generator import (
    FixedSpanIdStrategy,
    HeaderTraceIdStrategy,
    IdStrategy,
    RandomIdStrategy,
    create_id_generator,
)

__all__ = [
    "TraceContext",
    "UNSET_TRACE_CONTEXT",
    "parse_trace_id",
    "parse_span_id",
    "TRACE_ID_KEY",
    "ContextExtractor",
    "HeaderPassthroughExtractor",
    "TraceparentExtractor",
    "create_extractor",
    "IdStrategy",
    "RandomIdStrategy",
    "HeaderTraceIdStrategy",
    "FixedSpanIdStrategy",
    "create_id_generator",
]
