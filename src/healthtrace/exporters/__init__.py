"""Span exporters for the tracing pipeline."""

from .console_exporter import create_console_exporter
from .file_exporter import FileSpanExporter, read_span_records, span_to_record
from .otlp_exporter import create_otlp_trace_exporter

__all__ = [
    "FileSpanExporter",
    "read_span_records",
    "span_to_record",
    "create_console_exporter",
    "create_otlp_trace_exporter",
]
