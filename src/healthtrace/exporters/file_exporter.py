"""
File-based span exporter.

Writes one pretty-printed JSON record per span for human/tool inspection. The
file is opened (created or truncated) at construction so an unwritable sink
fails before the service starts.
"""

import json
import logging
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

from ..propagation.context import TraceContext

logger = logging.getLogger(__name__)


def span_to_record(span: ReadableSpan) -> dict[str, Any]:
    """Convert a finished span to a JSON-serializable dict."""
    start = span.start_time
    end = span.end_time
    scope = span.instrumentation_scope
    ids = TraceContext.from_span(span)
    return {
        "name": span.name,
        "trace_id": ids.trace_id_hex,
        "span_id": ids.span_id_hex,
        "parent_span_id": ids.parent_span_id_hex,
        "kind": span.kind.name if span.kind else "INTERNAL",
        "start_time": start,
        "end_time": end,
        "duration_ms": (end - start) / 1_000_000 if start is not None and end is not None else None,
        "status": {
            "status_code": span.status.status_code.name,
            "description": span.status.description,
        },
        "attributes": dict(span.attributes) if span.attributes else {},
        "events": [
            {
                "name": event.name,
                "timestamp": event.timestamp,
                "attributes": dict(event.attributes) if event.attributes else {},
            }
            for event in span.events
        ],
        "resource": dict(span.resource.attributes) if span.resource else {},
        "instrumentation_scope": {
            "name": scope.name if scope else None,
            "version": scope.version if scope else None,
        },
    }


class FileSpanExporter(SpanExporter):
    """Export spans to a file as pretty-printed JSON records."""

    def __init__(self, output_path: str | Path, append: bool = False, indent: int = 2):
        """Open the output file; OSError propagates to the caller."""
        self.output_path = Path(output_path)
        self.append = append
        self.indent = indent
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.output_path.open("a" if append else "w", encoding="utf-8")
        self._lock = threading.Lock()
        self._closed = False

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        """Export spans to file."""
        try:
            records = [span_to_record(span) for span in spans]
            with self._lock:
                if self._closed:
                    logger.warning("dropping %d spans: exporter already shut down", len(records))
                    return SpanExportResult.FAILURE
                for record in records:
                    self._file.write(json.dumps(record, indent=self.indent, default=str) + "\n")
                self._file.flush()
            return SpanExportResult.SUCCESS
        except Exception:
            logger.exception("failed to export %d spans to %s", len(spans), self.output_path)
            return SpanExportResult.FAILURE

    def shutdown(self) -> None:
        """Close the output file."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._file.close()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        """Flush buffered writes to disk."""
        with self._lock:
            if self._closed:
                return True
            try:
                self._file.flush()
            except OSError:
                logger.exception("failed to flush %s", self.output_path)
                return False
        return True


def read_span_records(path: str | Path) -> list[dict[str, Any]]:
    """Parse a file written by FileSpanExporter back into records."""
    text = Path(path).read_text(encoding="utf-8")
    decoder = json.JSONDecoder()
    records: list[dict[str, Any]] = []
    pos = 0
    while True:
        while pos < len(text) and text[pos].isspace():
            pos += 1
        if pos >= len(text):
            break
        record, pos = decoder.raw_decode(text, pos)
        records.append(record)
    return records
