"""
Console exporter for debugging and development.

Prints spans to stdout for quick verification.
"""

from opentelemetry.sdk.trace.export import ConsoleSpanExporter


def create_console_exporter() -> ConsoleSpanExporter:
    """Create a span exporter that writes pretty-printed JSON to stdout."""
    return ConsoleSpanExporter()
