"""
Healthtrace - health-check service with distributed-tracing instrumentation.

This package serves a minimal HTTP health endpoint, derives a trace context from
incoming propagation headers, opens one span per request and exports spans in
batches to a file-backed sink.
"""

__version__ = "1.0.0"
