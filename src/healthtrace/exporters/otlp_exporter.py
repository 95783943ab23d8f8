"""OTLP span sink: forwards batches to a collector instead of the local file."""

from opentelemetry.sdk.trace.export import SpanExporter

from ..config import Settings


def create_otlp_trace_exporter(settings: Settings) -> SpanExporter:
    """
    Create the OTLP exporter described by the tracing settings.

    Uses otlp_endpoint and otlp_protocol; the batch export timeout becomes the
    per-request timeout of the exporter. The http endpoint gets the
    /v1/traces path appended unless it already ends with it.
    """
    timeout_s = settings.batch.export_timeout_ms / 1000
    endpoint = settings.otlp_endpoint.rstrip("/")

    if settings.otlp_protocol == "grpc":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter as GrpcExporter

        return GrpcExporter(
            endpoint=endpoint,
            insecure=endpoint.startswith("http://"),
            timeout=timeout_s,
        )

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter as HttpExporter

    if not endpoint.endswith("/v1/traces"):
        endpoint = f"{endpoint}/v1/traces"
    return HttpExporter(endpoint=endpoint, timeout=timeout_s)
