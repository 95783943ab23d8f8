"""
Tracing pipeline: resource, id strategy, tracer provider and batching exporter.

The provider is not registered as the process-wide tracer provider; callers
receive the pipeline explicitly and pass its tracer to the middleware.

Spans are queued by a BatchSpanProcessor whose worker thread writes batches off
the request path. shutdown() is the one blocking call: it drains the queue within
a grace period, then closes the sink.
"""

import logging
import threading

from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter
from opentelemetry.trace import Tracer

from . import __version__
from .config import Settings
from .errors import ConfigError, TracingInitError
from .exporters.console_exporter import create_console_exporter
from .exporters.file_exporter import FileSpanExporter
from .exporters.otlp_exporter import create_otlp_trace_exporter
from .propagation.id_generator import IdStrategy, create_id_generator

logger = logging.getLogger(__name__)


def build_resource(settings: Settings) -> Resource:
    """Build the process resource once; raises TracingInitError on failure."""
    attrs: dict[str, str] = dict(settings.resource_attributes)
    attrs["service.name"] = settings.service_name
    attrs["service.version"] = settings.service_version
    try:
        return Resource.create(attrs)
    except Exception as e:
        raise TracingInitError(f"failed to create the otel resource: {e}") from e


def build_exporter(settings: Settings) -> SpanExporter:
    """Create the configured span sink; raises TracingInitError on failure."""
    try:
        if settings.exporter == "console":
            return create_console_exporter()
        if settings.exporter == "otlp":
            return create_otlp_trace_exporter(settings)
        return FileSpanExporter(settings.output_file)
    except OSError as e:
        raise TracingInitError(f"failed to create the trace file {settings.output_file}: {e}") from e
    except Exception as e:
        raise TracingInitError(f"failed to create the {settings.exporter} exporter: {e}") from e


class TracingPipeline:
    """Owns the tracer provider and its exporter for the process lifetime."""

    def __init__(
        self,
        provider: TracerProvider,
        exporter: SpanExporter,
        tracer_name: str = "healthHandler",
        shutdown_timeout_ms: int = 5000,
    ):
        self.provider = provider
        self.exporter = exporter
        self.tracer_name = tracer_name
        self.shutdown_timeout_ms = shutdown_timeout_ms
        self._lock = threading.Lock()
        self._shut_down = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "TracingPipeline":
        """Construct the full pipeline; any failure raises TracingInitError."""
        exporter = build_exporter(settings)
        try:
            resource = build_resource(settings)
            id_generator = _build_id_generator(settings)
            provider = TracerProvider(resource=resource, id_generator=id_generator)
            provider.add_span_processor(
                BatchSpanProcessor(
                    exporter,
                    max_queue_size=settings.batch.max_queue_size,
                    schedule_delay_millis=settings.batch.schedule_delay_ms,
                    max_export_batch_size=settings.batch.max_export_batch_size,
                    export_timeout_millis=settings.batch.export_timeout_ms,
                )
            )
        except Exception as e:
            exporter.shutdown()
            if isinstance(e, TracingInitError):
                raise
            raise TracingInitError(f"failed to create the tracer provider: {e}") from e

        logger.info(
            "tracing pipeline ready: exporter=%s output=%s id_generator=%s",
            settings.exporter,
            settings.output_file if settings.exporter == "file" else "-",
            id_generator.name,
        )
        return cls(
            provider,
            exporter,
            tracer_name=settings.tracer_name,
            shutdown_timeout_ms=settings.shutdown_timeout_ms,
        )

    def get_tracer(self, name: str | None = None) -> Tracer:
        return self.provider.get_tracer(name or self.tracer_name, __version__)

    def force_flush(self, timeout_ms: int | None = None) -> bool:
        """Export all queued spans; False when the timeout elapses first."""
        return self.provider.force_flush(timeout_ms or self.shutdown_timeout_ms)

    def shutdown(self, timeout_ms: int | None = None) -> bool:
        """
        Drain pending spans and close the exporter.

        The timeout bounds the flush only. provider.shutdown() still runs after a
        timed-out flush so the batch worker stops and the sink is closed; it joins
        the worker and calls the exporter's shutdown without a bound of its own,
        so a slow network sink can hold the process past the grace period.

        Errors are logged, not raised; losing trailing spans is tolerated.
        Returns True when everything was flushed and closed cleanly.
        """
        with self._lock:
            if self._shut_down:
                return True
            self._shut_down = True

        ok = True
        try:
            if not self.provider.force_flush(timeout_ms or self.shutdown_timeout_ms):
                logger.warning("span flush did not complete within %d ms", timeout_ms or self.shutdown_timeout_ms)
                ok = False
        except Exception:
            logger.exception("failed to flush pending spans")
            ok = False
        try:
            self.provider.shutdown()
        except Exception:
            logger.exception("failed to shut down the tracer provider")
            ok = False
        if ok:
            logger.info("tracing pipeline shut down")
        return ok


def _build_id_generator(settings: Settings) -> IdStrategy:
    try:
        strategy = create_id_generator(settings.resolved_id_generator, settings.fixed_span_id)
    except ConfigError as e:
        raise TracingInitError(str(e)) from e
    if not strategy.unique_span_ids:
        logger.warning("id generator %r reuses one span id for every span", strategy.name)
    return strategy
