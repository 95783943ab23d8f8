"""Tracing middleware -- one SERVER span per request, bound to the extracted context."""

import asyncio
import logging

from opentelemetry import context as otel_context
from opentelemetry.trace import SpanKind, Status, StatusCode, Tracer
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from ..config import attr
from ..propagation.extractors import ContextExtractor

logger = logging.getLogger(__name__)


class TracingMiddleware(BaseHTTPMiddleware):
    """Open a span around each request.

    The extractor derives a context from the request headers; the request object
    itself is left untouched. Extraction problems are logged and the request runs
    with the unchanged ambient context. The span is closed on every exit path,
    including handler exceptions and cancellation, and queued for export.
    """

    def __init__(
        self,
        app: ASGIApp,
        tracer: Tracer,
        extractor: ContextExtractor,
        span_name: str = "health",
        inject_response_headers: bool = True,
    ):
        super().__init__(app)
        self.tracer = tracer
        self.extractor = extractor
        self.span_name = span_name
        self.inject_response_headers = inject_response_headers

    def _derive_context(self, request: Request) -> otel_context.Context:
        current = otel_context.get_current()
        try:
            return self.extractor.extract(request.headers, current)
        except Exception:
            logger.warning("trace context extraction failed; continuing unset", exc_info=True)
            return current

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        token = otel_context.attach(self._derive_context(request))
        try:
            with self.tracer.start_as_current_span(
                self.span_name,
                kind=SpanKind.SERVER,
                attributes={
                    "http.request.method": request.method,
                    "url.path": request.url.path,
                    attr("propagation.policy"): self.extractor.policy,
                },
            ) as span:
                try:
                    response = await call_next(request)
                except asyncio.CancelledError:
                    span.set_status(Status(StatusCode.ERROR, "request cancelled"))
                    raise
                span.set_attribute("http.response.status_code", response.status_code)
                if response.status_code >= 500:
                    span.set_status(Status(StatusCode.ERROR))
                if self.inject_response_headers:
                    try:
                        self.extractor.inject(response.headers)
                    except Exception:
                        logger.warning("trace context injection failed", exc_info=True)
                return response
        finally:
            otel_context.detach(token)
