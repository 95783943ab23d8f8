"""Application factory: wires the tracing pipeline into the HTTP routes."""

from fastapi import APIRouter, FastAPI
from fastapi.responses import PlainTextResponse

from .. import __version__
from ..config import Settings
from ..pipeline import TracingPipeline
from ..propagation.extractors import create_extractor
from .middleware import TracingMiddleware


def create_health_router() -> APIRouter:
    """Return a router with a ``GET /health`` route answering ``OK``."""
    router = APIRouter()

    @router.get("/health", response_class=PlainTextResponse)
    async def health() -> str:
        return "OK"

    return router


def create_app(pipeline: TracingPipeline, settings: Settings) -> FastAPI:
    """
    Build the FastAPI app around an already-initialized pipeline.

    Args:
        pipeline: Tracing pipeline supplying the tracer; it is not registered globally.
        settings: Resolved settings (propagation policy, span name, header injection).

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(title=settings.service_name, version=__version__)
    app.add_middleware(
        TracingMiddleware,
        tracer=pipeline.get_tracer(settings.tracer_name),
        extractor=create_extractor(settings.propagation, settings.trace_id_header),
        span_name=settings.span_name,
        inject_response_headers=settings.inject_response_headers,
    )
    app.include_router(create_health_router())
    app.state.pipeline = pipeline
    return app
