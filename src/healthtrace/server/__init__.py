"""HTTP surface: health route and tracing middleware."""

from .app import create_app, create_health_router
from .middleware import TracingMiddleware

__all__ = ["create_app", "create_health_router", "TracingMiddleware"]
