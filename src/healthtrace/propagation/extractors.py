"""
Derive an execution context from inbound request headers.

Two mutually exclusive policies:
  - header: copy an opaque trace-id header (x-trace-id by default) verbatim into
    the context under TRACE_ID_KEY; the id generator decides how to parse it.
  - traceparent: parse the W3C `version-traceid-spanid-flags` header into a
    remote parent span context.

Extraction never mutates the caller's headers and never raises for malformed
input; a bad header yields a context without a remote parent.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, MutableMapping

from opentelemetry import context as otel_context
from opentelemetry.context import Context
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from ..errors import ConfigError
from .context import TraceContext

logger = logging.getLogger(__name__)

TRACE_ID_KEY = otel_context.create_key("x-trace-id")
DEFAULT_TRACE_ID_HEADER = "x-trace-id"


def _lowercase_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {str(k).lower(): v for k, v in headers.items()}


class ContextExtractor(ABC):
    """Extract a trace context from headers and inject the active one back."""

    policy: str = ""

    @abstractmethod
    def extract(self, headers: Mapping[str, str], context: Context | None = None) -> Context:
        """Return a new context derived from `context` (or the current one)."""

    @abstractmethod
    def inject(self, headers: MutableMapping[str, str], context: Context | None = None) -> None:
        """Write the active trace context of `context` into `headers`."""


class HeaderPassthroughExtractor(ContextExtractor):
    """Store a custom trace-id header verbatim as an opaque context value."""

    policy = "header"

    def __init__(self, header_name: str = DEFAULT_TRACE_ID_HEADER):
        self.header_name = header_name.strip().lower()

    def extract(self, headers: Mapping[str, str], context: Context | None = None) -> Context:
        base = context if context is not None else otel_context.get_current()
        value = _lowercase_headers(headers).get(self.header_name)
        if value is None:
            return base
        logger.debug("passthrough %s=%s", self.header_name, value)
        return otel_context.set_value(TRACE_ID_KEY, value, base)

    def inject(self, headers: MutableMapping[str, str], context: Context | None = None) -> None:
        current = TraceContext.from_context(context)
        if current.is_valid:
            headers[self.header_name] = current.trace_id_hex


class TraceparentExtractor(ContextExtractor):
    """Parse the W3C traceparent header into a remote parent span context."""

    policy = "traceparent"

    def __init__(self) -> None:
        self._propagator = TraceContextTextMapPropagator()

    def extract(self, headers: Mapping[str, str], context: Context | None = None) -> Context:
        base = context if context is not None else otel_context.get_current()
        derived = self._propagator.extract(carrier=_lowercase_headers(headers), context=base)
        remote = TraceContext.from_context(derived)
        if remote.is_valid:
            logger.debug("extracted traceparent trace_id=%s span_id=%s", remote.trace_id_hex, remote.span_id_hex)
        return derived

    def inject(self, headers: MutableMapping[str, str], context: Context | None = None) -> None:
        self._propagator.inject(headers, context=context)


def create_extractor(policy: str = "traceparent", header_name: str = DEFAULT_TRACE_ID_HEADER) -> ContextExtractor:
    """
    Create the extractor for a propagation policy.

    Args:
        policy: "traceparent" or "header"
        header_name: Header read by the passthrough policy

    Returns:
        Configured ContextExtractor
    """
    if policy == "traceparent":
        return TraceparentExtractor()
    if policy == "header":
        return HeaderPassthroughExtractor(header_name)
    raise ConfigError(f"Unknown propagation policy: {policy}")
