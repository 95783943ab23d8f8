"""
Trace and span identifier strategies.

Strategies plug into the OpenTelemetry SDK as an IdGenerator. Each exposes two
capabilities:
  generate_span_id(context)          - a non-zero 64-bit span id
  generate_trace_span_pair(context)  - (trace id, span id); trace id 0 means unset

The SDK only calls generate_trace_id() when there is no valid parent; an unset
trace id is replaced by a random one there so assigned ids are never zero.
"""

import logging
from abc import abstractmethod

from opentelemetry import context as otel_context
from opentelemetry.context import Context
from opentelemetry.sdk.trace.id_generator import IdGenerator, RandomIdGenerator
from opentelemetry.trace import INVALID_TRACE_ID

from ..errors import ConfigError
from .context import parse_span_id, parse_trace_id
from .extractors import TRACE_ID_KEY

logger = logging.getLogger(__name__)


class IdStrategy(IdGenerator):
    """Base strategy; subclasses supply the span id and the (trace, span) pair."""

    name: str = ""
    unique_span_ids: bool = True

    def __init__(self) -> None:
        self._random = RandomIdGenerator()

    @abstractmethod
    def generate_span_id(self, context: Context | None = None) -> int:
        """Return a non-zero span id."""

    @abstractmethod
    def generate_trace_span_pair(self, context: Context | None = None) -> tuple[int, int]:
        """Return (trace_id, span_id); trace_id may be 0 when no usable id is available."""

    def generate_trace_id(self) -> int:
        trace_id, _ = self.generate_trace_span_pair()
        if trace_id == INVALID_TRACE_ID:
            return self._random.generate_trace_id()
        return trace_id


class RandomIdStrategy(IdStrategy):
    """Random non-zero ids for every call."""

    name = "random"

    def generate_span_id(self, context: Context | None = None) -> int:
        return self._random.generate_span_id()

    def generate_trace_span_pair(self, context: Context | None = None) -> tuple[int, int]:
        return self._random.generate_trace_id(), self._random.generate_span_id()


class HeaderTraceIdStrategy(IdStrategy):
    """Trace id from the passthrough header value in the context; random span ids.

    A missing or malformed header value is not an error: the pair carries the
    unset trace id and generate_trace_id() falls back to a random one.
    """

    name = "header"

    def generate_span_id(self, context: Context | None = None) -> int:
        return self._random.generate_span_id()

    def generate_trace_span_pair(self, context: Context | None = None) -> tuple[int, int]:
        raw = otel_context.get_value(TRACE_ID_KEY, context)
        trace_id = parse_trace_id(raw)
        if raw is not None and trace_id == INVALID_TRACE_ID:
            logger.debug("ignoring malformed trace id header value %r", raw)
        return trace_id, self.generate_span_id(context)


class FixedSpanIdStrategy(HeaderTraceIdStrategy):
    """Header-derived trace ids with one constant span id.

    Every span shares the same span id, so concurrent spans collide. Only for
    deterministic fixtures; never the default.
    """

    name = "fixed"
    unique_span_ids = False

    def __init__(self, span_id_hex: str):
        super().__init__()
        self.span_id = parse_span_id(span_id_hex)
        if not self.span_id:
            raise ConfigError(f"fixed_span_id must be 16 lowercase hex chars, non-zero: {span_id_hex!r}")

    def generate_span_id(self, context: Context | None = None) -> int:
        return self.span_id


def create_id_generator(name: str = "random", fixed_span_id: str | None = None) -> IdStrategy:
    """Create the id strategy selected by configuration."""
    if name == "random":
        return RandomIdStrategy()
    if name == "header":
        return HeaderTraceIdStrategy()
    if name == "fixed":
        if not fixed_span_id:
            raise ConfigError("id_generator 'fixed' requires fixed_span_id")
        return FixedSpanIdStrategy(fixed_span_id)
    raise ConfigError(f"Unknown id generator: {name}")
