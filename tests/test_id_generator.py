"""Tests for trace/span id strategies."""

import pytest
from opentelemetry import context as otel_context
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from healthtrace.errors import ConfigError
from healthtrace.propagation import (
    TRACE_ID_KEY,
    FixedSpanIdStrategy,
    HeaderTraceIdStrategy,
    RandomIdStrategy,
    create_id_generator,
)

TRACE_ID_HEX = "4bf92f3577b34da6a3ce929d0e0e4736"


def _provider(strategy) -> tuple[TracerProvider, InMemorySpanExporter]:
    exporter = InMemorySpanExporter()
    provider = TracerProvider(id_generator=strategy)
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return provider, exporter


def test_random_strategy_ids_are_non_zero_and_unique() -> None:
    strategy = RandomIdStrategy()
    span_ids = {strategy.generate_span_id() for _ in range(1000)}
    assert 0 not in span_ids
    assert len(span_ids) == 1000
    trace_id, span_id = strategy.generate_trace_span_pair()
    assert trace_id and span_id


def test_header_strategy_uses_context_trace_id() -> None:
    ctx = otel_context.set_value(TRACE_ID_KEY, TRACE_ID_HEX)
    trace_id, span_id = HeaderTraceIdStrategy().generate_trace_span_pair(ctx)
    assert trace_id == int(TRACE_ID_HEX, 16)
    assert span_id != 0


@pytest.mark.parametrize("value", ["not-hex", TRACE_ID_HEX.upper(), "0" * 32, ""])
def test_header_strategy_malformed_value_is_unset(value: str) -> None:
    """Parse failure is silent and yields the zero trace id."""
    ctx = otel_context.set_value(TRACE_ID_KEY, value)
    trace_id, span_id = HeaderTraceIdStrategy().generate_trace_span_pair(ctx)
    assert trace_id == 0
    assert span_id != 0


def test_header_strategy_absent_value_is_unset() -> None:
    trace_id, _ = HeaderTraceIdStrategy().generate_trace_span_pair(otel_context.Context())
    assert trace_id == 0


def test_header_strategy_span_ids_are_unique() -> None:
    strategy = HeaderTraceIdStrategy()
    assert len({strategy.generate_span_id() for _ in range(500)}) == 500


def test_generate_trace_id_replaces_unset_with_random() -> None:
    """The SDK hook never hands out a zero trace id."""
    token = otel_context.attach(otel_context.set_value(TRACE_ID_KEY, "bogus"))
    try:
        assert HeaderTraceIdStrategy().generate_trace_id() != 0
    finally:
        otel_context.detach(token)


def test_header_strategy_drives_sdk_trace_id() -> None:
    """Spans started under an attached context carrying the header use its trace id."""
    provider, exporter = _provider(HeaderTraceIdStrategy())
    tracer = provider.get_tracer("test")
    token = otel_context.attach(otel_context.set_value(TRACE_ID_KEY, TRACE_ID_HEX))
    try:
        with tracer.start_as_current_span("first"):
            pass
        with tracer.start_as_current_span("second"):
            pass
    finally:
        otel_context.detach(token)

    spans = exporter.get_finished_spans()
    assert [s.context.trace_id for s in spans] == [int(TRACE_ID_HEX, 16)] * 2
    assert spans[0].context.span_id != spans[1].context.span_id


def test_fixed_strategy_reuses_span_id() -> None:
    strategy = FixedSpanIdStrategy("4bf92f3577b34da6")
    assert strategy.unique_span_ids is False
    assert strategy.generate_span_id() == strategy.generate_span_id() == int("4bf92f3577b34da6", 16)


@pytest.mark.parametrize("value", ["", "xyz", "0" * 16, "4BF92F3577B34DA6"])
def test_fixed_strategy_rejects_invalid_span_id(value: str) -> None:
    with pytest.raises(ConfigError):
        FixedSpanIdStrategy(value)


def test_create_id_generator() -> None:
    assert isinstance(create_id_generator("random"), RandomIdStrategy)
    assert isinstance(create_id_generator("header"), HeaderTraceIdStrategy)
    assert isinstance(create_id_generator("fixed", "4bf92f3577b34da6"), FixedSpanIdStrategy)
    with pytest.raises(ConfigError):
        create_id_generator("fixed")
    with pytest.raises(ConfigError):
        create_id_generator("sequential")
