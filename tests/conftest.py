"""Shared fixtures: isolated config environment and pipeline factories."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from healthtrace.config import BatchSettings, Settings
from healthtrace.pipeline import TracingPipeline


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Point the resources root at an empty dir and clear HEALTHTRACE_* overrides."""
    import os

    for name in list(os.environ):
        if name.startswith("HEALTHTRACE_"):
            monkeypatch.delenv(name, raising=False)
    resources = tmp_path / "resources"
    resources.mkdir()
    monkeypatch.setenv("HEALTHTRACE_ROOT", str(resources))


@pytest.fixture
def trace_file(tmp_path: Path) -> Path:
    return tmp_path / "out" / "trace.out"


@pytest.fixture
def make_settings(trace_file: Path) -> Callable[..., Settings]:
    """Build validated settings writing to the per-test trace file."""

    def _make(**kwargs) -> Settings:
        kwargs.setdefault("output_file", str(trace_file))
        kwargs.setdefault("batch", BatchSettings(schedule_delay_ms=50))
        return Settings(**kwargs).validate()

    return _make


@pytest.fixture
def make_pipeline(make_settings: Callable[..., Settings]) -> Iterator[Callable[..., TracingPipeline]]:
    """Create pipelines and make sure each one is shut down after the test."""
    created: list[TracingPipeline] = []

    def _make(**kwargs) -> TracingPipeline:
        pipeline = TracingPipeline.from_settings(make_settings(**kwargs))
        created.append(pipeline)
        return pipeline

    yield _make
    for pipeline in created:
        pipeline.shutdown()
