"""Tests for the command-line interface."""

import sys
from pathlib import Path

import pytest

from healthtrace import cli
from healthtrace.errors import TracingInitError


def _run(monkeypatch: pytest.MonkeyPatch, *argv: str) -> None:
    monkeypatch.setattr(sys, "argv", ["healthtrace", *argv])
    cli.main()


def _write_spans(make_pipeline, count: int, **kwargs) -> None:
    pipeline = make_pipeline(**kwargs)
    tracer = pipeline.get_tracer()
    for _ in range(count):
        with tracer.start_as_current_span("health"):
            pass
    pipeline.shutdown()


def test_no_command_prints_help(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch)
    assert exc.value.code == 0
    assert "serve" in capsys.readouterr().out


def test_inspect_summarizes_file(make_pipeline, trace_file: Path, monkeypatch, capsys) -> None:
    _write_spans(make_pipeline, 3)
    _run(monkeypatch, "inspect", "--file", str(trace_file), "--show-spans")
    out = capsys.readouterr().out
    assert "Spans: 3" in out
    assert "Traces: 3" in out
    assert "Duplicate span ids: 0" in out
    assert out.count("span name=health") == 3


def test_inspect_flags_duplicate_span_ids(make_pipeline, trace_file: Path, monkeypatch, capsys) -> None:
    """The fixed id generator collides; inspect reports it and exits non-zero."""
    _write_spans(make_pipeline, 2, id_generator="fixed", fixed_span_id="4bf92f3577b34da6")
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, "inspect", "--file", str(trace_file))
    assert exc.value.code == 2
    out = capsys.readouterr().out
    assert "Duplicate span ids: 1" in out
    assert "4bf92f3577b34da6 x2" in out


def test_inspect_missing_file(tmp_path: Path, monkeypatch, capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, "inspect", "--file", str(tmp_path / "missing.out"))
    assert exc.value.code == 1
    assert "not found" in capsys.readouterr().out


def test_serve_invalid_config_exits(monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, "serve", "--port", "0")
    assert exc.value.code == 1


def test_serve_aborts_when_pipeline_fails(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """The listener never starts when tracing cannot be initialized."""
    import uvicorn

    from healthtrace.pipeline import TracingPipeline

    def fail(settings):
        raise TracingInitError("no sink")

    def must_not_run(*args, **kwargs):
        raise AssertionError("uvicorn.run called without a pipeline")

    monkeypatch.setattr(TracingPipeline, "from_settings", staticmethod(fail))
    monkeypatch.setattr(uvicorn, "run", must_not_run)
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, "serve", "--output-file", str(tmp_path / "t.out"))
    assert exc.value.code == 1


def test_serve_shuts_pipeline_down_after_server_exits(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    import uvicorn

    from healthtrace.pipeline import TracingPipeline

    calls: list[str] = []
    original_shutdown = TracingPipeline.shutdown

    def fake_run(app, host, port, log_level):
        calls.append(f"run {host}:{port}")

    def tracked_shutdown(self, timeout_ms=None):
        calls.append("shutdown")
        return original_shutdown(self, timeout_ms)

    monkeypatch.setattr(uvicorn, "run", fake_run)
    monkeypatch.setattr(TracingPipeline, "shutdown", tracked_shutdown)
    _run(
        monkeypatch,
        "serve",
        "--host",
        "127.0.0.1",
        "--port",
        "9999",
        "--output-file",
        str(tmp_path / "t.out"),
    )
    assert calls == ["run 127.0.0.1:9999", "shutdown"]
    assert (tmp_path / "t.out").is_file()
