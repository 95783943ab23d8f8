"""
Command-line interface for healthtrace.

Provides commands for:
- Serving the traced health endpoint
- Inspecting a span export file
"""

import argparse
import logging
import sys
from collections import Counter

from .config import load_settings
from .errors import ConfigError, TracingInitError
from .exporters.file_exporter import read_span_records

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a stderr handler if none is present and set the root level."""
    logging.basicConfig(format=_LOG_FORMAT)
    logging.getLogger().setLevel(level.upper())


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="healthtrace",
        description="Health-check service with trace-context propagation and file span export",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve on :8080, spans batched to trace.out
  healthtrace serve

  # Trust an opaque x-trace-id header instead of traceparent
  healthtrace serve --propagation header

  # Summarize an export file
  healthtrace inspect --file trace.out --show-spans
        """,
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (default: from config, INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    serve_parser = subparsers.add_parser("serve", help="Serve the traced health endpoint")
    serve_parser.add_argument("--config", type=str, default=None, help="Path to config YAML")
    serve_parser.add_argument("--host", type=str, default=None, help="Bind host (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port (default: 8080)")
    serve_parser.add_argument(
        "--output-file",
        type=str,
        default=None,
        help="Span export file, truncated on start (default: trace.out)",
    )
    serve_parser.add_argument(
        "--exporter",
        choices=("file", "console", "otlp"),
        default=None,
        help="Span sink (default: file)",
    )
    serve_parser.add_argument(
        "--propagation",
        choices=("traceparent", "header"),
        default=None,
        help="Inbound trace context policy (default: traceparent)",
    )
    serve_parser.add_argument(
        "--id-generator",
        choices=("random", "header", "fixed"),
        default=None,
        help="Trace/span id strategy (default: matches --propagation)",
    )
    serve_parser.add_argument(
        "--fixed-span-id",
        type=str,
        default=None,
        help="Span id used by --id-generator fixed (16 hex chars)",
    )

    inspect_parser = subparsers.add_parser("inspect", help="Summarize a span export file")
    inspect_parser.add_argument(
        "--file",
        type=str,
        default="trace.out",
        help="Export file written by the file exporter (default: trace.out)",
    )
    inspect_parser.add_argument(
        "--show-spans",
        action="store_true",
        help="Print one line per span (name, trace_id, span_id, parent, status)",
    )

    return parser


def cmd_serve(args: argparse.Namespace):
    """Initialize tracing, then serve until interrupted; always flush on exit."""
    import uvicorn

    from .pipeline import TracingPipeline
    from .server.app import create_app

    try:
        settings = load_settings(
            args.config,
            host=args.host,
            port=args.port,
            output_file=args.output_file,
            exporter=args.exporter,
            propagation=args.propagation,
            id_generator=args.id_generator,
            fixed_span_id=args.fixed_span_id,
            log_level=args.log_level,
        )
    except ConfigError as e:
        configure_logging(args.log_level or "INFO")
        logger.error("invalid configuration: %s", e)
        sys.exit(1)

    configure_logging(settings.log_level)

    try:
        pipeline = TracingPipeline.from_settings(settings)
    except TracingInitError as e:
        logger.error("tracing pipeline failed to start: %s", e)
        sys.exit(1)

    try:
        app = create_app(pipeline, settings)
        logger.info("server is running on %s:%d", settings.host, settings.port)
        uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    finally:
        pipeline.shutdown()


def cmd_inspect(args: argparse.Namespace):
    """Print a summary of a span export file."""
    try:
        records = read_span_records(args.file)
    except FileNotFoundError:
        print(f"Export file not found: {args.file}")
        sys.exit(1)
    except ValueError as e:
        print(f"Export file is not valid: {e}")
        sys.exit(1)

    span_ids = Counter(r.get("span_id") for r in records)
    trace_ids = {r.get("trace_id") for r in records}
    duplicates = sorted(sid for sid, n in span_ids.items() if n > 1)

    print(f"File: {args.file}")
    print(f"   Spans: {len(records)}")
    print(f"   Traces: {len(trace_ids)}")
    print(f"   Duplicate span ids: {len(duplicates)}")
    for sid in duplicates:
        print(f"      {sid} x{span_ids[sid]}")

    if args.show_spans:
        print()
        for r in records:
            status = (r.get("status") or {}).get("status_code", "UNSET")
            parent = r.get("parent_span_id") or ""
            print(
                f"   span name={r.get('name')} trace_id={r.get('trace_id')} "
                f"span_id={r.get('span_id')} parent_id={parent} status={status}"
            )

    if duplicates:
        sys.exit(2)


def main():
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "inspect":
        configure_logging(args.log_level or "WARNING")
        cmd_inspect(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
