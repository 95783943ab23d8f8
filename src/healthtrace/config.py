"""
Configuration for the health service and its tracing pipeline.

Settings are read from config/config.yaml under the resources root, then
overridden by HEALTHTRACE_* environment variables, then by explicit overrides
(CLI flags). Config files live outside src/ under resource/ (resource/config/).
When running from source, resource/ at project root is used. When the package
is installed, set HEALTHTRACE_ROOT to a directory containing config/, or pass
an explicit config path.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from . import __version__
from .errors import ConfigError

PROPAGATION_POLICIES = ("traceparent", "header")
ID_GENERATORS = ("random", "header", "fixed")
EXPORTERS = ("file", "console", "otlp")
OTLP_PROTOCOLS = ("http", "grpc")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ATTR_PREFIX = "healthtrace"


def get_resources_root() -> Path:
    """Return the root directory for config resources.

    Resolution order:
    1. HEALTHTRACE_ROOT env var (must contain config/)
    2. resource/ under directory containing pyproject.toml (when running from source)
    3. healthtrace/resources/ next to this package (when installed; set HEALTHTRACE_ROOT if not present)
    """
    env_root = os.environ.get("HEALTHTRACE_ROOT")
    if env_root:
        p = Path(env_root).resolve()
        if p.is_dir():
            return p
    here = Path(__file__).resolve().parent
    for candidate in [here, *here.parents]:
        if (candidate / "pyproject.toml").is_file():
            return candidate / "resource"
    return Path(__file__).resolve().parent / "resources"


def default_config_path() -> Path:
    """Path of the default config file (may not exist)."""
    return get_resources_root() / "config" / "config.yaml"


def attr(suffix: str) -> str:
    """Return full attribute name with the package prefix (e.g. attr('trace.source') -> 'healthtrace.trace.source')."""
    if not suffix:
        return ATTR_PREFIX
    return f"{ATTR_PREFIX}.{suffix}"


def load_yaml(path: Path, default: Any = None) -> Any:
    """Load YAML file; return default on missing file. Parse errors raise ConfigError."""
    if default is None:
        default = {}
    if not path.exists():
        return default
    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    return data if isinstance(data, dict) else default


@dataclass
class BatchSettings:
    """Batching thresholds handed to the span processor."""

    schedule_delay_ms: int = 5000
    max_queue_size: int = 2048
    max_export_batch_size: int = 512
    export_timeout_ms: int = 30000


@dataclass
class Settings:
    """Resolved settings for one process."""

    service_name: str = "healthtrace"
    service_version: str = __version__
    resource_attributes: dict[str, str] = field(default_factory=dict)
    host: str = "0.0.0.0"
    port: int = 8080
    exporter: str = "file"
    output_file: str = "trace.out"
    otlp_endpoint: str = "http://localhost:4318"
    otlp_protocol: str = "http"
    propagation: str = "traceparent"
    trace_id_header: str = "x-trace-id"
    id_generator: str | None = None
    fixed_span_id: str | None = None
    tracer_name: str = "healthHandler"
    span_name: str = "health"
    inject_response_headers: bool = True
    shutdown_timeout_ms: int = 5000
    log_level: str = "INFO"
    batch: BatchSettings = field(default_factory=BatchSettings)

    @property
    def resolved_id_generator(self) -> str:
        """Id generator name; defaults to the one matching the propagation policy."""
        if self.id_generator:
            return self.id_generator
        return "header" if self.propagation == "header" else "random"

    def validate(self) -> "Settings":
        """Check enumerated values and numeric ranges; raise ConfigError on the first problem."""
        if self.propagation not in PROPAGATION_POLICIES:
            raise ConfigError(
                f"propagation must be one of {', '.join(PROPAGATION_POLICIES)}, got {self.propagation!r}"
            )
        if self.resolved_id_generator not in ID_GENERATORS:
            raise ConfigError(
                f"id_generator must be one of {', '.join(ID_GENERATORS)}, got {self.id_generator!r}"
            )
        if self.resolved_id_generator == "fixed" and not self.fixed_span_id:
            raise ConfigError("id_generator 'fixed' requires fixed_span_id")
        if self.exporter not in EXPORTERS:
            raise ConfigError(f"exporter must be one of {', '.join(EXPORTERS)}, got {self.exporter!r}")
        if self.otlp_protocol not in OTLP_PROTOCOLS:
            raise ConfigError(
                f"otlp_protocol must be one of {', '.join(OTLP_PROTOCOLS)}, got {self.otlp_protocol!r}"
            )
        if self.exporter == "file" and not self.output_file:
            raise ConfigError("output_file is required for the file exporter")
        if not 0 < self.port < 65536:
            raise ConfigError(f"port out of range: {self.port}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        if not self.trace_id_header.strip():
            raise ConfigError("trace_id_header must not be empty")
        b = self.batch
        if min(b.schedule_delay_ms, b.max_queue_size, b.max_export_batch_size, b.export_timeout_ms) <= 0:
            raise ConfigError("batch settings must be positive")
        if b.max_export_batch_size > b.max_queue_size:
            raise ConfigError("batch.max_export_batch_size must not exceed batch.max_queue_size")
        if self.shutdown_timeout_ms <= 0:
            raise ConfigError("shutdown_timeout_ms must be positive")
        return self


# Environment variable -> settings field.
_ENV_OVERRIDES = {
    "HEALTHTRACE_HOST": "host",
    "HEALTHTRACE_PORT": "port",
    "HEALTHTRACE_EXPORTER": "exporter",
    "HEALTHTRACE_OUTPUT_FILE": "output_file",
    "HEALTHTRACE_OTLP_ENDPOINT": "otlp_endpoint",
    "HEALTHTRACE_PROPAGATION": "propagation",
    "HEALTHTRACE_ID_GENERATOR": "id_generator",
    "HEALTHTRACE_LOG_LEVEL": "log_level",
}

_INT_FIELDS = frozenset({"port", "shutdown_timeout_ms"})
_BOOL_FIELDS = frozenset({"inject_response_headers"})


def _coerce(name: str, value: Any) -> Any:
    if name in _INT_FIELDS:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if name in _BOOL_FIELDS:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes", "on")
    if name == "resource_attributes":
        if not isinstance(value, dict):
            raise ConfigError("resource_attributes must be a mapping")
        return {str(k): str(v) for k, v in value.items()}
    return value if value is None else str(value)


def _batch_from(raw: Any) -> BatchSettings:
    if raw is None:
        return BatchSettings()
    if not isinstance(raw, dict):
        raise ConfigError("batch must be a mapping")
    known = {f.name for f in fields(BatchSettings)}
    unknown = set(raw) - known
    if unknown:
        raise ConfigError(f"Unknown batch settings: {', '.join(sorted(unknown))}")
    values: dict[str, int] = {}
    for k, v in raw.items():
        try:
            values[k] = int(v)
        except (TypeError, ValueError):
            raise ConfigError(f"batch.{k} must be an integer, got {v!r}") from None
    return BatchSettings(**values)


def _flatten(data: dict[str, Any]) -> dict[str, Any]:
    """Map the sectioned YAML layout (service/server/tracing) onto flat settings fields."""
    flat: dict[str, Any] = {}
    service = data.get("service") or {}
    if isinstance(service, dict):
        if "name" in service:
            flat["service_name"] = service["name"]
        if "version" in service:
            flat["service_version"] = service["version"]
        if "resource_attributes" in service:
            flat["resource_attributes"] = service["resource_attributes"]
    server = data.get("server") or {}
    if isinstance(server, dict):
        for key in ("host", "port"):
            if key in server:
                flat[key] = server[key]
    tracing = data.get("tracing") or {}
    if isinstance(tracing, dict):
        flat.update(tracing)
    logging_block = data.get("logging") or {}
    if isinstance(logging_block, dict) and "level" in logging_block:
        flat["log_level"] = logging_block["level"]
    return flat


def load_settings(config_path: str | Path | None = None, **overrides: Any) -> Settings:
    """
    Resolve settings from YAML, environment and explicit overrides.

    An explicit config path (argument or HEALTHTRACE_CONFIG) must exist; the
    default config file is optional. Overrides whose value is None are ignored.
    """
    explicit = config_path or os.environ.get("HEALTHTRACE_CONFIG")
    if explicit:
        path = Path(explicit)
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
    else:
        path = default_config_path()

    raw = _flatten(load_yaml(path))
    for env_name, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name, "").strip()
        if value:
            raw[field_name] = value
    raw.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(Settings)}
    unknown = set(raw) - known
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")

    batch = _batch_from(raw.pop("batch", None))
    values = {k: _coerce(k, v) for k, v in raw.items()}
    return Settings(batch=batch, **values).validate()
