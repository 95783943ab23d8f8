"""Exceptions raised while configuring or starting the tracing pipeline."""


class HealthtraceError(Exception):
    """Base class for healthtrace errors."""

    pass


class ConfigError(HealthtraceError):
    """Raised when a configuration value is missing or invalid."""

    pass


class TracingInitError(HealthtraceError):
    """Raised when the tracing pipeline cannot be constructed.

    The service must not start serving requests without an initialized pipeline,
    so callers treat this as fatal.
    """

    pass
