"""This module contains the custom exceptions used in pdns_exporter."""


class ConfigError(Exception):
    """Exception class used when invalid config values are encountered.

    The first argument is a short machine readable reason like ``duplicate_instance``.
    """


class TransportError(Exception):
    """Exception class used when a control socket exchange fails.

    The ``step`` attribute names the socket operation which failed, one of
    ``socket``, ``unlink``, ``bind``, ``chmod``, ``connect``, ``send`` or ``recv``.
    """

    def __init__(self, step: str, path: str, reason: str = "") -> None:
        """Take the failing step, the socket path and an optional reason."""
        super().__init__(f"Control socket {step} failed for {path}: {reason}", step)
        self.step = step
        self.path = path


class TypeRegistryError(Exception):
    """Exception raised when the lookup table names a metric type which cannot be used (this is a packaging bug)."""


class ValueConversionError(ValueError):
    """Exception raised when a statistic value can not be converted to the number required by the metric type."""


class UnknownFailureReasonError(RuntimeError):
    """Exception raised if an unknown failure reason is used (this is always a bug)."""

    def __init__(self, failure_reason: str) -> None:
        """Raise with failure reason."""
        super().__init__(f"Unknown failure_reason {failure_reason} - please file a bug!")


class TargetTypeError(TypeError):
    """Exception used when TargetRegistry.add() is called with something that is not a pdns_exporter.config.Target."""


class CleanupAndExit(Exception):  # noqa: N818
    """Exception raised by the signal handler to trigger cleanup before exit."""
