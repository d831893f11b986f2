"""Error taxonomy and the single-slot latch for background maintenance failures."""

import threading


class RotateError(Exception):
    """Base class for rotating writer errors."""


class ConfigurationError(RotateError):
    """Raised when the writer is constructed with an unusable configuration."""


class ClosedSinkError(RotateError):
    """Raised by write() once the writer has been closed."""


class OversizeError(RotateError):
    """Raised when a single payload exceeds the configured max size."""

    def __init__(self, size: int, max_size: int):
        super().__init__(f"payload of {size} bytes exceeds maximum of {max_size} bytes")
        self.size = size
        self.max_size = max_size


class MaintenanceBacklogError(RotateError):
    """Latched when a retired file could not be queued for maintenance."""


class ErrorLatch:
    """Holds the most recent background error until a caller takes it.

    Only one error is kept: a newer error overwrites an older one that
    nobody has taken yet.
    """

    def __init__(self):
        self._error: BaseException | None = None
        self._lock = threading.Lock()

    def set(self, error: BaseException):
        with self._lock:
            self._error = error

    def take(self) -> BaseException | None:
        """Return the pending error, if any, and clear the slot."""
        with self._lock:
            error, self._error = self._error, None
            return error

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._error is not None
