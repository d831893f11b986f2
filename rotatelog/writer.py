"""RotateWriter: thread-safe, size-bounded write sink with background retention."""

import logging
import threading

from rotatelog.clock import Clock
from rotatelog.config import RotatePolicy
from rotatelog.engine import RotationEngine
from rotatelog.errors import ClosedSinkError, ConfigurationError, ErrorLatch, OversizeError
from rotatelog.maintainer import RetentionMaintainer
from rotatelog.naming import BackupNaming

logger = logging.getLogger(__name__)


class RotateWriter:
    """Append bytes to a log file, rotating it once it would exceed max size.

    Rotated files are handed to a background RetentionMaintainer which
    compresses them and prunes old backups. Errors from that thread are
    latched and raised by the next write() call, then cleared; only the most
    recent one is kept.

    Example::

        with RotateWriter("logs/app.log", max_size_mb=64, compress=True) as w:
            w.write(b"hello\\n")
    """

    def __init__(self, path: str, policy: RotatePolicy | None = None, time_func=None,
                 **options):
        if not path:
            raise ConfigurationError("file path is empty")
        if policy is None:
            policy = RotatePolicy(**options)
        elif options:
            raise ConfigurationError("pass either a policy or keyword options, not both")

        self._policy = policy
        self._lock = threading.Lock()
        self._closed = False
        self._close_error: BaseException | None = None
        self._latch = ErrorLatch()

        clock = Clock(policy.time_format, policy.use_local_time, time_func)
        naming = BackupNaming(path, policy.delimiter, policy.compress)
        self._maintainer = RetentionMaintainer(naming, policy, clock, self._latch)
        self._engine = RotationEngine(
            path, policy, clock, on_rotate=self._maintainer.enqueue, naming=naming
        )

        self._engine.open()
        self._maintainer.start()
        logger.debug("Opened %s (max_size=%d bytes)", path, policy.max_size)

    @property
    def policy(self) -> RotatePolicy:
        return self._policy

    @property
    def engine(self) -> RotationEngine:
        return self._engine

    @property
    def maintainer(self) -> RetentionMaintainer:
        return self._maintainer

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes) -> int:
        """Write data, rotating first if it would overflow the active file.

        Returns the number of bytes written.
        """
        with self._lock:
            if self._closed:
                raise ClosedSinkError("log file closed")
            try:
                data = memoryview(data).cast("B")
            except TypeError:
                raise TypeError(
                    f"data must be bytes-like, not {type(data).__name__}"
                ) from None
            size = len(data)
            if size > self._policy.max_size:
                raise OversizeError(size, self._policy.max_size)
            error = self._latch.take()
            if error is not None:
                raise error
            return self._engine.write(data)

    def rotate(self) -> str | None:
        """Force a rotation. Returns the retired file name, if any."""
        with self._lock:
            if self._closed:
                raise ClosedSinkError("log file closed")
            return self._engine.rotate()

    def flush(self):
        with self._lock:
            if not self._closed:
                self._engine.flush()

    def close(self):
        """Stop maintenance and close the active file.

        Only the first call does any work; later calls repeat its outcome.
        """
        with self._lock:
            if not self._closed:
                self._closed = True
                self._maintainer.stop()
                try:
                    self._engine.close()
                except OSError as e:
                    self._close_error = e
            if self._close_error is not None:
                raise self._close_error

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
