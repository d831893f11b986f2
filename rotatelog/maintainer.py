"""Post-rotation maintenance: compression and retention enforcement on a background thread."""

import gzip
import logging
import os
import queue
import shutil
import threading
from datetime import timedelta

from rotatelog.clock import Clock
from rotatelog.config import RotatePolicy
from rotatelog.errors import ErrorLatch, MaintenanceBacklogError
from rotatelog.naming import GZ_SUFFIX, BackupNaming

logger = logging.getLogger(__name__)


def compress_file(filepath: str) -> str:
    """Gzip-compress a file in place. Returns the .gz path."""
    gz_path = filepath + GZ_SUFFIX
    try:
        with open(filepath, "rb") as f_in, gzip.open(gz_path, "wb") as f_out:
            shutil.copyfileobj(f_in, f_out)
    except OSError:
        if os.path.exists(gz_path):
            os.remove(gz_path)
        raise
    os.remove(filepath)
    return gz_path


class RetentionMaintainer:
    """Consumes retired file names in FIFO order, one at a time.

    Failures never leave the thread: they are logged and stored in the
    shared ErrorLatch for the writer to surface on its next write.
    """

    def __init__(self, naming: BackupNaming, policy: RotatePolicy, clock: Clock,
                 latch: ErrorLatch):
        self._naming = naming
        self._policy = policy
        self._clock = clock
        self._latch = latch
        self._queue: queue.Queue[str] = queue.Queue(maxsize=policy.queue_size)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        self._thread = threading.Thread(
            target=self._run, name="rotatelog-maintainer", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0):
        """Signal the thread to exit and wait for it. Queued names are not drained."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def enqueue(self, filename: str):
        """Hand a retired file to the thread without ever blocking the caller."""
        try:
            self._queue.put_nowait(filename)
        except queue.Full:
            logger.warning("Maintenance queue full, skipping %s", filename)
            self._latch.set(MaintenanceBacklogError(
                f"maintenance queue full ({self._policy.queue_size}), skipped {filename}"
            ))

    def process(self, filename: str):
        self.compress(filename)
        self.remove_outdated()
        self.remove_over_max()

    def compress(self, filename: str) -> str | None:
        if not self._policy.compress:
            return None
        try:
            gz_path = compress_file(filename)
        except OSError as e:
            self._record(e, "compress %s" % filename)
            return None
        logger.info("Compressed: %s", gz_path)
        return gz_path

    def remove_outdated(self) -> list[str]:
        """Delete backups whose names sort before now minus max_age_days."""
        if self._policy.max_age_days <= 0:
            return []
        try:
            files = self._naming.list_backups()
        except OSError as e:
            self._record(e, "list backups")
            return []

        boundary = self._naming.boundary_name(
            self._clock.shifted(-timedelta(days=self._policy.max_age_days))
        )
        outdated = [f for f in files if f < boundary]
        return self._remove(outdated, "outdated")

    def remove_over_max(self) -> list[str]:
        """Delete the oldest backups beyond max_backups."""
        if self._policy.max_backups <= 0:
            return []
        try:
            files = self._naming.list_backups()
        except OSError as e:
            self._record(e, "list backups")
            return []

        files.sort()
        excess = len(files) - self._policy.max_backups
        if excess <= 0:
            return []
        return self._remove(files[:excess], "over max")

    def _remove(self, files: list[str], reason: str) -> list[str]:
        deleted = []
        for path in files:
            try:
                os.remove(path)
            except OSError as e:
                self._record(e, "remove %s file %s" % (reason, path))
                break
            deleted.append(path)
        if deleted:
            logger.info("Purged %d %s file(s): %s", len(deleted), reason, ", ".join(deleted))
        return deleted

    def _record(self, error: OSError, action: str):
        logger.warning("Maintenance failed to %s: %s", action, error)
        self._latch.set(error)

    def _run(self):
        while not self._stop_event.is_set():
            try:
                filename = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                self.process(filename)
            except Exception as e:
                logger.exception("Maintenance of %s failed", filename)
                self._latch.set(e)
            finally:
                self._queue.task_done()
