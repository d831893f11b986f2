"""Rotation engine: owns the active file handle, its size counter and the rename-and-reopen step."""

import errno
import logging
import os

from rotatelog.clock import Clock
from rotatelog.config import RotatePolicy
from rotatelog.errors import OversizeError
from rotatelog.naming import GZ_SUFFIX, BackupNaming

logger = logging.getLogger(__name__)

_BASE_FLAGS = os.O_WRONLY | os.O_CREAT | getattr(os, "O_CLOEXEC", 0) | getattr(os, "O_BINARY", 0)
_APPEND_FLAGS = _BASE_FLAGS | os.O_APPEND
_CREATE_FLAGS = _BASE_FLAGS | os.O_APPEND | os.O_TRUNC


def close_on_exec(fd: int):
    """Keep the descriptor out of processes spawned after open."""
    os.set_inheritable(fd, False)


def open_file(path: str, flags: int, mode: int):
    fd = os.open(path, flags, mode)
    try:
        close_on_exec(fd)
        return os.fdopen(fd, "ab")
    except OSError:
        os.close(fd)
        raise


class RotationEngine:
    """Size-triggered rotation of a single active file.

    Not thread-safe on its own; RotateWriter serializes every call.
    """

    def __init__(self, path: str, policy: RotatePolicy, clock: Clock, on_rotate=None,
                 naming: BackupNaming | None = None):
        self._path = path
        self._policy = policy
        self._clock = clock
        self._on_rotate = on_rotate
        self._naming = naming or BackupNaming(path, policy.delimiter, policy.compress)
        self._file = None
        self._size = 0
        self._backup_name = ""

    @property
    def path(self) -> str:
        return self._path

    @property
    def naming(self) -> BackupNaming:
        return self._naming

    @property
    def size(self) -> int:
        """Bytes written since open or the last successful rotation."""
        return self._size

    @property
    def backup_name(self) -> str:
        """Name the active file will get at the next rotation."""
        return self._backup_name

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def open(self):
        """Create missing directories, then open the active file for append."""
        log_dir = os.path.dirname(self._path)
        if log_dir and not os.path.isdir(log_dir):
            os.makedirs(log_dir, mode=self._policy.dir_mode, exist_ok=True)
        self._file = open_file(self._path, _APPEND_FLAGS, self._policy.file_mode)
        self._size = 0
        self._backup_name = self._naming.backup_name(self._clock.now())

    def write(self, data: bytes) -> int:
        size = len(data)
        if size > self._policy.max_size:
            raise OversizeError(size, self._policy.max_size)
        if self._size + size > self._policy.max_size:
            self.rotate()
        if self._file is None:
            # a failed reopen during rotate() left no handle
            self._file = open_file(self._path, _APPEND_FLAGS, self._policy.file_mode)
        self._file.write(data)
        self._file.flush()
        self._size += size
        return size

    def rotate(self) -> str | None:
        """Retire the active file under the precomputed backup name and start a fresh one.

        Returns the retired name, or None if there was no active file on disk
        to rename. On rename failure the active file is reopened for append
        and the error propagates. An existing backup is never overwritten:
        if the name is still taken after recomputing it from the clock,
        FileExistsError is raised the same way.
        """
        if self._file is not None:
            self._file.close()
            self._file = None

        retired = None
        if os.path.exists(self._path) and self._backup_name:
            if self._backup_taken(self._backup_name):
                self._backup_name = self._naming.backup_name(self._clock.now())
            try:
                if self._backup_taken(self._backup_name):
                    raise FileExistsError(errno.EEXIST, "backup already exists", self._backup_name)
                os.replace(self._path, self._backup_name)
            except OSError:
                logger.warning("Failed to rename %s to %s", self._path, self._backup_name)
                self._file = open_file(self._path, _APPEND_FLAGS, self._policy.file_mode)
                raise
            retired = self._backup_name
            self._size = 0
            logger.debug("Rotated %s to %s", self._path, retired)
            if self._on_rotate is not None:
                self._on_rotate(retired)

        self._backup_name = self._naming.backup_name(self._clock.now())
        self._file = open_file(self._path, _CREATE_FLAGS, self._policy.file_mode)
        self._size = 0
        return retired

    def _backup_taken(self, name: str) -> bool:
        if os.path.exists(name):
            return True
        return self._naming.compress and os.path.exists(name + GZ_SUFFIX)

    def flush(self):
        if self._file is not None:
            self._file.flush()

    def close(self):
        """Flush, sync and close the active file. Errors propagate."""
        if self._file is None:
            return
        f, self._file = self._file, None
        try:
            f.flush()
            os.fsync(f.fileno())
        finally:
            f.close()
