"""Tests for the rotation engine."""

import os
import re
import shutil
import stat
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from unittest import mock

from rotatelog.clock import Clock
from rotatelog.config import RotatePolicy
from rotatelog.engine import RotationEngine
from rotatelog.errors import OversizeError

START = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def ticking_clock(policy, step=timedelta(seconds=1)):
    """Clock that advances by *step* on every reading."""
    current = [START]

    def time_func():
        value = current[0]
        current[0] = value + step
        return value

    return Clock(policy.time_format, use_local=False, time_func=time_func)


class EngineTestCase(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.path = os.path.join(self.tmpdir, "app.log")
        self.retired = []

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def _engine(self, **overrides):
        options = dict(max_size_bytes=10, use_local_time=False)
        options.update(overrides)
        policy = RotatePolicy(**options)
        engine = RotationEngine(self.path, policy, ticking_clock(policy),
                                on_rotate=self.retired.append)
        engine.open()
        self.addCleanup(engine.close)
        return engine

    def _read(self, path):
        with open(path, "rb") as f:
            return f.read()

    def _backups(self):
        return sorted(n for n in os.listdir(self.tmpdir) if n != "app.log")


class TestOpen(EngineTestCase):
    def test_creates_missing_directories(self):
        self.path = os.path.join(self.tmpdir, "nested", "deeper", "app.log")
        self._engine()
        self.assertTrue(os.path.isfile(self.path))

    def test_appends_to_existing_file(self):
        with open(self.path, "wb") as f:
            f.write(b"old\n")
        engine = self._engine(max_size_bytes=100)
        engine.write(b"new\n")
        self.assertEqual(self._read(self.path), b"old\nnew\n")
        self.assertEqual(engine.size, 4)

    def test_precomputes_backup_name(self):
        engine = self._engine()
        self.assertEqual(
            engine.backup_name,
            os.path.join(self.tmpdir, "app-2025-01-15T12:00:00.000000.log"),
        )

    def test_descriptor_not_inheritable(self):
        engine = self._engine()
        self.assertFalse(os.get_inheritable(engine._file.fileno()))

    @unittest.skipIf(os.name != "posix", "permission bits are POSIX only")
    def test_file_mode_applied(self):
        old_umask = os.umask(0)
        try:
            self._engine(file_mode=0o600)
        finally:
            os.umask(old_umask)
        self.assertEqual(stat.S_IMODE(os.stat(self.path).st_mode), 0o600)


class TestWrite(EngineTestCase):
    def test_write_accumulates_size(self):
        engine = self._engine()
        engine.write(b"abc")
        engine.write(b"de")
        self.assertEqual(engine.size, 5)
        self.assertEqual(self._read(self.path), b"abcde")

    def test_oversize_write_no_io(self):
        engine = self._engine()
        engine.write(b"abc")
        with self.assertRaises(OversizeError):
            engine.write(b"x" * 11)
        self.assertEqual(engine.size, 3)
        self.assertEqual(self._read(self.path), b"abc")
        self.assertEqual(self._backups(), [])

    def test_exact_fit_does_not_rotate(self):
        engine = self._engine()
        engine.write(b"x" * 10)
        self.assertEqual(self.retired, [])
        self.assertEqual(engine.size, 10)

    def test_overflow_rotates_once_before_write(self):
        engine = self._engine()
        first_backup = engine.backup_name
        engine.write(b"123456")
        engine.write(b"7890abc")

        self.assertEqual(self.retired, [first_backup])
        self.assertEqual(engine.size, 7)
        self.assertEqual(self._read(first_backup), b"123456")
        self.assertEqual(self._read(self.path), b"7890abc")

    def test_many_writes_keep_every_byte(self):
        engine = self._engine()
        for i in range(10):
            engine.write(b"%04d" % i)
        self.assertEqual(len(self.retired), 4)
        data = b"".join(self._read(p) for p in self.retired) + self._read(self.path)
        self.assertEqual(data, b"".join(b"%04d" % i for i in range(10)))


class TestRotate(EngineTestCase):
    def test_rotate_leaves_one_backup_and_empty_active_file(self):
        engine = self._engine(max_size_bytes=100)
        engine.write(b"payload")
        backup = engine.backup_name

        retired = engine.rotate()

        self.assertEqual(retired, backup)
        self.assertEqual(self._backups(), [os.path.basename(backup)])
        self.assertRegex(
            os.path.basename(backup),
            r"^app-\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{6}\.log$",
        )
        self.assertEqual(os.path.getsize(self.path), 0)
        self.assertEqual(engine.size, 0)

    def test_rotate_computes_next_name(self):
        engine = self._engine()
        first = engine.backup_name
        engine.rotate()
        self.assertNotEqual(engine.backup_name, first)
        self.assertGreater(engine.backup_name, first)

    def test_rotate_without_active_file_skips_rename(self):
        engine = self._engine()
        os.remove(self.path)
        self.assertIsNone(engine.rotate())
        self.assertEqual(self.retired, [])
        self.assertTrue(os.path.exists(self.path))

    def test_rename_failure_keeps_file_open_and_counter(self):
        engine = self._engine()
        engine.write(b"12345")
        with mock.patch("rotatelog.engine.os.replace", side_effect=PermissionError("denied")):
            with self.assertRaises(PermissionError):
                engine.write(b"678901")
        self.assertEqual(engine.size, 5)
        self.assertEqual(self.retired, [])
        self.assertTrue(engine.is_open)
        self.assertEqual(self._read(self.path), b"12345")

        engine.write(b"6789")
        self.assertEqual(self._read(self.path), b"123456789")

    def _fixed_clock_engine(self, **overrides):
        options = dict(max_size_bytes=10, use_local_time=False, time_format="%Y%m%d%H%M")
        options.update(overrides)
        policy = RotatePolicy(**options)
        clock = Clock(policy.time_format, use_local=False, time_func=lambda: START)
        engine = RotationEngine(self.path, policy, clock, on_rotate=self.retired.append)
        engine.open()
        self.addCleanup(engine.close)
        return engine

    def test_existing_backup_never_overwritten(self):
        engine = self._fixed_clock_engine()
        engine.write(b"aaaaaa")
        engine.write(b"bbbbbb")
        first = self.retired[0]

        with self.assertRaises(FileExistsError):
            engine.write(b"cccccc")

        self.assertEqual(self._read(first), b"aaaaaa")
        self.assertEqual(self._read(self.path), b"bbbbbb")
        self.assertEqual(engine.size, 6)
        self.assertEqual(self.retired, [first])
        self.assertTrue(engine.is_open)

    def test_existing_compressed_backup_never_overwritten(self):
        engine = self._fixed_clock_engine(compress=True)
        engine.write(b"aaaaaa")
        engine.write(b"bbbbbb")
        first = self.retired[0]
        os.replace(first, first + ".gz")

        with self.assertRaises(FileExistsError):
            engine.rotate()
        self.assertEqual(self._read(first + ".gz"), b"aaaaaa")
        self.assertFalse(os.path.exists(first))

    def test_rotated_name_pattern_with_custom_delimiter(self):
        engine = self._engine(delimiter=".", time_format="%Y%m%d%H%M%S")
        engine.write(b"x")
        retired = engine.rotate()
        self.assertTrue(re.match(r"^app\.\d{14}\.log$", os.path.basename(retired)))


class TestClose(EngineTestCase):
    def test_close_flushes_and_releases_handle(self):
        engine = self._engine()
        engine.write(b"abc")
        engine.close()
        self.assertFalse(engine.is_open)
        self.assertEqual(self._read(self.path), b"abc")

    def test_close_twice_is_harmless(self):
        engine = self._engine()
        engine.close()
        engine.close()
        self.assertFalse(engine.is_open)


if __name__ == "__main__":
    unittest.main()
