"""Rotating log demo: writes generated log lines through RotateWriter until stopped."""

import logging
import os
import random
import signal
import sys
import time
import uuid
from datetime import datetime, timezone

from rotatelog.config import load_config
from rotatelog.writer import RotateWriter

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [rotatelog] %(levelname)s %(name)s %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

_running = True


def _signal_handler(sig, _frame):
    global _running
    logger.info("Shutdown signal received (signal %d), stopping...", sig)
    _running = False


LEVELS = ["INFO", "INFO", "INFO", "INFO", "DEBUG", "WARN", "ERROR"]
SERVICES = ["auth-api", "order-svc", "payment-gw", "user-svc", "catalog-api"]
MESSAGES = {
    "INFO": ["Request processed successfully", "Health check passed", "Cache hit for user session"],
    "DEBUG": ["Entering request handler", "Parsed request body"],
    "WARN": ["Slow query detected (>500ms)", "Connection pool nearing capacity"],
    "ERROR": ["Failed to connect to database", "Timeout waiting for upstream response"],
}


def generate_entry() -> bytes:
    now = datetime.now(timezone.utc)
    timestamp = now.strftime("%Y-%m-%d %H:%M:%S.") + f"{now.microsecond // 1000:03d}"
    level = random.choice(LEVELS)
    service = random.choice(SERVICES)
    req_id = uuid.uuid4().hex[:8]
    message = random.choice(MESSAGES[level])
    return f"{timestamp} [{level}] [{service}] [{req_id}] {message}\n".encode()


def main():
    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    policy = load_config()
    path = os.environ.get("LOG_PATH", "./logs/application.log")
    logger.info(
        "Config: path=%s, max_size=%d bytes, max_backups=%d, max_age=%dd, compress=%s",
        path, policy.max_size, policy.max_backups, policy.max_age_days, policy.compress,
    )

    writer = RotateWriter(path, policy=policy)
    entries_written = 0
    backup_name = writer.engine.backup_name

    try:
        while _running:
            try:
                writer.write(generate_entry())
            except Exception as e:
                logger.warning("Write failed: %s", e)
                continue
            entries_written += 1
            if writer.engine.backup_name != backup_name:
                logger.info("Rotated: %s (%d entries written so far)", backup_name, entries_written)
                backup_name = writer.engine.backup_name
            time.sleep(0.01)
    except KeyboardInterrupt:
        pass
    finally:
        writer.close()

    logger.info("Shut down cleanly. Total entries written: %d", entries_written)


if __name__ == "__main__":
    main()
