"""Configuration module: frozen rotation policy loaded from kwargs, environment or YAML."""

import os
from dataclasses import dataclass, fields

import yaml

MEGABYTE = 1024 * 1024

DEFAULT_DIR_MODE = 0o755
DEFAULT_FILE_MODE = 0o644
DEFAULT_MAX_SIZE_MB = 128
DEFAULT_MAX_AGE_DAYS = 30
DEFAULT_MAX_BACKUPS = 0
DEFAULT_DELIMITER = "-"
DEFAULT_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"
DEFAULT_QUEUE_SIZE = 100


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class RotatePolicy:
    max_size_mb: int = DEFAULT_MAX_SIZE_MB
    max_size_bytes: int | None = None  # takes precedence over max_size_mb
    max_age_days: int = DEFAULT_MAX_AGE_DAYS
    max_backups: int = DEFAULT_MAX_BACKUPS
    delimiter: str = DEFAULT_DELIMITER
    time_format: str = DEFAULT_TIME_FORMAT
    compress: bool = False
    use_local_time: bool = True
    file_mode: int = DEFAULT_FILE_MODE
    dir_mode: int = DEFAULT_DIR_MODE
    queue_size: int = DEFAULT_QUEUE_SIZE

    def __post_init__(self):
        if self.max_size_mb <= 0:
            object.__setattr__(self, "max_size_mb", DEFAULT_MAX_SIZE_MB)
        if self.max_size_bytes is not None and self.max_size_bytes <= 0:
            object.__setattr__(self, "max_size_bytes", None)
        if not self.delimiter:
            object.__setattr__(self, "delimiter", DEFAULT_DELIMITER)
        if not self.time_format:
            object.__setattr__(self, "time_format", DEFAULT_TIME_FORMAT)
        if self.queue_size <= 0:
            object.__setattr__(self, "queue_size", DEFAULT_QUEUE_SIZE)

    @property
    def max_size(self) -> int:
        """Size budget of the active file in bytes."""
        if self.max_size_bytes is not None:
            return self.max_size_bytes
        return self.max_size_mb * MEGABYTE

    @classmethod
    def from_dict(cls, d: dict) -> "RotatePolicy":
        """Build a policy from a mapping, ignoring keys that are not policy fields."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})


def load_config() -> RotatePolicy:
    """Build RotatePolicy from environment variables with sensible defaults."""
    # ROTATE_MAX_SIZE_BYTES takes precedence over ROTATE_MAX_SIZE_MB
    raw_bytes = os.environ.get("ROTATE_MAX_SIZE_BYTES")
    raw_mb = os.environ.get("ROTATE_MAX_SIZE_MB")
    if raw_bytes is not None:
        max_size_bytes = int(raw_bytes)
    elif raw_mb is not None:
        max_size_bytes = int(float(raw_mb) * MEGABYTE)
    else:
        max_size_bytes = None

    return RotatePolicy(
        max_size_bytes=max_size_bytes,
        max_age_days=int(os.environ.get("ROTATE_MAX_AGE_DAYS", DEFAULT_MAX_AGE_DAYS)),
        max_backups=int(os.environ.get("ROTATE_MAX_BACKUPS", DEFAULT_MAX_BACKUPS)),
        delimiter=os.environ.get("ROTATE_DELIMITER", DEFAULT_DELIMITER),
        time_format=os.environ.get("ROTATE_TIME_FORMAT", DEFAULT_TIME_FORMAT),
        compress=_parse_bool(os.environ.get("ROTATE_COMPRESS", "false")),
        use_local_time=_parse_bool(os.environ.get("ROTATE_LOCAL_TIME", "true")),
    )


def load_yaml(path: str = "config.yml") -> RotatePolicy:
    """Load the ``rotate`` section of a YAML config file into a RotatePolicy.

    The path can be overridden via the ``CONFIG_PATH`` environment variable.
    """
    path = os.environ.get("CONFIG_PATH", path)
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    return RotatePolicy.from_dict(data.get("rotate", {}))
