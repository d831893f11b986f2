"""Backup file naming and discovery.

Backups live beside the active file as ``<prefix><delimiter><timestamp><ext>``,
plus ``.gz`` once compressed. Retention compares these names as plain strings,
so the timestamp format must sort lexically in chronological order
(fixed-width, zero-padded, most significant field first). It must also be
fine enough that two rotations never share a timestamp: the engine refuses
to rename onto an existing backup, so a coarse format such as ``%Y%m%d%H%M``
makes a second rotation within the same minute fail with FileExistsError.
"""

import os

GZ_SUFFIX = ".gz"


class BackupNaming:
    def __init__(self, path: str, delimiter: str, compress: bool = False):
        self.path = path
        self.prefix, self.ext = os.path.splitext(path)
        self.delimiter = delimiter
        self.compress = compress

    def backup_name(self, timestamp: str) -> str:
        """Name the active file is renamed to at rotation."""
        return f"{self.prefix}{self.delimiter}{timestamp}{self.ext}"

    def boundary_name(self, timestamp: str) -> str:
        """Sentinel comparable against the names list_backups() returns."""
        name = self.backup_name(timestamp)
        if self.compress:
            name += GZ_SUFFIX
        return name

    def list_backups(self) -> list[str]:
        return list_backups(self.prefix, self.delimiter, self.ext, self.compress)


def list_backups(prefix: str, delimiter: str, ext: str, compress: bool = False) -> list[str]:
    """Return paths of existing backups for the active file, in no particular order.

    Matches ``<prefix><delimiter>*<ext>`` (``*<ext>.gz`` when compress is on).
    Raises OSError if the directory cannot be listed.
    """
    log_dir = os.path.dirname(prefix) or "."
    head = os.path.basename(prefix) + delimiter
    tail = ext + GZ_SUFFIX if compress else ext

    backups = []
    for name in os.listdir(log_dir):
        if len(name) < len(head) + len(tail):
            continue
        if name.startswith(head) and name.endswith(tail):
            backups.append(os.path.join(os.path.dirname(prefix), name))
    return backups
