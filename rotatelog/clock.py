"""Formats "now" and shifted timestamps under a local-or-UTC policy."""

from datetime import datetime, timedelta, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Clock:
    def __init__(self, time_format: str, use_local: bool = True, time_func=None):
        self._time_format = time_format
        self._use_local = use_local
        self._time_func = time_func or _utcnow

    def _convert(self, when: datetime) -> datetime:
        if self._use_local:
            return when.astimezone()
        return when.astimezone(timezone.utc)

    def current(self) -> datetime:
        """Current time converted to the configured zone."""
        return self._convert(self._time_func())

    def now(self) -> str:
        return self.current().strftime(self._time_format)

    def shifted(self, delta: timedelta) -> str:
        # shift the instant first so the local offset is the one in force then
        return self._convert(self._time_func() + delta).strftime(self._time_format)
