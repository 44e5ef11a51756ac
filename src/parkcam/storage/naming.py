"""Timestamped object names for uploaded images."""

from datetime import datetime
from typing import Callable


def _local_now() -> datetime:
    return datetime.now().astimezone()


def timestamp_token(moment: datetime) -> str:
    """Render a moment as a URL-safe token, spaces replaced by underscores.

    >>> from datetime import timezone
    >>> timestamp_token(datetime(2014, 3, 1, 12, 0, 5, 123, tzinfo=timezone.utc))
    '2014-03-01_12:00:05.000123_+0000_UTC'
    """
    text = moment.strftime("%Y-%m-%d %H:%M:%S.%f %z %Z").strip()
    return text.replace(" ", "_")


class ObjectNamer:
    """Builds object names as ``<prefix><timestamp>``.

    Consecutive names never repeat, even when the clock has not advanced
    since the previous call: a ``-N`` suffix is added instead.
    """

    def __init__(self, prefix: str, clock: Callable[[], datetime] = _local_now) -> None:
        self.prefix = prefix
        self._clock = clock
        self._last_base: str | None = None
        self._repeats = 0

    def next_name(self) -> str:
        base = f"{self.prefix}{timestamp_token(self._clock())}"
        if base == self._last_base:
            self._repeats += 1
            return f"{base}-{self._repeats}"
        self._last_base = base
        self._repeats = 0
        return base
