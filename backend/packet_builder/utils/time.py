"""Clock helpers for job rows and archive names."""

from __future__ import annotations

import time
from datetime import datetime, timezone

ARCHIVE_STAMP_FORMAT = "%Y%m%d_%H%M%S"


def now_ms() -> int:
    return int(time.time() * 1000)


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def ms_to_datetime(value: int | None) -> datetime:
    """Stored millisecond timestamps as aware datetimes; missing means now."""
    if value is None:
        return utc_now()
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


def archive_stamp(moment: datetime | None = None) -> str:
    """``YYYYMMDD_HHMMSS`` stamp used in multi-packet download names."""
    return (moment or utc_now()).strftime(ARCHIVE_STAMP_FORMAT)
