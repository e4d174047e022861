"""Timezone-safe datetime helpers."""

from __future__ import annotations

from datetime import datetime

import pytz


def from_unix(seconds: float | int | None) -> datetime | None:
    if not seconds:
        return None
    return datetime.fromtimestamp(float(seconds), pytz.UTC)
