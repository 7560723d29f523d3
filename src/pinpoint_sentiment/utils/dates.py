"""Collection window helpers."""

from datetime import datetime, timezone
from typing import Optional, Tuple

import pandas as pd


def collection_window(lookback_months: int, now: Optional[datetime] = None) -> Tuple[str, str]:
    """Return (window_start, window_end) ISO-8601 UTC strings for a lookback in calendar months."""
    end = pd.Timestamp(now or datetime.now(timezone.utc))
    if end.tzinfo is None:
        end = end.tz_localize("UTC")
    start = end - pd.DateOffset(months=lookback_months)
    return start.isoformat(), end.isoformat()


def to_rfc3339(iso_timestamp: str) -> str:
    """Format an ISO timestamp the way the YouTube API expects (``...Z``)."""
    return pd.Timestamp(iso_timestamp).tz_convert("UTC").strftime("%Y-%m-%dT%H:%M:%SZ")
