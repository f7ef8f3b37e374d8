"""
Helper Functions

This module contains utility functions used throughout the application.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from dateutil import parser as dtparser

# epoch numbers above this are milliseconds (1e11 s is the year 5138)
EPOCH_MS_THRESHOLD = 1e11


def parse_ts(x: Any) -> Optional[datetime]:
    """
    Parse timestamp from ISO strings, epoch numbers or datetimes (naive = UTC).
    Epoch values above EPOCH_MS_THRESHOLD are read as milliseconds (JS Date.now()),
    smaller ones as seconds.
    """
    if x is None or x == "":
        return None
    if isinstance(x, datetime):
        dt = x
    elif isinstance(x, (int, float)) and not isinstance(x, bool):
        try:
            if abs(x) > EPOCH_MS_THRESHOLD:
                x = x / 1000.0
            return datetime.fromtimestamp(x, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        try:
            dt = dtparser.isoparse(str(x))
        except (ValueError, OverflowError):
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def safe_int(x: Any, default: Optional[int] = None) -> Optional[int]:
    """Safely convert to int"""
    try:
        return int(x) if x is not None else default
    except (TypeError, ValueError):
        try:
            return int(float(x))
        except (TypeError, ValueError, OverflowError):
            return default


def safe_bool(x: Any) -> Optional[bool]:
    """Interpret common truthy/falsy spellings, None if unrecognised"""
    if isinstance(x, bool):
        return x
    if x is None:
        return None
    s = str(x).strip().lower()
    if s in ("true", "1", "yes"):
        return True
    if s in ("false", "0", "no"):
        return False
    return None


def get_nested(d: Dict[str, Any], path: Tuple[str, ...]) -> Any:
    """Safely read nested dict keys"""
    cur: Any = d
    for k in path:
        if not isinstance(cur, dict) or k not in cur:
            return None
        cur = cur[k]
    return cur


def first_present(d: Dict[str, Any], *keys: str) -> Any:
    """Return the value of the first key that is present and not None"""
    for k in keys:
        value = d.get(k)
        if value is not None:
            return value
    return None


def coalesce(*values: Any) -> Any:
    """Return the first value that is not None (falsy values such as 0 count)"""
    return next((v for v in values if v is not None), None)


def quantile(sorted_vals: List[float], q: float) -> float:
    """Calculate percentile from sorted values"""
    n = len(sorted_vals)
    if n == 0:
        return 0.0
    if n == 1:
        return float(sorted_vals[0])
    pos = (n - 1) * q
    lo = int(pos)
    hi = min(lo + 1, n - 1)
    frac = pos - lo
    return float(sorted_vals[lo] * (1 - frac) + sorted_vals[hi] * frac)


def hour_label(hour: int) -> str:
    return f"{hour:02d}:00"
