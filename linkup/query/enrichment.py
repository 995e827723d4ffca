"""Derived fields for feed entities (posts and comments)."""

import copy
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

MINUTES_IN_DAY = 1440
MINUTES_IN_MONTH = 43200
MINUTES_IN_TWO_MONTHS = 86400

DERIVED_FIELDS = ("time_elapsed", "likes_count")


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def _as_naive_utc(value: Union[str, datetime]) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _month_difference(earlier: datetime, later: datetime) -> int:
    months = (later.year - earlier.year) * 12 + (later.month - earlier.month)
    if (later.day, later.time()) < (earlier.day, earlier.time()):
        months -= 1
    return max(months, 0)


def format_distance(start: datetime, end: datetime) -> str:
    """
    Human distance between two instants, date-fns style:
    "less than a minute", "5 minutes", "about 3 hours", "2 days",
    "about 1 month", "4 months", "over 2 years".
    """
    earlier, later = (start, end) if start <= end else (end, start)
    seconds = (later - earlier).total_seconds()
    minutes = int(round(seconds / 60))

    if minutes < 2:
        return "less than a minute" if minutes == 0 else "1 minute"
    if minutes < 45:
        return f"{minutes} minutes"
    if minutes < 90:
        return "about 1 hour"
    if minutes < MINUTES_IN_DAY:
        return f"about {_plural(int(round(minutes / 60)), 'hour')}"
    if minutes < 2520:
        return "1 day"
    if minutes < MINUTES_IN_MONTH:
        return _plural(int(round(minutes / MINUTES_IN_DAY)), "day")
    if minutes < MINUTES_IN_TWO_MONTHS:
        return f"about {_plural(int(round(minutes / MINUTES_IN_MONTH)), 'month')}"

    months = _month_difference(earlier, later)
    if months < 12:
        return _plural(max(int(round(minutes / MINUTES_IN_MONTH)), 2), "month")

    years, remainder = divmod(months, 12)
    if remainder < 3:
        return f"about {_plural(years, 'year')}"
    if remainder < 9:
        return f"over {_plural(years, 'year')}"
    return f"almost {_plural(years + 1, 'year')}"


def time_ago(created_at: Union[str, datetime], now: Optional[datetime] = None) -> str:
    """Relative time with suffix: "3 hours ago", or "in 2 days" for future instants."""
    created = _as_naive_utc(created_at)
    current = _as_naive_utc(now) if now is not None else datetime.utcnow()
    distance = format_distance(created, current)
    return f"{distance} ago" if created <= current else f"in {distance}"


def enrich_feed(
    documents: Iterable[Dict[str, Any]], now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """
    Detached copies of feed documents with time_elapsed and likes_count.

    Values are always recomputed from created_at and liker_ids, so running
    this twice gives the same result.
    """
    enriched = []
    for document in documents:
        item = copy.deepcopy(dict(document))
        created_at = item.get("created_at")
        item["time_elapsed"] = time_ago(created_at, now) if created_at else None
        item["likes_count"] = len(item.get("liker_ids") or [])
        enriched.append(item)
    return enriched
