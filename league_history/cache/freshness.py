"""
Cache freshness policy.

CACHING STRATEGY:
- Past seasons: NEVER expire (upstream data is permanent once a season ends)
- Current season, completed weeks: NEVER expire (past weeks don't change)
- Current season, active data: expire after the TTL (one week by default)

Week completion is judged from the season first. Upstream status strings are
only a secondary signal, since their vocabulary is controlled by the provider
and may drift (Yahoo: 'postevent' / 'live' / 'upcoming').

"Now" and the current season are always passed in, never read from the clock
inside the decision functions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=168)

# Status values that mark a week as finished
FINAL_STATUSES = frozenset({"postevent", "completed", "finished", "final"})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp; None for missing or unparseable values."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    try:
        text = str(value).strip().replace("Z", "+00:00")
        return _as_utc(datetime.fromisoformat(text))
    except ValueError:
        logger.debug(f"Skipping unparseable cache timestamp: {value!r}")
        return None


def is_fresh(
    cached_at: datetime,
    is_current_period: bool,
    is_closed_period: bool = False,
    *,
    now: Optional[datetime] = None,
    ttl: timedelta = DEFAULT_TTL,
) -> bool:
    """
    Check if cached data may be reused.

    Args:
        cached_at: When the cached value was written
        is_current_period: Whether the value belongs to the live season
        is_closed_period: Whether the sub-period (week) is known to be finished
        now: Reference time, defaults to the current UTC time
        ttl: Lifetime of live-season data

    Returns:
        True if the cached value is still usable
    """
    if not is_current_period:
        return True

    if is_closed_period:
        return True

    now = _as_utc(now) if now is not None else utc_now()
    return now - _as_utc(cached_at) < ttl


def is_closed_week(is_current_season: bool, statuses: Iterable[Optional[str]] = ()) -> bool:
    """
    Whether a week is finished.

    Weeks of a past season are always closed. For the current season any
    status in FINAL_STATUSES marks the week closed.
    """
    if not is_current_season:
        return True
    return any(
        status is not None and status.strip().lower() in FINAL_STATUSES
        for status in statuses
    )


def has_missing_fields(rows: Iterable[Dict[str, Any]], fields: Sequence[str] = ("owner_name",)) -> bool:
    """True if any row lacks a value for any of the required fields."""
    for row in rows:
        for name in fields:
            value = row.get(name)
            if value is None or value == "":
                return True
    return False


def oldest_cached_at(rows: Iterable[Dict[str, Any]], field_name: str = "cached_at") -> Optional[datetime]:
    """Oldest valid timestamp across rows; a cached set is as old as its oldest row."""
    timestamps = [parse_timestamp(row.get(field_name)) for row in rows]
    valid = [ts for ts in timestamps if ts is not None]
    return min(valid) if valid else None


def is_current_season(season: Optional[int], current_season: Optional[int]) -> bool:
    if season is None or current_season is None:
        # Unknown season: treat as live so it is not cached forever
        return True
    return int(season) == int(current_season)


@dataclass
class CachePolicy:
    """Freshness policy with its clock and current season injected."""
    current_season: Optional[int]
    ttl: timedelta = DEFAULT_TTL
    clock: Callable[[], datetime] = field(default=utc_now)

    def is_current(self, season: Optional[int]) -> bool:
        return is_current_season(season, self.current_season)

    def entry_is_fresh(
        self,
        cached_at: Optional[datetime],
        season: Optional[int],
        is_closed_period: bool = False,
    ) -> bool:
        """Freshness of a cached set; a missing timestamp only passes for closed data."""
        current = self.is_current(season)
        if cached_at is None:
            return not current or is_closed_period
        return is_fresh(cached_at, current, is_closed_period, now=self.clock(), ttl=self.ttl)

    def week_is_closed(self, season: Optional[int], statuses: Iterable[Optional[str]] = ()) -> bool:
        return is_closed_week(self.is_current(season), statuses)
