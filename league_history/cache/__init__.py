"""
Cache freshness policy.

Decides whether a cached standings / SDS+ / matchup set may be reused or must
be recomputed.
"""

from league_history.cache.freshness import (
    DEFAULT_TTL,
    FINAL_STATUSES,
    CachePolicy,
    has_missing_fields,
    is_closed_week,
    is_current_season,
    is_fresh,
    oldest_cached_at,
)

__all__ = [
    "DEFAULT_TTL",
    "FINAL_STATUSES",
    "CachePolicy",
    "has_missing_fields",
    "is_closed_week",
    "is_current_season",
    "is_fresh",
    "oldest_cached_at",
]
