"""
Database management package.

This package provides the SQLite cache for standings, SDS+ scores, weekly
matchups and head-to-head records.

Modules:
    cache_store: Cache database initialization and read/write helpers
"""

from league_history.db.cache_store import (
    CacheStore,
    pair_key,
)

__all__ = [
    "CacheStore",
    "pair_key",
]
