#!/usr/bin/env python3
"""
League Cache Database

SQLite store for data fetched from the fantasy provider and for values derived
from it:

- Final standings per league season
- SDS+ scores per league season (with full breakdown)
- Weekly matchups per league week
- All-time head-to-head records per manager pair

Each logical entry is replaced as a whole (delete-then-insert in a single
transaction), so stale and fresh rows are never mixed. Reads and writes never
raise: caching is an optimisation, so failures are logged and reported as a
cache miss (None) or a failed write (False).

The store does not decide freshness; callers pass the returned cached_at to
league_history.cache.freshness.

Usage:
    # Initialize a new database
    python -m league_history.db.cache_store --init

    # Show what is cached
    python -m league_history.db.cache_store --check

    # As a module
    from league_history.db.cache_store import CacheStore
    store = CacheStore("db/league_cache.sqlite")
    store.initialize()
    store.put_standings("449.l.12345", 2024, standings)
    entry = store.get_standings("449.l.12345")
"""

from __future__ import annotations

import argparse
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Generator, Iterable, List, Optional, Sequence, Tuple

from league_history.cache.freshness import oldest_cached_at, utc_now
from league_history.models import (
    CacheEntry,
    CompositeScore,
    HeadToHeadRecord,
    Interpretation,
    MatchupRecord,
    ScoreBreakdown,
    StandingRecord,
)

logger = logging.getLogger(__name__)

# Path constants
SCRIPT_DIR = Path(__file__).parent
SCHEMA_PATH = SCRIPT_DIR / "schema.sql"

CACHE_TABLES = ["league_standings", "sds_plus_cache", "matchups", "head_to_head_cache"]


def pair_key(manager1: str, manager2: str) -> str:
    """Order-independent key for a manager pair."""
    first, second = sorted([manager1, manager2])
    return f"{first}|{second}"


class CacheStore:
    """
    Manager for the league cache database.

    Provides methods for:
    - Database initialization and schema management
    - Standings, SDS+, matchup and head-to-head cache reads/writes
    - Cache summary for maintenance
    """

    def __init__(
        self,
        db_path: str | Path,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize the store.

        Args:
            db_path: Path to the SQLite database file
            clock: Source of cached_at timestamps for writes
        """
        self.db_path = Path(db_path)
        self.clock = clock

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections with proper cleanup."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self, conn: sqlite3.Connection) -> Generator[sqlite3.Cursor, None, None]:
        """Context manager for database transactions."""
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def initialize(self, force: bool = False) -> None:
        """
        Create the cache tables.

        Args:
            force: If True, remove the existing database first.
                   Use with caution - this destroys all cached data!
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        if force and self.db_path.exists():
            logger.warning(f"Forcing reinitialization - removing {self.db_path}")
            self.db_path.unlink()

        if not SCHEMA_PATH.exists():
            raise FileNotFoundError(f"Schema file not found: {SCHEMA_PATH}")

        with self.connection() as conn:
            conn.executescript(SCHEMA_PATH.read_text())
            conn.commit()
        logger.info(f"Cache database ready at {self.db_path}")

    def _timestamp(self) -> str:
        return self.clock().isoformat()

    def _fetch(self, query: str, params: Sequence[Any]) -> List[Dict[str, Any]]:
        with self.connection() as conn:
            return [dict(row) for row in conn.execute(query, params).fetchall()]

    def _replace(
        self,
        delete_sql: str,
        delete_params: Sequence[Any],
        insert_sql: str,
        rows: List[Tuple[Any, ...]]
    ) -> None:
        """Delete an entry and insert its new rows in one transaction."""
        with self.connection() as conn:
            with self.transaction(conn) as cursor:
                cursor.execute(delete_sql, delete_params)
                if rows:
                    cursor.executemany(insert_sql, rows)

    # -------------------------------------------------------------------------
    # Standings
    # -------------------------------------------------------------------------

    def get_standings(self, league_key: str) -> Optional[CacheEntry[List[StandingRecord]]]:
        """Cached standings for a league season, ordered by rank."""
        try:
            rows = self._fetch(
                "SELECT * FROM league_standings WHERE league_key = ? ORDER BY rank ASC",
                (league_key,)
            )
        except sqlite3.Error as e:
            logger.error(f"Error fetching cached standings for {league_key}: {e}")
            return None

        if not rows:
            return None

        standings = [
            StandingRecord(
                team_id=row["team_key"],
                team_name=row["team_name"],
                owner=row["owner_name"] or row["team_name"],
                rank=row["rank"],
                wins=row["wins"] or 0,
                losses=row["losses"] or 0,
                ties=row["ties"] or 0,
                points_for=float(row["points_for"] or 0),
                points_against=float(row["points_against"] or 0),
            )
            for row in rows
        ]
        return CacheEntry(value=standings, cached_at=oldest_cached_at(rows), rows=rows)

    def put_standings(
        self,
        league_key: str,
        season: Optional[int],
        standings: Iterable[StandingRecord]
    ) -> bool:
        cached_at = self._timestamp()
        rows = [
            (
                league_key, season, team.team_id, team.team_name, team.display_owner,
                team.rank, team.wins, team.losses, team.ties,
                team.points_for, team.points_against, cached_at
            )
            for team in standings
        ]
        try:
            self._replace(
                "DELETE FROM league_standings WHERE league_key = ?",
                (league_key,),
                """
                INSERT INTO league_standings (
                    league_key, season, team_key, team_name, owner_name,
                    rank, wins, losses, ties, points_for, points_against, cached_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows
            )
        except sqlite3.Error as e:
            logger.error(f"Error caching standings for {league_key}: {e}")
            return False

        logger.debug(f"Cached {len(rows)} standings rows for {league_key}")
        return True

    # -------------------------------------------------------------------------
    # SDS+ scores
    # -------------------------------------------------------------------------

    def get_sds_plus(self, league_key: str) -> Optional[CacheEntry[List[CompositeScore]]]:
        """Cached SDS+ scores for a league season, ordered by SDS+ rank."""
        try:
            rows = self._fetch(
                "SELECT * FROM sds_plus_cache WHERE league_key = ? ORDER BY sds_plus_rank ASC",
                (league_key,)
            )
        except sqlite3.Error as e:
            logger.error(f"Error fetching cached SDS+ scores for {league_key}: {e}")
            return None

        if not rows:
            return None

        try:
            scores = [
                CompositeScore(
                    owner=row["owner_name"],
                    team_id=row["team_key"],
                    score=float(row["sds_plus_score"]),
                    breakdown=ScoreBreakdown(**json.loads(row["breakdown"])),
                    rank=row["sds_plus_rank"],
                    final_rank=row["final_rank"],
                    interpretation=Interpretation(row["interpretation"]),
                )
                for row in rows
            ]
        except (TypeError, ValueError) as e:
            # Legacy rows written without a breakdown are treated as a miss
            logger.info(f"Ignoring malformed SDS+ cache for {league_key}: {e}")
            return None

        return CacheEntry(value=scores, cached_at=oldest_cached_at(rows), rows=rows)

    def put_sds_plus(
        self,
        league_key: str,
        season: Optional[int],
        scores: Iterable[CompositeScore]
    ) -> bool:
        cached_at = self._timestamp()
        rows = [
            (
                league_key, season, s.team_id, s.owner, s.score, s.rank, s.final_rank,
                s.interpretation.value, json.dumps(s.breakdown.to_dict()), cached_at
            )
            for s in scores
        ]
        try:
            self._replace(
                "DELETE FROM sds_plus_cache WHERE league_key = ?",
                (league_key,),
                """
                INSERT INTO sds_plus_cache (
                    league_key, season, team_key, owner_name, sds_plus_score,
                    sds_plus_rank, final_rank, interpretation, breakdown, cached_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows
            )
        except sqlite3.Error as e:
            logger.error(f"Error caching SDS+ scores for {league_key}: {e}")
            return False
        return True

    # -------------------------------------------------------------------------
    # Weekly matchups
    # -------------------------------------------------------------------------

    def get_matchups(self, league_key: str, week: int) -> Optional[CacheEntry[List[MatchupRecord]]]:
        try:
            rows = self._fetch(
                "SELECT * FROM matchups WHERE league_key = ? AND week = ? ORDER BY id ASC",
                (league_key, week)
            )
        except sqlite3.Error as e:
            logger.error(f"Error fetching cached matchups for {league_key} week {week}: {e}")
            return None

        if not rows:
            return None

        matchups = [
            MatchupRecord(
                week=row["week"],
                matchup_key=row["matchup_key"],
                team1_id=row["team1_key"],
                team1_name=row["team1_name"],
                team1_owner=row["team1_owner_name"],
                team1_points=float(row["team1_points"] or 0),
                team2_id=row["team2_key"],
                team2_name=row["team2_name"],
                team2_owner=row["team2_owner_name"],
                team2_points=float(row["team2_points"] or 0),
                status=row["status"],
            )
            for row in rows
        ]
        return CacheEntry(value=matchups, cached_at=oldest_cached_at(rows), rows=rows)

    def put_matchups(
        self,
        league_key: str,
        season: Optional[int],
        week: int,
        matchups: Iterable[MatchupRecord]
    ) -> bool:
        cached_at = self._timestamp()
        rows = [
            (
                league_key, season, week, m.key,
                m.team1_id, m.team1_name, m.team1_owner, m.team1_points,
                m.team2_id, m.team2_name, m.team2_owner, m.team2_points,
                m.status or "completed", cached_at
            )
            for m in matchups
        ]
        try:
            self._replace(
                "DELETE FROM matchups WHERE league_key = ? AND week = ?",
                (league_key, week),
                """
                INSERT INTO matchups (
                    league_key, season, week, matchup_key,
                    team1_key, team1_name, team1_owner_name, team1_points,
                    team2_key, team2_name, team2_owner_name, team2_points,
                    status, cached_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows
            )
        except sqlite3.Error as e:
            logger.error(f"Error caching matchups for {league_key} week {week}: {e}")
            return False
        return True

    # -------------------------------------------------------------------------
    # Head-to-head
    # -------------------------------------------------------------------------

    @staticmethod
    def _record_from_row(row: Dict[str, Any], manager: str) -> HeadToHeadRecord:
        """Build the record from `manager`'s side of a stored pair."""
        record = HeadToHeadRecord(
            manager=row["manager1"],
            opponent=row["manager2"],
            wins=row["wins"],
            losses=row["losses"],
            ties=row["ties"],
            points_for=float(row["points_for"]),
            points_against=float(row["points_against"]),
        )
        return record if manager == row["manager1"] else record.reversed()

    def get_head_to_head(self, manager: str, opponent: str) -> Optional[CacheEntry[HeadToHeadRecord]]:
        """Cached record of `manager` against `opponent`, in that orientation."""
        first, second = sorted([manager, opponent])
        try:
            rows = self._fetch(
                "SELECT * FROM head_to_head_cache WHERE manager1 = ? AND manager2 = ?",
                (first, second)
            )
        except sqlite3.Error as e:
            logger.error(f"Error fetching cached head-to-head {manager} vs {opponent}: {e}")
            return None

        if not rows:
            return None

        return CacheEntry(
            value=self._record_from_row(rows[0], manager),
            cached_at=oldest_cached_at(rows),
            rows=rows
        )

    def get_head_to_head_batch(
        self,
        pairs: Iterable[Tuple[str, str]]
    ) -> Dict[str, CacheEntry[HeadToHeadRecord]]:
        """
        Fetch cached records for many manager pairs in one query.

        Returns a dict keyed by pair_key(); each record is oriented to the
        first manager of the requested pair.
        """
        wanted = {pair_key(m1, m2): m1 for m1, m2 in pairs}
        if not wanted:
            return {}

        try:
            rows = self._fetch("SELECT * FROM head_to_head_cache", ())
        except sqlite3.Error as e:
            logger.error(f"Error batch fetching cached head-to-head records: {e}")
            return {}

        results = {}
        for row in rows:
            key = pair_key(row["manager1"], row["manager2"])
            if key in wanted:
                results[key] = CacheEntry(
                    value=self._record_from_row(row, wanted[key]),
                    cached_at=oldest_cached_at([row]),
                    rows=[row]
                )
        return results

    def put_head_to_head(self, record: HeadToHeadRecord) -> bool:
        stored = record if record.manager <= record.opponent else record.reversed()
        try:
            self._replace(
                "DELETE FROM head_to_head_cache WHERE manager1 = ? AND manager2 = ?",
                (stored.manager, stored.opponent),
                """
                INSERT INTO head_to_head_cache (
                    manager1, manager2, wins, losses, ties, total_games,
                    points_for, points_against, cached_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [(
                    stored.manager, stored.opponent, stored.wins, stored.losses, stored.ties,
                    stored.total_games, stored.points_for, stored.points_against,
                    self._timestamp()
                )]
            )
        except sqlite3.Error as e:
            logger.error(f"Error caching head-to-head {record.manager} vs {record.opponent}: {e}")
            return False
        return True

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def summary(self) -> Dict[str, Dict[str, Any]]:
        """Row count and oldest/newest cached_at per cache table."""
        results: Dict[str, Dict[str, Any]] = {}
        try:
            with self.connection() as conn:
                for table in CACHE_TABLES:
                    row = conn.execute(
                        f"SELECT COUNT(*), MIN(cached_at), MAX(cached_at) FROM {table}"
                    ).fetchone()
                    results[table] = {"rows": row[0], "oldest": row[1], "newest": row[2]}
        except sqlite3.Error as e:
            logger.error(f"Cache summary failed: {e}")
        return results


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s"
    )

    from league_history.config import get_config

    parser = argparse.ArgumentParser(description="Manage the league cache database")
    parser.add_argument("--db", type=Path, help="Database path (default from config)")
    parser.add_argument("--init", action="store_true", help="Create the cache tables")
    parser.add_argument("--force", action="store_true", help="Recreate the database (destroys data)")
    parser.add_argument("--check", action="store_true", help="Show cached row counts")
    args = parser.parse_args()

    store = CacheStore(args.db or get_config()["db_path"])

    if args.init:
        store.initialize(force=args.force)

    if args.check:
        for table, info in store.summary().items():
            print(f"{table:<22} {info['rows']:>6} rows  oldest={info['oldest']}  newest={info['newest']}")


if __name__ == "__main__":
    main()
