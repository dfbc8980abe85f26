#!/usr/bin/env python3
"""
Season Metrics Service

Read-through cache in front of the scoring engines. For every request the
service:

1. Reads the cached set from the store
2. Checks it with the freshness policy (past seasons and closed weeks never
   expire; live data expires after the TTL; rows with a missing owner name
   invalidate the whole set)
3. On a miss fetches from the season data source, standardizes owner names,
   computes, writes back and returns

Failures of the data source for one season are logged and surface as an empty
result. Failures of the cache never change what is returned.

Usage:
    # SDS+ for one season
    python -m league_history.pipeline.season_metrics --league-key 449.l.12345

    # All configured seasons, as JSON, ignoring the cache
    python -m league_history.pipeline.season_metrics --all --json --refresh

    # Offline, from data/<league_key>.json files
    python -m league_history.pipeline.season_metrics --all --source json
"""

from __future__ import annotations

import argparse
import json
import logging
import sqlite3
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from league_history.cache.freshness import CachePolicy, has_missing_fields, is_fresh
from league_history.config import DEFAULT_DATA_DIR, SeasonCalendar, get_config, get_season_calendar, load_config
from league_history.db.cache_store import CacheStore
from league_history.errors import SourceError
from league_history.identity.owner_names import OwnerNameResolver
from league_history.league.rivalry import build_all_head_to_head, build_head_to_head, top_rivalries
from league_history.league.sleeper import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, SleeperClient
from league_history.league.sources import JsonSeasonSource, SeasonDataSource
from league_history.metrics.sds_plus import DEFAULT_REGULAR_SEASON_WEEKS, compute_composite_scores
from league_history.metrics.season_success import calculate_ponies_score, calculate_power_rating
from league_history.models import (
    CompositeScore,
    HeadToHeadRecord,
    MatchupRecord,
    Rivalry,
    SeasonSuccessKind,
    SeasonSuccessScore,
    StandingRecord,
    WeeklyScoreRecord,
)

logger = logging.getLogger(__name__)

# All-time head-to-head records change whenever any week finishes
HEAD_TO_HEAD_TTL = timedelta(days=7)

REQUIRED_STANDINGS_FIELDS = ("owner_name",)


class SeasonMetricsService:
    """Cached access to standings, matchups and derived season metrics."""

    def __init__(
        self,
        store: CacheStore,
        source: SeasonDataSource,
        policy: CachePolicy,
        calendar: SeasonCalendar,
        owner_resolver: Optional[OwnerNameResolver] = None,
        default_regular_season_weeks: int = DEFAULT_REGULAR_SEASON_WEEKS
    ):
        self.store = store
        self.source = source
        self.policy = policy
        self.calendar = calendar
        self.owner_resolver = owner_resolver or OwnerNameResolver()
        self.default_regular_season_weeks = default_regular_season_weeks

    @classmethod
    def from_config(
        cls,
        config: Optional[Dict[str, Any]] = None,
        source_name: str = "sleeper",
        data_dir: Path = DEFAULT_DATA_DIR
    ) -> "SeasonMetricsService":
        """Wire a service from the league configuration."""
        config = config if config is not None else get_config()
        calendar = get_season_calendar(config)

        store = CacheStore(config["db_path"])
        try:
            store.initialize()
        except (sqlite3.Error, OSError) as e:
            # The service still works without a cache, only slower
            logger.error(f"Cache database unavailable at {config['db_path']}: {e}")

        if source_name == "json":
            source: SeasonDataSource = JsonSeasonSource(data_dir)
        else:
            sleeper = config.get("sleeper", {})
            source = SleeperClient(
                base_url=sleeper.get("base_url", DEFAULT_BASE_URL),
                timeout=sleeper.get("timeout", DEFAULT_TIMEOUT),
            )

        policy = CachePolicy(
            current_season=calendar.current_season(),
            ttl=timedelta(hours=float(config["cache"]["ttl_hours"])),
        )
        return cls(
            store=store,
            source=source,
            policy=policy,
            calendar=calendar,
            owner_resolver=OwnerNameResolver.from_config(config),
            default_regular_season_weeks=int(config["scoring"]["regular_season_weeks"]),
        )

    def season_for(self, league_key: str) -> Optional[int]:
        return self.calendar.year_for_league_key(league_key)

    # -------------------------------------------------------------------------
    # Standings
    # -------------------------------------------------------------------------

    def _resolve_standings(self, standings: Iterable[StandingRecord], season: Optional[int]) -> List[StandingRecord]:
        return [
            replace(team, owner=self.owner_resolver.resolve(team.owner, team.team_name, season))
            for team in standings
        ]

    def get_standings(self, league_key: str, refresh: bool = False) -> List[StandingRecord]:
        season = self.season_for(league_key)

        if not refresh:
            entry = self.store.get_standings(league_key)
            if entry is not None:
                if has_missing_fields(entry.rows, REQUIRED_STANDINGS_FIELDS):
                    logger.info(f"Cached standings for {league_key} lack owner names, refetching")
                elif self.policy.entry_is_fresh(entry.cached_at, season):
                    logger.debug(f"Using cached standings for {league_key}")
                    return entry.value
                else:
                    logger.info(f"Cached standings for {league_key} expired")

        try:
            fetched = self.source.fetch_standings(league_key)
        except SourceError as e:
            logger.error(f"Could not fetch standings for {league_key}: {e}")
            return []

        standings = self._resolve_standings(fetched, season)
        if standings:
            self.store.put_standings(league_key, season, standings)
        return standings

    def get_season_success(self, league_key: str, kind: SeasonSuccessKind = "ponies") -> List[SeasonSuccessScore]:
        """PONIES score or POWER rating for a season."""
        standings = self.get_standings(league_key)
        if kind == "power":
            return calculate_power_rating(standings)
        return calculate_ponies_score(standings)

    # -------------------------------------------------------------------------
    # Matchups
    # -------------------------------------------------------------------------

    def _resolve_matchup(self, matchup: MatchupRecord, season: Optional[int]) -> MatchupRecord:
        return replace(
            matchup,
            team1_owner=self.owner_resolver.resolve(matchup.team1_owner, matchup.team1_name, season),
            team2_owner=self.owner_resolver.resolve(matchup.team2_owner, matchup.team2_name, season),
        )

    def _fetch_matchups(self, league_key: str, week: int, refresh: bool = False) -> List[MatchupRecord]:
        """Cached or freshly fetched matchups for a week; raises SourceError."""
        season = self.season_for(league_key)

        if not refresh:
            entry = self.store.get_matchups(league_key, week)
            if entry is not None:
                closed = self.policy.week_is_closed(season, [row.get("status") for row in entry.rows])
                if self.policy.entry_is_fresh(entry.cached_at, season, is_closed_period=closed):
                    return entry.value
                logger.info(f"Cached matchups for {league_key} week {week} expired")

        fetched = self.source.fetch_matchups(league_key, week)
        matchups = [self._resolve_matchup(m, season) for m in fetched]
        if matchups:
            self.store.put_matchups(league_key, season, week, matchups)
        return matchups

    def get_matchups(self, league_key: str, week: int, refresh: bool = False) -> List[MatchupRecord]:
        try:
            return self._fetch_matchups(league_key, week, refresh=refresh)
        except SourceError as e:
            logger.error(f"Could not fetch matchups for {league_key} week {week}: {e}")
            return []

    def _regular_season_weeks(self, league_key: str) -> Tuple[int, bool]:
        """(weeks, known); falls back to the configured default when the source fails."""
        try:
            return self.source.regular_season_weeks(league_key), True
        except SourceError as e:
            logger.warning(
                f"Regular season length unknown for {league_key}, "
                f"assuming {self.default_regular_season_weeks} weeks: {e}"
            )
            return self.default_regular_season_weeks, False

    def regular_season_weeks(self, league_key: str) -> int:
        return self._regular_season_weeks(league_key)[0]

    def _collect_matchups(
        self,
        league_key: str,
        weeks: int,
        refresh: bool = False
    ) -> Tuple[List[MatchupRecord], List[int]]:
        """Matchups for weeks 1..weeks, plus the weeks the source failed on."""
        matchups: List[MatchupRecord] = []
        failed: List[int] = []
        for week in range(1, weeks + 1):
            try:
                matchups.extend(self._fetch_matchups(league_key, week, refresh=refresh))
            except SourceError as e:
                logger.error(f"Could not fetch matchups for {league_key} week {week}: {e}")
                failed.append(week)
        return matchups, failed

    def season_matchups(self, league_key: str, refresh: bool = False) -> List[MatchupRecord]:
        """All regular-season matchups of a season."""
        matchups, _ = self._collect_matchups(league_key, self.regular_season_weeks(league_key), refresh=refresh)
        return matchups

    # -------------------------------------------------------------------------
    # SDS+
    # -------------------------------------------------------------------------

    def get_sds_plus(self, league_key: str, refresh: bool = False) -> List[CompositeScore]:
        """
        SDS+ for a season, from cache when fresh.

        A result computed while the source failed for some weeks (or for the
        season length) is returned but not cached, so the next call retries.
        """
        season = self.season_for(league_key)

        if not refresh:
            entry = self.store.get_sds_plus(league_key)
            if entry is not None and self.policy.entry_is_fresh(entry.cached_at, season):
                logger.debug(f"Using cached SDS+ for {league_key}")
                return entry.value

        standings = self.get_standings(league_key, refresh=refresh)
        if not standings:
            logger.info(f"No standings for {league_key}, nothing to score")
            return []

        weeks, weeks_known = self._regular_season_weeks(league_key)
        matchups, failed_weeks = self._collect_matchups(league_key, weeks, refresh=refresh)

        weekly_scores: List[WeeklyScoreRecord] = []
        for matchup in matchups:
            if matchup.team1_points == 0 and matchup.team2_points == 0:
                continue
            weekly_scores.extend(matchup.to_weekly_scores())

        scores = compute_composite_scores(standings, weekly_scores, regular_season_weeks=weeks)
        if failed_weeks or not weeks_known:
            logger.warning(
                f"SDS+ for {league_key} computed from incomplete data "
                f"(failed weeks: {failed_weeks or 'none'}), not caching"
            )
        else:
            self.store.put_sds_plus(league_key, season, scores)
        logger.info(f"Computed SDS+ for {league_key} ({len(scores)} teams, {len(weekly_scores)} weekly scores)")
        return scores

    def get_sds_plus_many(
        self,
        league_keys: Sequence[str],
        max_workers: int = 4,
        refresh: bool = False
    ) -> Dict[str, List[CompositeScore]]:
        """
        SDS+ for several seasons concurrently.

        A season that fails is logged and left out; the others are returned
        keyed by league key, in the order requested.
        """
        results: Dict[str, List[CompositeScore]] = {}

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(self.get_sds_plus, league_key, refresh): league_key
                for league_key in league_keys
            }
            for future in as_completed(futures):
                league_key = futures[future]
                try:
                    results[league_key] = future.result()
                except Exception as e:
                    logger.error(f"SDS+ for {league_key} failed: {e}")

        return {key: results[key] for key in league_keys if key in results}

    # -------------------------------------------------------------------------
    # Head-to-head
    # -------------------------------------------------------------------------

    def matchups_by_season(self, league_keys: Iterable[str]) -> Dict[Optional[int], List[MatchupRecord]]:
        by_season: Dict[Optional[int], List[MatchupRecord]] = {}
        for league_key in league_keys:
            by_season.setdefault(self.season_for(league_key), []).extend(self.season_matchups(league_key))
        return by_season

    def _head_to_head_is_fresh(self, cached_at) -> bool:
        if cached_at is None:
            return False
        return is_fresh(cached_at, True, now=self.policy.clock(), ttl=HEAD_TO_HEAD_TTL)

    def head_to_head(
        self,
        manager: str,
        opponent: str,
        league_keys: Iterable[str],
        refresh: bool = False
    ) -> HeadToHeadRecord:
        if not refresh:
            entry = self.store.get_head_to_head(manager, opponent)
            if entry is not None and self._head_to_head_is_fresh(entry.cached_at):
                return entry.value

        # Owner names in matchups are already standardized
        record = build_head_to_head(self.matchups_by_season(league_keys), manager, opponent)
        self.store.put_head_to_head(record)
        return record

    def top_rivalries(self, league_keys: Iterable[str], limit: int = 10) -> List[Rivalry]:
        """Most competitive rivalries across seasons; refreshes the head-to-head cache."""
        records = build_all_head_to_head(self.matchups_by_season(league_keys))
        for record in records.values():
            self.store.put_head_to_head(record)
        return top_rivalries(records.values(), limit=limit)

    def cached_top_rivalries(self, managers: Sequence[str], limit: int = 10) -> List[Rivalry]:
        """Rivalries among `managers` using only fresh cached head-to-head records."""
        pairs: List[Tuple[str, str]] = [
            (managers[i], managers[j])
            for i in range(len(managers))
            for j in range(i + 1, len(managers))
        ]
        cached = self.store.get_head_to_head_batch(pairs)
        records = [
            entry.value for entry in cached.values()
            if self._head_to_head_is_fresh(entry.cached_at)
        ]
        return top_rivalries(records, limit=limit)


# =============================================================================
# CLI
# =============================================================================

def _print_table(league_key: str, scores: List[CompositeScore]) -> None:
    print(f"\n{league_key}")
    print("=" * 72)
    if not scores:
        print("  (no data)")
        return
    print(f"  {'#':>2}  {'Owner':<24} {'SDS+':>6}  {'Final':>5}  Interpretation")
    for s in scores:
        print(f"  {s.rank:>2}  {s.owner:<24} {s.score:>6.1f}  {s.final_rank:>5}  {s.interpretation.value}")


def main() -> int:
    """Main CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s"
    )

    parser = argparse.ArgumentParser(
        description="Compute SDS+ season dominance scores",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--league-key",
        action="append",
        default=[],
        help="League key to score (repeatable)"
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Score every league key in the config"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON"
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Ignore cached data and refetch"
    )
    parser.add_argument(
        "--source",
        choices=["sleeper", "json"],
        default="sleeper",
        help="Season data source (default: sleeper)"
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=DEFAULT_DATA_DIR,
        help=f"Season files for --source json (default: {DEFAULT_DATA_DIR})"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file path (default: league.config.yaml)"
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create the cache tables and exit"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=4,
        help="Max parallel seasons (default: 4)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = load_config(args.config) if args.config else get_config()

    if args.init_db:
        CacheStore(config["db_path"]).initialize()
        return 0

    league_keys = list(args.league_key)
    if args.all:
        league_keys.extend(k for k in config.get("league_keys", []) if k not in league_keys)
    if not league_keys:
        parser.error("give --league-key or --all")

    service = SeasonMetricsService.from_config(config, source_name=args.source, data_dir=args.data_dir)
    results = service.get_sds_plus_many(league_keys, max_workers=args.workers, refresh=args.refresh)

    if args.json:
        print(json.dumps(
            {key: [s.to_dict() for s in scores] for key, scores in results.items()},
            indent=2
        ))
    else:
        for league_key, scores in results.items():
            _print_table(league_key, scores)

    return 0 if results else 1


if __name__ == "__main__":
    sys.exit(main())
