"""
Head-to-head records and rivalry ranking.

Aggregates every matchup between two managers across seasons and ranks manager
pairs by how competitive their series is.

Competitiveness (0 to 1):
    0.4 * min(games / 20, 1)              more meetings, more significant
  + 0.4 * (1 - |win_pct - 0.5| * 2)       closer to .500, more even
  + 0.2 * (1 - min(|PF - PA| / avg, 1))   smaller point gap, closer games

Usage:
    from league_history.league.rivalry import build_head_to_head, top_rivalries

    record = build_head_to_head(matchups_by_season, "Alice", "Bob")
    rivalries = top_rivalries(records, limit=10)
"""

from __future__ import annotations

import logging
from functools import cmp_to_key
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from league_history.models import HeadToHeadRecord, MatchupRecord, Rivalry

logger = logging.getLogger(__name__)

# (raw owner, team name, season) -> display owner
OwnerResolver = Callable[[Optional[str], Optional[str], Optional[int]], str]

GAMES_FOR_FULL_WEIGHT = 20
SCORE_TOLERANCE = 0.01


def _default_resolver(owner: Optional[str], team_name: Optional[str], season: Optional[int]) -> str:
    return owner or team_name or "Unknown"


def _is_unplayed(matchup: MatchupRecord) -> bool:
    """Scheduled but not yet played (both sides still on zero)."""
    return matchup.team1_points == 0 and matchup.team2_points == 0


def _sides(
    matchup: MatchupRecord,
    season: Optional[int],
    resolve: OwnerResolver
) -> Tuple[str, float, str, float]:
    return (
        resolve(matchup.team1_owner, matchup.team1_name, season),
        matchup.team1_points,
        resolve(matchup.team2_owner, matchup.team2_name, season),
        matchup.team2_points,
    )


def _add_game(record: HeadToHeadRecord, own: float, other: float) -> None:
    record.points_for += own
    record.points_against += other
    if own > other:
        record.wins += 1
    elif own < other:
        record.losses += 1
    else:
        record.ties += 1


def build_head_to_head(
    matchups_by_season: Mapping[Optional[int], Iterable[MatchupRecord]],
    manager: str,
    opponent: str,
    resolve: OwnerResolver = _default_resolver
) -> HeadToHeadRecord:
    """All-time record of `manager` against `opponent`."""
    record = HeadToHeadRecord(manager=manager, opponent=opponent)

    for season, matchups in matchups_by_season.items():
        for matchup in matchups:
            if _is_unplayed(matchup):
                continue
            owner1, points1, owner2, points2 = _sides(matchup, season, resolve)
            if owner1 == manager and owner2 == opponent:
                _add_game(record, points1, points2)
            elif owner1 == opponent and owner2 == manager:
                _add_game(record, points2, points1)

    return record


def build_all_head_to_head(
    matchups_by_season: Mapping[Optional[int], Iterable[MatchupRecord]],
    resolve: OwnerResolver = _default_resolver
) -> Dict[Tuple[str, str], HeadToHeadRecord]:
    """
    Records for every pair of managers that met at least once.

    Keys are alphabetically ordered (manager1, manager2) tuples and each record
    is seen from manager1's side.
    """
    records: Dict[Tuple[str, str], HeadToHeadRecord] = {}

    for season, matchups in matchups_by_season.items():
        for matchup in matchups:
            if _is_unplayed(matchup):
                continue
            owner1, points1, owner2, points2 = _sides(matchup, season, resolve)
            if owner1 == owner2:
                continue
            if owner1 > owner2:
                owner1, points1, owner2, points2 = owner2, points2, owner1, points1
            record = records.setdefault(
                (owner1, owner2), HeadToHeadRecord(manager=owner1, opponent=owner2)
            )
            _add_game(record, points1, points2)

    logger.debug(f"Built head-to-head records for {len(records)} manager pairs")
    return records


def competitiveness_score(record: HeadToHeadRecord) -> float:
    total_games = record.total_games
    if total_games == 0:
        return 0.0

    win_pct = record.wins / total_games
    closeness = 1 - abs(win_pct - 0.5) * 2

    point_diff = abs(record.points_for - record.points_against)
    avg_points = (record.points_for + record.points_against) / 2
    normalized_diff = 1 - min(point_diff / avg_points, 1) if avg_points > 0 else 0.0

    game_factor = min(total_games / GAMES_FOR_FULL_WEIGHT, 1)

    return game_factor * 0.4 + closeness * 0.4 + normalized_diff * 0.2


def _compare(a: Rivalry, b: Rivalry) -> int:
    # Near-equal scores fall back to the number of meetings
    if abs(a.competitiveness_score - b.competitiveness_score) > SCORE_TOLERANCE:
        return -1 if a.competitiveness_score > b.competitiveness_score else 1
    return b.record.total_games - a.record.total_games


def top_rivalries(records: Iterable[HeadToHeadRecord], limit: int = 10) -> List[Rivalry]:
    """Most competitive rivalries first; pairs that never met are skipped."""
    rivalries = [
        Rivalry(
            manager1=record.manager,
            manager2=record.opponent,
            record=record,
            competitiveness_score=competitiveness_score(record),
        )
        for record in records
        if record.total_games > 0
    ]
    rivalries.sort(key=cmp_to_key(_compare))
    return rivalries[:limit]
