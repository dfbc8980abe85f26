"""
Season Success Metrics

Composite measures of overall season success beyond the championship, computed
from standings alone:

    PONIES Score (Performance Overall Net Impact Evaluation Score)
        Points per game dominates; championships still earn a bonus.

    POWER Rating (Performance Overall Win Evaluation Rating)
        Weights playoff finish and regular season wins more heavily.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Sequence

import numpy as np
from scipy import stats as scipy_stats

from league_history.models import SeasonSuccessKind, SeasonSuccessScore, StandingRecord

PONIES_FINISH_BONUS = {1: 40.0, 2: 20.0, 3: 10.0, 4: 5.0}
POWER_FINISH_BONUS = {1: 80.0, 2: 40.0, 3: 20.0, 4: 12.0, 5: 8.0, 6: 8.0}


def _win_pct(team: StandingRecord) -> float:
    return team.wins / team.games_played if team.games_played > 0 else 0.0


def _rank_by_score(scores: List[SeasonSuccessScore]) -> List[SeasonSuccessScore]:
    ordered = sorted(scores, key=lambda s: s.score, reverse=True)
    return [replace(s, rank=i) for i, s in enumerate(ordered, 1)]


def calculate_ponies_score(standings: Sequence[StandingRecord]) -> List[SeasonSuccessScore]:
    """
    PONIES Score.

    Breakdown:
        - points per game, min-max normalised to 0-100, times 0.6
        - champion +40 (reported as `championship`)
        - runner-up +20, third +10, fourth +5 (reported as `playoff_finish`)
        - 1.5 per regular season win
        - win percentage times 40 (reported as `consistency`)
    """
    if not standings:
        return []

    ppg = np.array([
        t.points_for / t.games_played if t.games_played > 0 else 0.0
        for t in standings
    ])
    ppg_range = float(ppg.max() - ppg.min())

    scores = []
    for team, team_ppg in zip(standings, ppg):
        normalized = (team_ppg - ppg.min()) / ppg_range * 100 if ppg_range > 0 else 0.0
        points_scored = float(normalized) * 0.6

        championship = PONIES_FINISH_BONUS[1] if team.rank == 1 else 0.0
        playoff_finish = PONIES_FINISH_BONUS.get(team.rank, 0.0) if team.rank != 1 else 0.0
        regular_season = team.wins * 1.5
        win_pct_score = _win_pct(team) * 40

        total = points_scored + championship + playoff_finish + regular_season + win_pct_score

        scores.append(SeasonSuccessScore(
            owner=team.display_owner,
            team_id=team.team_id,
            score=round(total, 1),
            breakdown={
                "championship": championship,
                "playoff_finish": playoff_finish,
                "regular_season": round(regular_season, 1),
                "points_scored": round(points_scored, 1),
                "consistency": round(win_pct_score, 1),
            },
            rank=0,
            final_rank=team.rank,
        ))

    return _rank_by_score(scores)


def calculate_power_rating(standings: Sequence[StandingRecord]) -> List[SeasonSuccessScore]:
    """
    POWER Rating.

    Champion +80, then 40/20/12 for 2nd-4th and 8 for 5th-6th; 3 per win;
    3 points per place above last in points scored; win percentage times 25.
    """
    if not standings:
        return []

    total_teams = len(standings)
    points = np.array([t.points_for for t in standings], dtype=float)
    points_ranks = scipy_stats.rankdata(-points, method="ordinal").astype(int)

    scores = []
    for team, points_rank in zip(standings, points_ranks):
        championship = POWER_FINISH_BONUS[1] if team.rank == 1 else 0.0
        playoff_finish = POWER_FINISH_BONUS.get(team.rank, 0.0) if team.rank != 1 else 0.0
        regular_season = float(team.wins * 3)
        points_scored = float(max(0, (total_teams - int(points_rank) + 1) * 3))
        consistency = _win_pct(team) * 25

        total = championship + playoff_finish + regular_season + points_scored + consistency

        scores.append(SeasonSuccessScore(
            owner=team.display_owner,
            team_id=team.team_id,
            score=round(total, 1),
            breakdown={
                "championship": championship,
                "playoff_finish": playoff_finish,
                "regular_season": regular_season,
                "points_scored": round(points_scored, 1),
                "consistency": round(consistency, 1),
            },
            rank=0,
            final_rank=team.rank,
        ))

    return _rank_by_score(scores)


def metric_info(kind: SeasonSuccessKind = "ponies") -> Dict[str, str]:
    if kind == "ponies":
        return {
            "name": "PONIES Score",
            "full_name": "Performance Overall Net Impact Evaluation Score",
            "description": (
                "A composite metric that heavily weights points scored while still "
                "rewarding championships. Points per game is the dominant factor."
            ),
            "max_score": "~200+ points",
        }
    return {
        "name": "POWER Rating",
        "full_name": "Performance Overall Win Evaluation Rating",
        "description": "A balanced metric that emphasizes both playoff success and regular season performance.",
        "max_score": "~200+ points",
    }
