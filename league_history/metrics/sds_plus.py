"""
SDS+ (Season Dominance Score Plus)

A luck-adjusted dominance metric for comparing individual seasons across
different years. Scoring strength, consistency and all-play dominance count
for more than playoff variance, while postseason results still earn limited
credit.

Components (per team, per season):
    - PFI_era: points index blended with points percentile (era adjustment)
    - APW: all-play win percentage (every team, every week)
    - RSS: regular season score from the wins/points ranking
    - WCR: weekly ceiling rate (best week vs league average week)
    - SoS: strength of schedule from the opponents' APW
    - CI: consistency index from weekly standard deviation
    - PSB_adj: postseason bonus adjusted by playoff luck

    base  = (0.30*PFI_era + 0.25*APW + 0.15*RSS + 0.10*WCR) * SoS + 0.20*PSB_adj
    SDS+  = 100 * base * (1 + 0.05*CI) * champion_multiplier

Without weekly scores the engine runs in estimation mode: APW and the weekly
high are estimated from the standings, and CI is 0.

Usage:
    from league_history.metrics.sds_plus import compute_composite_scores

    scores = compute_composite_scores(standings, weekly_scores, regular_season_weeks=14)
    for s in scores:
        print(s.rank, s.owner, s.score, s.interpretation.value)
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats as scipy_stats

from league_history.models import (
    CompositeScore,
    Interpretation,
    ScoreBreakdown,
    StandingRecord,
    WeeklyScoreRecord,
)

logger = logging.getLogger(__name__)

DEFAULT_REGULAR_SEASON_WEEKS = 14

SDS_PLUS_CONFIG: Dict[str, Any] = {
    # -------------------------------------------------------------------------
    # COMPONENT WEIGHTS
    # -------------------------------------------------------------------------
    "weight_pf_index": 0.30,
    "weight_all_play": 0.25,
    "weight_regular_season": 0.15,
    "weight_ceiling": 0.10,
    "weight_postseason": 0.20,

    # Share of PFI_era taken from the raw points ratio (rest is the percentile)
    "pf_ratio_blend": 0.5,

    # -------------------------------------------------------------------------
    # ESTIMATION MODE (no weekly scores)
    # -------------------------------------------------------------------------
    # APW is usually a bit above win% for good teams
    "apw_estimate_factor": 1.1,
    "apw_estimate_cap": 0.95,
    # Best week estimated as this multiple of points per game
    "ceiling_estimate_factor": 1.5,

    # -------------------------------------------------------------------------
    # POSTSEASON
    # -------------------------------------------------------------------------
    "postseason_bonus": {1: 1.00, 2: 0.70, 3: 0.45},
    "actual_playoff_wins": {1: 2, 2: 1, 3: 1},
    "luck_weight": 0.05,
    "champion_multiplier": 1.15,

    "consistency_weight": 0.05,
}

# Evaluated top-down, first match wins
INTERPRETATION_TIERS: List[Tuple[float, Interpretation]] = [
    (95.0, Interpretation.ERA_DEFINING),
    (85.0, Interpretation.DOMINANT),
    (75.0, Interpretation.ELITE),
    (65.0, Interpretation.SOLID),
]

WEEKLY_COLUMNS = ["team_id", "week", "points", "opponent_team_id"]


# =========================================================================
# INTERNAL: WEEKLY DATA PREPARATION
# =========================================================================

def _weekly_frame(weekly_scores: Sequence[WeeklyScoreRecord]) -> pd.DataFrame:
    """Weekly scores as a DataFrame, one row per (team, week); last record wins."""
    frame = pd.DataFrame(
        [
            {
                "team_id": ws.team_id,
                "week": int(ws.week),
                "points": float(ws.points),
                "opponent_team_id": ws.opponent_team_id,
            }
            for ws in weekly_scores
        ],
        columns=WEEKLY_COLUMNS,
    )
    return frame.drop_duplicates(subset=["team_id", "week"], keep="last").reset_index(drop=True)


def _all_play_win_pcts(frame: pd.DataFrame, team_ids: List[str]) -> Dict[str, float]:
    """
    All-play win percentage for every team.

    For each week a team played, its score is compared against every other
    team's score that week (a team with no score that week counts as 0).
    Ties count as matchups but not wins.
    """
    by_week = (
        frame.pivot(index="week", columns="team_id", values="points")
        .reindex(columns=team_ids)
        .fillna(0.0)
    )

    apw = {}
    for team_id in team_ids:
        played = frame.loc[frame["team_id"] == team_id, "week"].to_numpy()
        if len(played) == 0:
            apw[team_id] = 0.5
            continue

        weeks = by_week.loc[played]
        others = weeks.drop(columns=[team_id])
        matchups = others.size
        if matchups == 0:
            apw[team_id] = 0.5
            continue

        wins = int(others.lt(weeks[team_id], axis=0).to_numpy().sum())
        apw[team_id] = wins / matchups

    return apw


def _estimated_all_play(team: StandingRecord, cfg: Dict[str, Any]) -> float:
    """APW proxy from season win percentage."""
    if team.games_played == 0:
        return 0.5
    win_pct = team.wins / team.games_played
    return min(cfg["apw_estimate_cap"], win_pct * cfg["apw_estimate_factor"])


def _weekly_std_devs(frame: pd.DataFrame, team_ids: List[str]) -> Tuple[Dict[str, float], float]:
    """Population std dev of weekly scores per team, and the league average of those."""
    per_team = frame.groupby("team_id")["points"].std(ddof=0).reindex(team_ids)
    positive = per_team[per_team > 0]
    league_avg = float(positive.mean()) if len(positive) > 0 else 0.0
    team_std = {team_id: float(std) for team_id, std in per_team.items() if pd.notna(std)}
    return team_std, league_avg


def _distinct_opponents(frame: pd.DataFrame) -> Dict[str, List[str]]:
    """Distinct opponents each team actually faced, in first-seen order."""
    linked = frame.dropna(subset=["opponent_team_id"])
    opponents: Dict[str, List[str]] = {}
    for team_id, group in linked.groupby("team_id", sort=False):
        opponents[team_id] = list(dict.fromkeys(group["opponent_team_id"]))
    return opponents


# =========================================================================
# INTERNAL: RANKINGS
# =========================================================================

def _points_ranks(standings: Sequence[StandingRecord]) -> np.ndarray:
    """1 = most points; ties broken by input order."""
    points = np.array([t.points_for for t in standings], dtype=float)
    return scipy_stats.rankdata(-points, method="ordinal").astype(int)


def _regular_season_ranks(standings: Sequence[StandingRecord]) -> np.ndarray:
    """Regular season ranking by wins, then points; ties broken by input order."""
    wins = np.array([t.wins for t in standings], dtype=float)
    points = np.array([t.points_for for t in standings], dtype=float)
    # lexsort is stable and sorts by the last key first
    order = np.lexsort((-points, -wins))
    ranks = np.empty(len(standings), dtype=int)
    ranks[order] = np.arange(1, len(standings) + 1)
    return ranks


def _rank_score(rank: int, n: int) -> float:
    """1.0 for first place down to 0.0 for last; 1.0 in a one-team league."""
    if n < 2:
        return 1.0
    return 1 - (rank - 1) / (n - 1)


# =========================================================================
# INTERNAL: POSTSEASON
# =========================================================================

def expected_playoff_wins(regular_season_rank: int, all_play_win_pct: float) -> float:
    """Playoff wins a team "should" have earned from its regular season."""
    if regular_season_rank <= 2:
        return 1.5 + all_play_win_pct * 0.5
    elif regular_season_rank <= 4:
        return 1.0 + all_play_win_pct * 0.5
    return 0.5 + all_play_win_pct * 0.5


def interpret(score: float) -> Interpretation:
    for threshold, tier in INTERPRETATION_TIERS:
        if score >= threshold:
            return tier
    return Interpretation.AVERAGE


# =========================================================================
# PUBLIC: MAIN INTERFACE
# =========================================================================

def compute_composite_scores(
    standings: Sequence[StandingRecord],
    weekly_scores: Sequence[WeeklyScoreRecord] = (),
    regular_season_weeks: int = DEFAULT_REGULAR_SEASON_WEEKS,
    config: Optional[Dict[str, Any]] = None,
) -> List[CompositeScore]:
    """
    Calculate SDS+ for every team in one season.

    Args:
        standings: One StandingRecord per team; ranks are a permutation of 1..N
        weekly_scores: Regular season weekly scores, may be empty
        regular_season_weeks: Used to estimate a league-average week without weekly data
        config: Optional override of SDS_PLUS_CONFIG

    Returns:
        CompositeScore list sorted by score descending, ranked 1..N.
        Empty standings produce an empty list.
    """
    if not standings:
        logger.debug("No standings supplied, returning no SDS+ scores")
        return []

    cfg = {**SDS_PLUS_CONFIG, **(config or {})}
    teams = list(standings)
    n = len(teams)
    team_ids = [t.team_id for t in teams]

    frame = _weekly_frame(weekly_scores)
    has_weekly = not frame.empty

    league_avg_points = float(np.mean([t.points_for for t in teams]))
    points_ranks = _points_ranks(teams)
    regular_ranks = _regular_season_ranks(teams)

    if has_weekly:
        all_play = _all_play_win_pcts(frame, team_ids)
        team_std, league_avg_std = _weekly_std_devs(frame, team_ids)
        weekly_highs = frame.groupby("team_id")["points"].max().to_dict()
        league_avg_weekly = float(frame["points"].mean())
        opponents = _distinct_opponents(frame)
    else:
        all_play = {t.team_id: _estimated_all_play(t, cfg) for t in teams}
        team_std, league_avg_std = {}, 0.0
        weekly_highs = {}
        league_avg_weekly = (
            league_avg_points / regular_season_weeks if regular_season_weeks > 0 else 0.0
        )
        opponents = {}

    league_avg_apw = float(np.mean(list(all_play.values()))) if all_play else 0.5

    scores = []
    for idx, team in enumerate(teams):
        final_rank = team.rank
        games_played = team.games_played
        regular_season_rank = int(regular_ranks[idx])

        # Points Index, era adjusted
        pfi = team.points_for / league_avg_points if league_avg_points > 0 else 1.0
        pf_pct = _rank_score(int(points_ranks[idx]), n)
        blend = cfg["pf_ratio_blend"]
        pfi_era = blend * pfi + (1 - blend) * pf_pct

        rss = _rank_score(regular_season_rank, n)
        apw = all_play.get(team.team_id, 0.5)

        # Weekly Ceiling Rate
        if team.team_id in weekly_highs:
            weekly_high = float(weekly_highs[team.team_id])
        elif games_played > 0:
            weekly_high = (team.points_for / games_played) * cfg["ceiling_estimate_factor"]
        else:
            weekly_high = None
        if weekly_high is not None and league_avg_weekly > 0:
            wcr = weekly_high / league_avg_weekly
        else:
            wcr = 1.0

        # Strength of Schedule
        opponent_apws = [all_play[o] for o in opponents.get(team.team_id, []) if o in all_play]
        if opponent_apws:
            apw_opp = float(np.mean(opponent_apws))
            sos_estimated = False
        else:
            apw_opp = league_avg_apw
            sos_estimated = True
        sos = 1 + (apw_opp - 0.50)

        # Consistency Index
        ci = 0.0
        std = team_std.get(team.team_id)
        if has_weekly and league_avg_std > 0 and std is not None and std > 0:
            ci = max(-1.0, min(1.0, 1 - std / league_avg_std))

        # Postseason bonus and luck
        psb = cfg["postseason_bonus"].get(final_rank, 0.0)
        luck_diff = (
            expected_playoff_wins(regular_season_rank, apw)
            - cfg["actual_playoff_wins"].get(final_rank, 0)
        )
        psb_adj = psb + cfg["luck_weight"] * luck_diff

        base = (
            cfg["weight_pf_index"] * pfi_era
            + cfg["weight_all_play"] * apw
            + cfg["weight_regular_season"] * rss
            + cfg["weight_ceiling"] * wcr
        ) * sos + cfg["weight_postseason"] * psb_adj

        champion_multiplier = cfg["champion_multiplier"] if final_rank == 1 else 1.0
        sds_plus = 100 * base * (1 + cfg["consistency_weight"] * ci) * champion_multiplier

        scores.append(CompositeScore(
            owner=team.display_owner,
            team_id=team.team_id,
            score=round(sds_plus, 1),
            breakdown=ScoreBreakdown(
                pf_index_era=round(pfi_era, 2),
                all_play_win_pct=round(apw, 3),
                regular_season_score=round(rss, 2),
                weekly_ceiling_rate=round(wcr, 2),
                strength_of_schedule=round(sos, 2),
                consistency_index=round(ci, 2),
                postseason_bonus=round(psb_adj, 2),
                playoff_luck_diff=round(luck_diff, 2),
                sos_estimated=sos_estimated,
            ),
            rank=0,
            final_rank=final_rank,
            interpretation=interpret(sds_plus),
        ))

    # sorted() is stable, so equal scores keep input order
    ordered = sorted(scores, key=lambda s: s.score, reverse=True)
    return [replace(s, rank=i) for i, s in enumerate(ordered, 1)]


def sds_plus_info() -> Dict[str, str]:
    """Display metadata for the metric."""
    return {
        "name": "SDS+",
        "full_name": "Season Dominance Score Plus",
        "description": (
            "A luck-adjusted dominance metric that prioritizes true performance "
            "(scoring strength, consistency, all-play dominance) over playoff variance, "
            "while still granting limited credit for postseason results."
        ),
        "max_score": "100+ (95+ = all-time season)",
    }
