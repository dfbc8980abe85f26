"""
Tests for the SDS+ scoring engine.
"""

import math
from dataclasses import replace

import pytest

from league_history.metrics.sds_plus import (
    compute_composite_scores,
    expected_playoff_wins,
    interpret,
    sds_plus_info,
)
from league_history.models import Interpretation, WeeklyScoreRecord

from tests.conftest import make_team


def _by_team(scores):
    return {s.team_id: s for s in scores}


def _weekly(matchups):
    return [ws for m in matchups for ws in m.to_weekly_scores()]


class TestOutputShape:
    """Ranking and ordering of the result."""

    def test_empty_standings_returns_empty_list(self):
        assert compute_composite_scores([]) == []

    def test_rank_is_a_total_order(self, ten_team_standings):
        scores = compute_composite_scores(ten_team_standings)
        assert sorted(s.rank for s in scores) == list(range(1, 11))
        assert [s.rank for s in scores] == list(range(1, 11))
        assert all(a.score >= b.score for a, b in zip(scores, scores[1:]))

    def test_deterministic(self, four_team_standings, four_team_matchups):
        weekly = _weekly(four_team_matchups)
        first = compute_composite_scores(four_team_standings, weekly)
        second = compute_composite_scores(four_team_standings, weekly)
        assert first == second

    def test_equal_scores_keep_input_order(self):
        """Two identical teams tie on score and stay in the order given."""
        standings = [
            make_team("top", 1, wins=12, losses=2, points_for=1900.0),
            make_team("late", 4),
            make_team("early", 3),
        ]
        # Only the components that are equal for identical teams remain
        config = {
            "weight_pf_index": 0.0,
            "weight_regular_season": 0.0,
            "weight_postseason": 0.0,
            "champion_multiplier": 1.0,
        }

        scores = compute_composite_scores(standings, config=config)

        assert scores[1].score == scores[2].score
        assert [s.team_id for s in scores] == ["top", "late", "early"]
        assert [s.rank for s in scores] == [1, 2, 3]

    def test_owner_falls_back_to_team_name(self):
        standings = [replace(make_team("a", 1), owner=None)]
        scores = compute_composite_scores(standings)
        assert scores[0].owner == "Team a"


class TestEstimationMode:
    """No weekly scores available."""

    def test_consistency_index_is_zero(self, ten_team_standings):
        scores = compute_composite_scores(ten_team_standings, [])
        assert all(s.breakdown.consistency_index == 0 for s in scores)

    def test_schedule_strength_is_flagged_as_estimated(self, ten_team_standings):
        scores = compute_composite_scores(ten_team_standings, [])
        assert all(s.breakdown.sos_estimated for s in scores)

    def test_ten_team_champion_scenario(self, ten_team_standings):
        """Champion at 11-3 with 1800 points against a 1500 league average."""
        champion = _by_team(compute_composite_scores(ten_team_standings))["x"]

        assert champion.breakdown.all_play_win_pct == pytest.approx(0.864, abs=1e-3)
        # PFI = 1800 / 1500 = 1.2, blended 50/50 with the top points percentile (1.0)
        assert champion.breakdown.pf_index_era == pytest.approx(1.1)
        assert champion.final_rank == 1
        assert champion.rank == 1

    def test_champion_beats_identical_runner_up(self, ten_team_standings):
        as_champion = _by_team(compute_composite_scores(ten_team_standings))["x"]

        swapped = [
            replace(t, rank=2) if t.team_id == "x" else replace(t, rank=1) if t.team_id == "b" else t
            for t in ten_team_standings
        ]
        as_runner_up = _by_team(compute_composite_scores(swapped))["x"]

        assert as_champion.score > as_runner_up.score
        # The multiplier alone lifts the champion by 15%
        assert as_champion.score >= as_runner_up.score * 1.15 - 0.1

    def test_apw_capped(self):
        standings = [
            make_team("a", 1, wins=14, losses=0, points_for=2000.0),
            make_team("b", 2, wins=0, losses=14, points_for=1000.0),
        ]
        scores = _by_team(compute_composite_scores(standings))
        assert scores["a"].breakdown.all_play_win_pct == pytest.approx(0.95)
        assert scores["b"].breakdown.all_play_win_pct == 0

    def test_zero_games_played_is_neutral(self):
        standings = [
            make_team("a", 1, wins=0, losses=0, points_for=0.0),
            make_team("b", 2, wins=0, losses=0, points_for=0.0),
        ]
        for score in compute_composite_scores(standings):
            assert score.breakdown.all_play_win_pct == 0.5
            assert score.breakdown.weekly_ceiling_rate == 1.0
            assert math.isfinite(score.score)

    def test_single_team_season(self):
        scores = compute_composite_scores([make_team("solo", 1, wins=10, losses=4, points_for=1500.0)])
        assert len(scores) == 1
        breakdown = scores[0].breakdown
        assert breakdown.regular_season_score == 1.0
        # PFI 1.0 blended with percentile 1.0
        assert breakdown.pf_index_era == 1.0
        for value in breakdown.to_dict().values():
            assert math.isfinite(float(value))
        assert math.isfinite(scores[0].score)


class TestWeeklyMode:
    """Weekly scores available."""

    def test_all_play_win_pct(self, four_team_standings, four_team_matchups):
        scores = _by_team(compute_composite_scores(four_team_standings, _weekly(four_team_matchups)))
        assert scores["a"].breakdown.all_play_win_pct == 1.0
        assert scores["b"].breakdown.all_play_win_pct == pytest.approx(0.667)
        assert scores["c"].breakdown.all_play_win_pct == pytest.approx(0.333)
        assert scores["d"].breakdown.all_play_win_pct == 0.0

    def test_strength_of_schedule_from_opponents(self, four_team_standings, four_team_matchups):
        scores = _by_team(compute_composite_scores(four_team_standings, _weekly(four_team_matchups)))
        # a faced b, c, d: mean APW 1/3
        assert scores["a"].breakdown.strength_of_schedule == pytest.approx(0.83)
        assert scores["a"].breakdown.sos_estimated is False
        # d faced a, b, c: mean APW 2/3
        assert scores["d"].breakdown.strength_of_schedule == pytest.approx(1.17)

    def test_weekly_ceiling_rate(self, four_team_standings, four_team_matchups):
        scores = _by_team(compute_composite_scores(four_team_standings, _weekly(four_team_matchups)))
        # Best week 100 against a league-average week of 85
        assert scores["a"].breakdown.weekly_ceiling_rate == pytest.approx(1.18)

    def test_constant_scores_have_zero_consistency(self, four_team_standings, four_team_matchups):
        scores = compute_composite_scores(four_team_standings, _weekly(four_team_matchups))
        assert all(s.breakdown.consistency_index == 0 for s in scores)

    def test_zero_std_dev_scores_zero_consistency(self):
        standings = [
            make_team("steady", 1, wins=2, losses=0, points_for=200.0),
            make_team("swingy", 2, wins=0, losses=2, points_for=200.0),
        ]
        weekly = [
            WeeklyScoreRecord("steady", 1, 100.0, "swingy"),
            WeeklyScoreRecord("steady", 2, 100.0, "swingy"),
            WeeklyScoreRecord("swingy", 1, 60.0, "steady"),
            WeeklyScoreRecord("swingy", 2, 140.0, "steady"),
        ]
        scores = _by_team(compute_composite_scores(standings, weekly))
        # A zero std dev is excluded from the league average and scores 0
        assert scores["steady"].breakdown.consistency_index == 0
        assert scores["swingy"].breakdown.consistency_index == 0

    def test_consistency_is_relative_to_league(self):
        standings = [
            make_team("a", 1, wins=2, losses=0, points_for=200.0),
            make_team("b", 2, wins=0, losses=2, points_for=200.0),
        ]
        weekly = [
            WeeklyScoreRecord("a", 1, 95.0, "b"),
            WeeklyScoreRecord("a", 2, 105.0, "b"),
            WeeklyScoreRecord("b", 1, 70.0, "a"),
            WeeklyScoreRecord("b", 2, 130.0, "a"),
        ]
        scores = _by_team(compute_composite_scores(standings, weekly))
        # std a = 5, std b = 30, league average 17.5
        assert scores["a"].breakdown.consistency_index == pytest.approx(0.71)
        assert scores["b"].breakdown.consistency_index == pytest.approx(-0.71)

    def test_ties_in_a_week_are_not_wins(self):
        standings = [make_team("a", 1), make_team("b", 2)]
        weekly = [
            WeeklyScoreRecord("a", 1, 100.0, "b"),
            WeeklyScoreRecord("b", 1, 100.0, "a"),
        ]
        scores = _by_team(compute_composite_scores(standings, weekly))
        assert scores["a"].breakdown.all_play_win_pct == 0
        assert scores["b"].breakdown.all_play_win_pct == 0

    def test_duplicate_week_keeps_last_record(self):
        standings = [make_team("a", 1), make_team("b", 2)]
        weekly = [
            WeeklyScoreRecord("a", 1, 50.0, "b"),
            WeeklyScoreRecord("b", 1, 80.0, "a"),
            WeeklyScoreRecord("a", 1, 120.0, "b"),
        ]
        scores = _by_team(compute_composite_scores(standings, weekly))
        assert scores["a"].breakdown.all_play_win_pct == 1.0

    def test_missing_opponent_links_estimate_schedule(self):
        standings = [make_team("a", 1), make_team("b", 2)]
        weekly = [
            WeeklyScoreRecord("a", 1, 100.0),
            WeeklyScoreRecord("b", 1, 90.0),
        ]
        scores = _by_team(compute_composite_scores(standings, weekly))
        # League-average APW is 0.5, so SoS is neutral
        assert scores["a"].breakdown.sos_estimated is True
        assert scores["a"].breakdown.strength_of_schedule == 1.0

    def test_team_without_weekly_rows(self, four_team_standings, four_team_matchups):
        """A team missing from the weekly data falls back to the neutral APW."""
        standings = four_team_standings + [make_team("e", 5, wins=0, losses=0, points_for=0.0)]
        scores = _by_team(compute_composite_scores(standings, _weekly(four_team_matchups)))
        assert scores["e"].breakdown.all_play_win_pct == 0.5
        # Every other team beat e's missing score (counted as 0) each week
        assert scores["d"].breakdown.all_play_win_pct == pytest.approx(0.25)


class TestPostseason:
    """Playoff luck helpers."""

    def test_expected_playoff_wins(self):
        assert expected_playoff_wins(1, 1.0) == 2.0
        assert expected_playoff_wins(3, 0.5) == 1.25
        assert expected_playoff_wins(8, 0.0) == 0.5

    def test_luck_difference_for_champion(self, ten_team_standings):
        champion = _by_team(compute_composite_scores(ten_team_standings))["x"]
        # 1.5 + 0.864 * 0.5 - 2 actual wins
        assert champion.breakdown.playoff_luck_diff == pytest.approx(-0.07, abs=0.01)


class TestInterpretation:
    """Interpretation tiers."""

    @pytest.mark.parametrize("score, expected", [
        (120.0, Interpretation.ERA_DEFINING),
        (95.0, Interpretation.ERA_DEFINING),
        (94.99, Interpretation.DOMINANT),
        (85.0, Interpretation.DOMINANT),
        (75.0, Interpretation.ELITE),
        (65.0, Interpretation.SOLID),
        (64.9, Interpretation.AVERAGE),
        (0.0, Interpretation.AVERAGE),
    ])
    def test_tiers(self, score, expected):
        assert interpret(score) is expected

    def test_info(self):
        info = sds_plus_info()
        assert info["name"] == "SDS+"
        assert "full_name" in info
