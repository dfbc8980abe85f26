"""
Tests for head-to-head aggregation and rivalry ranking.
"""

import pytest

from league_history.league.rivalry import (
    build_all_head_to_head,
    build_head_to_head,
    competitiveness_score,
    top_rivalries,
)
from league_history.models import HeadToHeadRecord, MatchupRecord


def game(week, owner1, points1, owner2, points2):
    return MatchupRecord(
        week=week,
        team1_id=owner1.lower(),
        team1_points=points1,
        team2_id=owner2.lower(),
        team2_points=points2,
        team1_owner=owner1,
        team2_owner=owner2,
    )


@pytest.fixture
def history():
    return {
        2023: [
            game(1, "Amy", 110.0, "Bob", 100.0),
            game(2, "Bob", 120.0, "Amy", 90.0),
            game(3, "Amy", 0.0, "Cat", 0.0),
        ],
        2024: [
            game(1, "Amy", 100.0, "Bob", 100.0),
            game(2, "Cat", 130.0, "Bob", 80.0),
        ],
    }


class TestBuildHeadToHead:
    def test_record_between_two_managers(self, history):
        record = build_head_to_head(history, "Amy", "Bob")
        assert (record.wins, record.losses, record.ties) == (1, 1, 1)
        assert record.points_for == 300.0
        assert record.points_against == 320.0
        assert record.total_games == 3

    def test_unplayed_games_skipped(self, history):
        assert build_head_to_head(history, "Amy", "Cat").total_games == 0

    def test_owner_resolver_applied(self):
        history = {2014: [game(1, "--hidden--", 100.0, "Bob", 90.0)]}

        def resolve(owner, team_name, season):
            return "Ben" if owner == "--hidden--" else owner

        record = build_head_to_head(history, "Ben", "Bob", resolve=resolve)
        assert record.wins == 1

    def test_all_pairs(self, history):
        records = build_all_head_to_head(history)
        assert set(records) == {("Amy", "Bob"), ("Bob", "Cat")}
        bob_cat = records[("Bob", "Cat")]
        assert (bob_cat.manager, bob_cat.wins, bob_cat.losses) == ("Bob", 0, 1)
        assert records[("Amy", "Bob")] == build_head_to_head(history, "Amy", "Bob")


class TestCompetitiveness:
    def test_no_games(self):
        assert competitiveness_score(HeadToHeadRecord("a", "b")) == 0.0

    def test_perfectly_even_long_series(self):
        record = HeadToHeadRecord("a", "b", wins=10, losses=10, points_for=2000.0, points_against=2000.0)
        assert competitiveness_score(record) == pytest.approx(1.0)

    def test_one_sided_short_series(self):
        record = HeadToHeadRecord("a", "b", wins=2, losses=0, points_for=300.0, points_against=100.0)
        # 0.4 * 0.1 + 0 + 0.2 * 0
        assert competitiveness_score(record) == pytest.approx(0.04)

    def test_bounded(self):
        record = HeadToHeadRecord("a", "b", wins=30, losses=29, ties=1, points_for=7000.0, points_against=6900.0)
        assert 0.0 <= competitiveness_score(record) <= 1.0


class TestTopRivalries:
    def test_ordering_and_limit(self):
        even = HeadToHeadRecord("a", "b", wins=10, losses=10, points_for=2000.0, points_against=2000.0)
        lopsided = HeadToHeadRecord("c", "d", wins=9, losses=1, points_for=1200.0, points_against=900.0)
        never = HeadToHeadRecord("e", "f")

        rivalries = top_rivalries([lopsided, even, never], limit=5)

        assert [(r.manager1, r.manager2) for r in rivalries] == [("a", "b"), ("c", "d")]
        assert top_rivalries([lopsided, even], limit=1)[0].manager1 == "a"

    def test_near_equal_scores_prefer_more_games(self):
        fewer = HeadToHeadRecord("a", "b", wins=20, losses=20, points_for=100.0, points_against=100.0)
        more = HeadToHeadRecord("c", "d", wins=21, losses=21, points_for=100.0, points_against=100.0)
        rivalries = top_rivalries([fewer, more])
        assert rivalries[0].manager1 == "c"
