"""
Tests for the SQLite cache store.
"""

import sqlite3
from dataclasses import replace

import pytest

from league_history.cache.freshness import has_missing_fields
from league_history.db.cache_store import CacheStore, pair_key
from league_history.metrics.sds_plus import compute_composite_scores
from league_history.models import HeadToHeadRecord

from tests.conftest import NOW, make_team


@pytest.fixture
def store(tmp_path):
    store = CacheStore(tmp_path / "cache.sqlite", clock=lambda: NOW)
    store.initialize()
    return store


class TestStandings:
    """Standings cache."""

    def test_round_trip(self, store, four_team_standings):
        assert store.put_standings("449.l.1", 2024, four_team_standings)

        entry = store.get_standings("449.l.1")
        assert entry.value == four_team_standings
        assert entry.cached_at == NOW
        assert len(entry.rows) == 4

    def test_miss_returns_none(self, store):
        assert store.get_standings("449.l.404") is None

    def test_put_replaces_whole_set(self, store, four_team_standings):
        store.put_standings("449.l.1", 2024, four_team_standings)
        store.put_standings("449.l.1", 2024, four_team_standings[:2])

        entry = store.get_standings("449.l.1")
        assert [t.team_id for t in entry.value] == ["a", "b"]

    def test_leagues_are_independent(self, store, four_team_standings):
        store.put_standings("449.l.1", 2024, four_team_standings)
        store.put_standings("461.l.1", 2025, four_team_standings[:1])
        assert len(store.get_standings("449.l.1").value) == 4

    def test_owner_stored_with_team_name_fallback(self, store):
        store.put_standings("449.l.1", 2024, [replace(make_team("a", 1), owner=None)])
        entry = store.get_standings("449.l.1")
        assert entry.rows[0]["owner_name"] == "Team a"

    def test_missing_owner_name_is_visible_in_rows(self, store, four_team_standings):
        store.put_standings("449.l.1", 2024, four_team_standings)
        with store.connection() as conn:
            conn.execute("UPDATE league_standings SET owner_name = NULL WHERE team_key = 'c'")
            conn.commit()

        assert has_missing_fields(store.get_standings("449.l.1").rows)

    def test_oldest_row_dates_the_set(self, store, four_team_standings):
        store.put_standings("449.l.1", 2024, four_team_standings)
        with store.connection() as conn:
            conn.execute(
                "UPDATE league_standings SET cached_at = '2025-01-01T00:00:00+00:00' WHERE team_key = 'b'"
            )
            conn.commit()

        assert store.get_standings("449.l.1").cached_at.year == 2025
        assert store.get_standings("449.l.1").cached_at.month == 1


class TestSdsPlus:
    """SDS+ score cache."""

    def test_round_trip_keeps_breakdown(self, store, four_team_standings, four_team_matchups):
        weekly = [ws for m in four_team_matchups for ws in m.to_weekly_scores()]
        scores = compute_composite_scores(four_team_standings, weekly)

        assert store.put_sds_plus("449.l.1", 2024, scores)
        entry = store.get_sds_plus("449.l.1")

        assert entry.value == scores
        assert entry.value[0].breakdown.sos_estimated is False

    def test_malformed_breakdown_is_a_miss(self, store, four_team_standings):
        store.put_sds_plus("449.l.1", 2024, compute_composite_scores(four_team_standings))
        with store.connection() as conn:
            conn.execute("UPDATE sds_plus_cache SET breakdown = '{}'")
            conn.commit()

        assert store.get_sds_plus("449.l.1") is None


class TestMatchups:
    """Weekly matchup cache."""

    def test_round_trip_per_week(self, store, four_team_matchups):
        week_1 = [m for m in four_team_matchups if m.week == 1]
        week_2 = [m for m in four_team_matchups if m.week == 2]
        store.put_matchups("449.l.1", 2024, 1, week_1)
        store.put_matchups("449.l.1", 2024, 2, week_2)

        entry = store.get_matchups("449.l.1", 1)
        assert [(m.team1_id, m.team2_id) for m in entry.value] == [("a", "b"), ("c", "d")]
        assert entry.value[0].matchup_key == "a-b"
        assert [row["status"] for row in entry.rows] == ["postevent", "postevent"]

    def test_week_miss(self, store):
        assert store.get_matchups("449.l.1", 9) is None


class TestHeadToHead:
    """Head-to-head cache."""

    def test_oriented_to_caller(self, store):
        store.put_head_to_head(HeadToHeadRecord("Zed", "Amy", wins=3, losses=1, points_for=400.0, points_against=350.0))

        as_zed = store.get_head_to_head("Zed", "Amy").value
        as_amy = store.get_head_to_head("Amy", "Zed").value

        assert (as_zed.wins, as_zed.losses, as_zed.points_for) == (3, 1, 400.0)
        assert (as_amy.wins, as_amy.losses, as_amy.points_for) == (1, 3, 350.0)

    def test_pair_stored_once(self, store):
        store.put_head_to_head(HeadToHeadRecord("Zed", "Amy", wins=1))
        store.put_head_to_head(HeadToHeadRecord("Amy", "Zed", wins=5))

        with store.connection() as conn:
            rows = conn.execute("SELECT manager1, manager2, wins FROM head_to_head_cache").fetchall()
        assert [tuple(r) for r in rows] == [("Amy", "Zed", 5)]

    def test_batch(self, store):
        store.put_head_to_head(HeadToHeadRecord("Amy", "Bob", wins=2, losses=1))
        store.put_head_to_head(HeadToHeadRecord("Bob", "Cat", wins=0, losses=4))

        found = store.get_head_to_head_batch([("Bob", "Amy"), ("Bob", "Cat"), ("Amy", "Cat")])

        assert set(found) == {pair_key("Amy", "Bob"), pair_key("Bob", "Cat")}
        assert found["Amy|Bob"].value.manager == "Bob"
        assert found["Amy|Bob"].value.wins == 1

    def test_pair_key_is_order_independent(self):
        assert pair_key("b", "a") == pair_key("a", "b") == "a|b"


class TestFailures:
    """Store failures never raise."""

    def test_unopenable_database(self, tmp_path, four_team_standings):
        store = CacheStore(tmp_path / "no" / "such" / "dir" / "cache.sqlite")
        assert store.get_standings("449.l.1") is None
        assert store.put_standings("449.l.1", 2024, four_team_standings) is False
        assert store.get_head_to_head_batch([("a", "b")]) == {}

    def test_uninitialized_database(self, tmp_path, four_team_standings):
        store = CacheStore(tmp_path / "empty.sqlite")
        assert store.get_sds_plus("449.l.1") is None
        assert store.put_matchups("449.l.1", 2024, 1, []) is False

    def test_failed_put_keeps_previous_set(self, store, four_team_standings, monkeypatch):
        store.put_standings("449.l.1", 2024, four_team_standings)

        def broken_replace(*args, **kwargs):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(store, "_replace", broken_replace)
        assert store.put_standings("449.l.1", 2024, four_team_standings[:1]) is False
        monkeypatch.undo()

        assert len(store.get_standings("449.l.1").value) == 4


class TestSummary:
    def test_counts(self, store, four_team_standings):
        store.put_standings("449.l.1", 2024, four_team_standings)
        summary = store.summary()
        assert summary["league_standings"]["rows"] == 4
        assert summary["matchups"]["rows"] == 0
