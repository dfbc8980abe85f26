"""Shared fixtures for league history tests."""

from datetime import datetime, timezone

import pytest

from league_history.models import MatchupRecord, StandingRecord

NOW = datetime(2025, 11, 20, 12, 0, tzinfo=timezone.utc)


def make_team(team_id, rank, wins=7, losses=7, ties=0, points_for=1500.0, points_against=1500.0, owner=None):
    return StandingRecord(
        team_id=team_id,
        rank=rank,
        wins=wins,
        losses=losses,
        ties=ties,
        points_for=points_for,
        points_against=points_against,
        owner=owner or f"Owner {team_id}",
        team_name=f"Team {team_id}",
    )


@pytest.fixture
def ten_team_standings():
    """10 teams, league average 1500 points, team x (1800, 11-3) is champion."""
    others = [
        ("b", 1600.0, 10), ("c", 1550.0, 9), ("d", 1500.0, 8), ("e", 1480.0, 7),
        ("f", 1470.0, 7), ("g", 1450.0, 6), ("h", 1400.0, 5), ("i", 1380.0, 4),
        ("j", 1370.0, 3),
    ]
    standings = [make_team("x", 1, wins=11, losses=3, points_for=1800.0)]
    for rank, (team_id, points, wins) in enumerate(others, start=2):
        standings.append(make_team(team_id, rank, wins=wins, losses=14 - wins, points_for=points))
    return standings


@pytest.fixture
def four_team_matchups():
    """Three weeks of a round robin where a > b > c > d every week."""
    points = {"a": 100.0, "b": 90.0, "c": 80.0, "d": 70.0}
    pairings = {
        1: [("a", "b"), ("c", "d")],
        2: [("a", "c"), ("b", "d")],
        3: [("a", "d"), ("b", "c")],
    }
    return [
        MatchupRecord(
            week=week,
            team1_id=t1,
            team1_points=points[t1],
            team2_id=t2,
            team2_points=points[t2],
            team1_owner=f"Owner {t1}",
            team2_owner=f"Owner {t2}",
            status="postevent",
        )
        for week, games in pairings.items()
        for t1, t2 in games
    ]


@pytest.fixture
def four_team_standings():
    return [
        make_team("a", 1, wins=3, losses=0, points_for=300.0),
        make_team("b", 2, wins=2, losses=1, points_for=270.0),
        make_team("c", 3, wins=1, losses=2, points_for=240.0),
        make_team("d", 4, wins=0, losses=3, points_for=210.0),
    ]
