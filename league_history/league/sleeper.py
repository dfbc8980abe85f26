#!/usr/bin/env python3
"""
Sleeper Season Source

Fetches standings and weekly matchups for one Sleeper league season from the
public Sleeper API (https://api.sleeper.app/v1).

Standings come from the rosters' season settings (wins / losses / ties /
fpts / fpts_against). The final rank is taken from the winners bracket
placement games when the playoffs are finished, and from the regular-season
order (wins, then points) otherwise.

Usage:
    from league_history.league.sleeper import SleeperClient

    client = SleeperClient()
    standings = client.fetch_standings("1262418074540195841")
    week_1 = client.fetch_matchups("1262418074540195841", 1)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional

import requests

from league_history.errors import SourceError
from league_history.metrics.sds_plus import DEFAULT_REGULAR_SEASON_WEEKS
from league_history.models import MatchupRecord, StandingRecord

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.sleeper.app/v1"
DEFAULT_TIMEOUT = 30
USER_AGENT = "league-history/1.0"

# Placement games in the winners bracket: "p" -> rank of the winner
PLACEMENT_GAMES = (1, 3, 5)


class SleeperClient:
    """Season data source backed by the Sleeper public API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})
        self._teams: Dict[str, Dict[Any, Dict[str, Any]]] = {}
        self._leagues: Dict[str, Dict[str, Any]] = {}
        self._nfl_state: Optional[Dict[str, Any]] = None

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    def _get(self, path: str, league_key: Optional[str] = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise SourceError(f"Sleeper request failed for {url}: {e}", league_key=league_key) from e
        except ValueError as e:
            raise SourceError(f"Sleeper returned invalid JSON for {url}", league_key=league_key) from e

    def fetch_league(self, league_key: str) -> Dict[str, Any]:
        """League settings and status (cached per client)."""
        if league_key in self._leagues:
            return self._leagues[league_key]

        league = self._get(f"league/{league_key}", league_key)
        if not league:
            raise SourceError(f"Sleeper league not found: {league_key}", league_key=league_key)
        self._leagues[league_key] = league
        return league

    def _state(self, league_key: str) -> Dict[str, Any]:
        if self._nfl_state is None:
            self._nfl_state = self._get("state/nfl", league_key) or {}
        return self._nfl_state

    # -------------------------------------------------------------------------
    # Teams
    # -------------------------------------------------------------------------

    def _load_teams(self, league_key: str) -> Dict[Any, Dict[str, Any]]:
        """Map roster_id -> owner / team name for a league (cached per client)."""
        if league_key in self._teams:
            return self._teams[league_key]

        users = self._get(f"league/{league_key}/users", league_key) or []
        rosters = self._get(f"league/{league_key}/rosters", league_key) or []

        users_by_id = {}
        for user in users:
            name = user.get("display_name") or user.get("username")
            team_nick = (user.get("metadata") or {}).get("team_name")
            users_by_id[user.get("user_id")] = {"name": name, "team_nick": team_nick}

        teams = {}
        for roster in rosters:
            owner = users_by_id.get(roster.get("owner_id"), {})
            meta = roster.get("metadata") or {}
            team_name = (
                meta.get("team_name")
                or owner.get("team_nick")
                or owner.get("name")
                or f"Roster {roster['roster_id']}"
            )
            teams[roster["roster_id"]] = {
                "owner": owner.get("name"),
                "team_name": team_name,
                "settings": roster.get("settings") or {},
            }

        self._teams[league_key] = teams
        return teams

    @staticmethod
    def _points(settings: Dict[str, Any], field: str) -> float:
        whole = float(settings.get(field) or 0)
        decimal = float(settings.get(f"{field}_decimal") or 0)
        return whole + decimal / 100.0

    def _bracket_ranks(self, league_key: str) -> Dict[Any, int]:
        """roster_id -> final rank from the winners bracket placement games."""
        try:
            bracket = self._get(f"league/{league_key}/winners_bracket", league_key) or []
        except SourceError as e:
            logger.info(f"No winners bracket for {league_key}, using regular-season order: {e}")
            return {}

        ranks = {}
        for game in bracket:
            placement = game.get("p")
            if placement not in PLACEMENT_GAMES or game.get("w") is None:
                continue
            ranks[game["w"]] = placement
            if game.get("l") is not None:
                ranks[game["l"]] = placement + 1
        return ranks

    # -------------------------------------------------------------------------
    # SeasonDataSource
    # -------------------------------------------------------------------------

    def fetch_standings(self, league_key: str) -> List[StandingRecord]:
        teams = self._load_teams(league_key)
        if not teams:
            return []

        ordered = sorted(
            teams.items(),
            key=lambda item: (
                -int(item[1]["settings"].get("wins") or 0),
                -self._points(item[1]["settings"], "fpts"),
            )
        )
        regular_ranks = {roster_id: i + 1 for i, (roster_id, _) in enumerate(ordered)}

        league = self.fetch_league(league_key)
        bracket_ranks = self._bracket_ranks(league_key) if league.get("status") == "complete" else {}

        # Teams outside the placement games keep their regular-season order,
        # shifted below the placed teams
        unplaced = [rid for rid, _ in ordered if rid not in bracket_ranks]
        final_ranks = dict(bracket_ranks)
        for i, roster_id in enumerate(unplaced):
            final_ranks[roster_id] = len(bracket_ranks) + i + 1

        standings = []
        for roster_id, team in teams.items():
            settings = team["settings"]
            standings.append(StandingRecord(
                team_id=str(roster_id),
                rank=final_ranks.get(roster_id, regular_ranks[roster_id]),
                wins=int(settings.get("wins") or 0),
                losses=int(settings.get("losses") or 0),
                ties=int(settings.get("ties") or 0),
                points_for=self._points(settings, "fpts"),
                points_against=self._points(settings, "fpts_against"),
                owner=team["owner"],
                team_name=team["team_name"],
            ))

        standings.sort(key=lambda s: s.rank)
        logger.info(f"Fetched {len(standings)} teams for Sleeper league {league_key}")
        return standings

    def week_status(self, league_key: str, week: int) -> str:
        """'completed' for weeks already played, 'live' otherwise."""
        league = self.fetch_league(league_key)
        if league.get("status") == "complete":
            return "completed"

        state = self._state(league_key)
        if str(state.get("season")) != str(league.get("season")):
            return "completed"
        return "completed" if week < int(state.get("week") or 0) else "live"

    def fetch_matchups(self, league_key: str, week: int) -> List[MatchupRecord]:
        teams = self._load_teams(league_key)
        rows = self._get(f"league/{league_key}/matchups/{week}", league_key) or []

        by_matchup = defaultdict(list)
        for row in rows:
            if "roster_id" in row and row.get("matchup_id") is not None:
                by_matchup[row["matchup_id"]].append(row)

        if not by_matchup:
            return []

        status = self.week_status(league_key, week)
        matchups = []
        for matchup_id, pair in sorted(by_matchup.items()):
            if len(pair) < 2:
                # Bye or unpaired roster, nothing to record
                continue
            home, away = sorted(pair[:2], key=lambda r: r["roster_id"])
            home_team = teams.get(home["roster_id"], {})
            away_team = teams.get(away["roster_id"], {})
            matchups.append(MatchupRecord(
                week=week,
                matchup_key=f"{league_key}.w{week}.m{matchup_id}",
                team1_id=str(home["roster_id"]),
                team1_name=home_team.get("team_name"),
                team1_owner=home_team.get("owner"),
                team1_points=float(home.get("points") or 0),
                team2_id=str(away["roster_id"]),
                team2_name=away_team.get("team_name"),
                team2_owner=away_team.get("owner"),
                team2_points=float(away.get("points") or 0),
                status=status,
            ))
        return matchups

    def regular_season_weeks(self, league_key: str) -> int:
        league = self.fetch_league(league_key)
        playoff_start = (league.get("settings") or {}).get("playoff_week_start")
        if playoff_start:
            return max(int(playoff_start) - 1, 1)
        return DEFAULT_REGULAR_SEASON_WEEKS
