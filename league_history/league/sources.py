"""
Season data sources.

A season data source supplies the raw inputs for one league season: final (or
current) standings, the matchups of a given week and the length of the regular
season. Two implementations exist:

    SleeperClient     live data from the Sleeper public API (league.sleeper)
    JsonSeasonSource  exported season files under data/<league_key>.json

JSON file layout:
    {
      "season": 2024,
      "regular_season_weeks": 14,
      "standings": [{"team_id": "1", "rank": 1, "wins": 11, ...}, ...],
      "matchups": [{"week": 1, "team1_id": "1", "team1_points": 120.5, ...}, ...]
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Protocol, runtime_checkable

from league_history.errors import SourceError
from league_history.metrics.sds_plus import DEFAULT_REGULAR_SEASON_WEEKS
from league_history.models import MatchupRecord, StandingRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class SeasonDataSource(Protocol):
    """Anything that can supply standings and matchups for a league season."""

    def fetch_standings(self, league_key: str) -> List[StandingRecord]:
        ...

    def fetch_matchups(self, league_key: str, week: int) -> List[MatchupRecord]:
        ...

    def regular_season_weeks(self, league_key: str) -> int:
        ...


class JsonSeasonSource:
    """Season data source reading one JSON file per league season."""

    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)
        self._loaded: Dict[str, Dict[str, Any]] = {}

    def path_for(self, league_key: str) -> Path:
        return self.data_dir / f"{league_key}.json"

    def _load(self, league_key: str) -> Dict[str, Any]:
        if league_key in self._loaded:
            return self._loaded[league_key]

        path = self.path_for(league_key)
        if not path.exists():
            raise SourceError(f"No season file at {path}", league_key=league_key)

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SourceError(f"Could not read season file {path}: {e}", league_key=league_key) from e

        if not isinstance(data, dict):
            raise SourceError(f"Season file {path} must contain a JSON object", league_key=league_key)

        self._loaded[league_key] = data
        return data

    def fetch_standings(self, league_key: str) -> List[StandingRecord]:
        data = self._load(league_key)
        try:
            standings = [StandingRecord.from_dict(row) for row in data.get("standings") or []]
        except (KeyError, TypeError, ValueError) as e:
            raise SourceError(f"Malformed standings in {self.path_for(league_key)}: {e}", league_key=league_key) from e
        return sorted(standings, key=lambda s: s.rank)

    def fetch_matchups(self, league_key: str, week: int) -> List[MatchupRecord]:
        data = self._load(league_key)
        try:
            return [
                MatchupRecord.from_dict(row)
                for row in data.get("matchups") or []
                if int(row.get("week", 0)) == week
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise SourceError(f"Malformed matchups in {self.path_for(league_key)}: {e}", league_key=league_key) from e

    def regular_season_weeks(self, league_key: str) -> int:
        weeks = self._load(league_key).get("regular_season_weeks")
        return int(weeks) if weeks else DEFAULT_REGULAR_SEASON_WEEKS
