"""
League data package.

Season data sources and manager-vs-manager aggregates.

Modules:
    sources: SeasonDataSource protocol and the JSON file source
    sleeper: Sleeper public API source
    rivalry: Head-to-head records and rivalry ranking
"""

from league_history.league.rivalry import (
    build_all_head_to_head,
    build_head_to_head,
    competitiveness_score,
    top_rivalries,
)
from league_history.league.sleeper import SleeperClient
from league_history.league.sources import JsonSeasonSource, SeasonDataSource

__all__ = [
    "JsonSeasonSource",
    "SeasonDataSource",
    "SleeperClient",
    "build_all_head_to_head",
    "build_head_to_head",
    "competitiveness_score",
    "top_rivalries",
]
