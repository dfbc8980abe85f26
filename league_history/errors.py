"""
Exception types raised by the league history package.

Partial or missing league data is never an error here; it degrades to the
documented estimation paths. These exceptions cover the collaborators that can
genuinely fail: the upstream data source and the configuration file.
"""

from typing import Optional


class LeagueHistoryError(Exception):
    """Base class for all package errors."""


class SourceError(LeagueHistoryError):
    """The upstream fantasy data source could not return a season."""

    def __init__(self, message: str, league_key: Optional[str] = None):
        super().__init__(message)
        self.league_key = league_key


class ConfigError(LeagueHistoryError):
    """The league configuration file is malformed."""
