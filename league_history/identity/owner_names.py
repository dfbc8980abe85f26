#!/usr/bin/env python3
"""
Owner Name Resolution

Maps upstream owner names to standardized manager names so that one person is
shown (and aggregated) under the same name across every season, even when the
provider renames them or hides them.

Resolution order (first hit wins):
1. Explicit mapping of the upstream owner name
2. Hidden owners ("--hidden--"):
   a. per season and team:  "--hidden-- (2014) [Fear Boners]"
   b. per season:           "--hidden-- (2014)"
   c. generic:              "--hidden--"
   d. otherwise the season-specific placeholder "--hidden-- (2014)"
3. The upstream owner name itself
4. The team name, then "Unknown"

Mappings come from the `owners:` section of league.config.yaml.

Usage:
    from league_history.identity.owner_names import OwnerNameResolver

    resolver = OwnerNameResolver({"C Money": "Carter Van Ekeren"})
    resolver.resolve("C Money")                            # "Carter Van Ekeren"
    resolver.resolve("--hidden--", "Fear Boners", 2014)    # mapping or placeholder
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping, Optional

logger = logging.getLogger(__name__)

HIDDEN_OWNER = "--hidden--"
UNKNOWN_OWNER = "Unknown"

ResolutionMethod = Literal[
    "mapping", "hidden_team", "hidden_season", "hidden_generic",
    "hidden_placeholder", "upstream", "team_name", "unknown"
]


@dataclass(frozen=True)
class OwnerResolution:
    """Resolved owner name and which rule produced it."""
    name: str
    method: ResolutionMethod


def hidden_owner_key(season: Any, team_name: Optional[str] = None) -> str:
    """Mapping key for a hidden owner in a season, optionally per team."""
    if team_name:
        return f"{HIDDEN_OWNER} ({season}) [{team_name}]"
    return f"{HIDDEN_OWNER} ({season})"


class OwnerNameResolver:
    """Resolves upstream owner names to standardized manager names."""

    def __init__(self, mappings: Optional[Mapping[str, str]] = None, hidden_token: str = HIDDEN_OWNER):
        self.mappings: Dict[str, str] = dict(mappings or {})
        self.hidden_token = hidden_token

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "OwnerNameResolver":
        owners = config.get("owners") or {}
        # YAML may parse names such as "Yes" or numbers into non-strings
        return cls({str(k): str(v) for k, v in owners.items() if v is not None})

    def _hidden(self, team_name: Optional[str], season: Any) -> OwnerResolution:
        if team_name:
            for candidate in (team_name.strip(), team_name):
                mapped = self.mappings.get(hidden_owner_key(season, candidate))
                if mapped:
                    return OwnerResolution(mapped, "hidden_team")

        season_key = hidden_owner_key(season)
        mapped = self.mappings.get(season_key)
        if mapped:
            return OwnerResolution(mapped, "hidden_season")

        mapped = self.mappings.get(self.hidden_token)
        if mapped:
            return OwnerResolution(mapped, "hidden_generic")

        return OwnerResolution(season_key, "hidden_placeholder")

    def resolve_with_method(
        self,
        raw_owner: Optional[str],
        team_name: Optional[str] = None,
        season: Any = None
    ) -> OwnerResolution:
        if not raw_owner:
            if team_name:
                return OwnerResolution(team_name, "team_name")
            return OwnerResolution(UNKNOWN_OWNER, "unknown")

        if raw_owner == self.hidden_token and season:
            return self._hidden(team_name, season)

        mapped = self.mappings.get(raw_owner)
        if mapped:
            return OwnerResolution(mapped, "mapping")

        return OwnerResolution(raw_owner, "upstream")

    def resolve(self, raw_owner: Optional[str], team_name: Optional[str] = None, season: Any = None) -> str:
        """Standardized owner name for an upstream owner."""
        return self.resolve_with_method(raw_owner, team_name, season).name

    def __call__(self, raw_owner: Optional[str], team_name: Optional[str] = None, season: Any = None) -> str:
        return self.resolve(raw_owner, team_name, season)

    def standardized_names(self) -> List[str]:
        """All distinct standardized names in the mapping."""
        return sorted({name for name in self.mappings.values() if name})
