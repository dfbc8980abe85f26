"""
Configuration loader for league settings.

Supports loading from:
1. Environment variables (.env.local or codespace secrets)
2. YAML config file (league.config.yaml)

Environment Variable Aliases (checked in order):
- Sleeper league: SLEEPER_LEAGUE_ID, SLEEPER_LEAG_ID
- Cache database: LEAGUE_HISTORY_DB
- Config file: LEAGUE_HISTORY_CONFIG
- Cache TTL: CACHE_TTL_HOURS

Usage:
    from league_history.config import get_config, get_season_calendar

    config = get_config()
    calendar = get_season_calendar()
    calendar.year_for_league_key("449.l.12345")  # -> 2024
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass, field
from datetime import date
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

import yaml

from league_history.errors import ConfigError

logger = logging.getLogger(__name__)

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "league.config.yaml"
DEFAULT_DB_PATH = PROJECT_ROOT / "db" / "league_cache.sqlite"
DEFAULT_DATA_DIR = PROJECT_ROOT / "data"


def _load_env_file(env_file: Path = PROJECT_ROOT / ".env.local"):
    """Load environment variables from .env.local if it exists."""
    if env_file.exists():
        with open(env_file, "r") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, _, value = line.partition("=")
                    key = key.strip()
                    value = value.strip()
                    # Remove quotes if present
                    if value.startswith('"') and value.endswith('"'):
                        value = value[1:-1]
                    elif value.startswith("'") and value.endswith("'"):
                        value = value[1:-1]
                    os.environ.setdefault(key, value)


# Load env file on module import
_load_env_file()


# Order matters: first valid value found wins
ENV_VAR_ALIASES = {
    "sleeper_league_id": [
        "SLEEPER_LEAGUE_ID",  # Primary (canonical name)
        "SLEEPER_LEAG_ID",    # Legacy misspelling still used in older secrets
    ],
    "db_path": ["LEAGUE_HISTORY_DB"],
    "config_path": ["LEAGUE_HISTORY_CONFIG"],
    "ttl_hours": ["CACHE_TTL_HOURS"],
}

# Yahoo game key -> season year. Game keys are the prefix of a league key
# ("{game_key}.l.{league_id}").
DEFAULT_SEASONS = {
    "314": 2013,
    "331": 2014,
    "348": 2015,
    "359": 2016,
    "371": 2017,
    "380": 2018,
    "390": 2019,
    "399": 2020,
    "406": 2021,
    "414": 2022,
    "423": 2023,
    "449": 2024,
    "461": 2025,
}

DEFAULT_CONFIG: Dict[str, Any] = {
    "league_keys": [],
    "seasons": dict(DEFAULT_SEASONS),
    "owners": {},
    "cache": {"ttl_hours": 168},
    "scoring": {"regular_season_weeks": 14},
    "sleeper": {
        "base_url": "https://api.sleeper.app/v1",
        "timeout": 30,
    },
}


def _get_env_with_aliases(alias_key):
    """
    Get an environment variable value, checking multiple aliases.
    Returns (value, var_name) tuple or (None, None) if not found.
    """
    aliases = ENV_VAR_ALIASES.get(alias_key, [])
    for var_name in aliases:
        value = os.getenv(var_name)
        if value and not _is_placeholder(value):
            return value, var_name
    return None, None


def _is_placeholder(value):
    """Check if a value is a placeholder that should be ignored."""
    if not value:
        return True
    value_lower = value.lower()
    return (
        value_lower.startswith("your_") or
        value_lower.startswith("your-") or
        value == "changeme" or
        value == "placeholder"
    )


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML and environment variables.

    Environment variables take precedence over the file. A missing file
    yields the defaults; a malformed one raises ConfigError.
    """
    if config_path is None:
        env_path, _ = _get_env_with_aliases("config_path")
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

    file_config: Dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path) as f:
                file_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigError(f"Config root must be a mapping: {config_path}")
    else:
        logger.warning(f"Config not found: {config_path}, using defaults")

    config = _merge(DEFAULT_CONFIG, file_config)
    # Season keys are compared as strings against league key prefixes
    config["seasons"] = {str(k): int(v) for k, v in (config.get("seasons") or {}).items()}

    league_id, _ = _get_env_with_aliases("sleeper_league_id")
    if league_id:
        config["sleeper"]["league_id"] = league_id

    db_path, _ = _get_env_with_aliases("db_path")
    config["db_path"] = db_path or str(config.get("db_path") or DEFAULT_DB_PATH)

    ttl, ttl_var = _get_env_with_aliases("ttl_hours")
    if ttl:
        try:
            config["cache"]["ttl_hours"] = float(ttl)
        except ValueError:
            raise ConfigError(f"{ttl_var} must be a number, got {ttl!r}")

    return config


@lru_cache(maxsize=1)
def get_config() -> Dict[str, Any]:
    """Get the process-wide configuration dictionary."""
    return load_config()


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate a loaded configuration.
    Returns a list of issues (empty if all is well).
    """
    issues = []

    years = list(config.get("seasons", {}).values())
    if len(years) != len(set(years)):
        issues.append("Two game keys map to the same season year")

    ttl = config.get("cache", {}).get("ttl_hours")
    if not isinstance(ttl, (int, float)) or ttl <= 0:
        issues.append(f"cache.ttl_hours must be a positive number, got {ttl!r}")

    weeks = config.get("scoring", {}).get("regular_season_weeks")
    if not isinstance(weeks, int) or weeks <= 0:
        issues.append(f"scoring.regular_season_weeks must be a positive integer, got {weeks!r}")

    owners = config.get("owners", {})
    if not isinstance(owners, dict):
        issues.append("owners must be a mapping of upstream name to display name")

    return issues


# =============================================================================
# SEASON CALENDAR
# =============================================================================

@dataclass(frozen=True)
class SeasonCalendar:
    """
    Immutable mapping from upstream game keys to season years.

    Injected wherever a league key has to be turned into a season, so tests can
    use synthetic game keys.
    """
    game_keys: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self):
        frozen = MappingProxyType({str(k): int(v) for k, v in dict(self.game_keys).items()})
        object.__setattr__(self, "game_keys", frozen)

    def year_for_league_key(self, league_key: str) -> Optional[int]:
        """
        Extract the season year from a league key ("{game_key}.l.{id}").

        A full league key listed in the mapping wins over its game key prefix,
        which lets providers without game keys (Sleeper league ids) be mapped
        one league at a time.
        """
        if not league_key:
            return None
        if league_key in self.game_keys:
            return self.game_keys[league_key]
        game_key = league_key.split(".")[0]
        return self.game_keys.get(game_key)

    def league_key_for_year(self, year: int, league_keys: Iterable[str]) -> Optional[str]:
        for league_key in league_keys:
            if self.year_for_league_key(league_key) == year:
                return league_key
        return None

    def available_years(self, league_keys: Iterable[str]) -> List[int]:
        """Years covered by the given league keys, newest first."""
        years = {self.year_for_league_key(k) for k in league_keys}
        return sorted((y for y in years if y), reverse=True)

    def current_season(self, today: Optional[date] = None) -> Optional[int]:
        """Latest configured season that has started by `today`."""
        today = today or date.today()
        started = [y for y in self.game_keys.values() if y <= today.year]
        return max(started) if started else None


def get_season_calendar(config: Optional[Dict[str, Any]] = None) -> SeasonCalendar:
    config = config if config is not None else get_config()
    return SeasonCalendar(config.get("seasons", {}))


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s"
    )

    print("=== Configuration Test ===\n")
    config = get_config()

    print(f"Database: {config['db_path']}")
    print(f"Cache TTL: {config['cache']['ttl_hours']}h")
    print(f"League keys: {', '.join(config['league_keys']) or '(none)'}")
    print(f"Sleeper league: {config['sleeper'].get('league_id') or '(not configured)'}")
    print()

    issues = validate_config(config)
    if issues:
        print("Configuration issues:")
        for issue in issues:
            print(f"  - {issue}")
    else:
        print("Configuration looks good.")
