"""
League History Data Model

Dataclasses shared by the scoring engine, the cache store and the data sources.

Records:
    StandingRecord: one team's season result (final or in progress)
    WeeklyScoreRecord: one team's score in one week
    MatchupRecord: one head-to-head game in one week
    ScoreBreakdown / CompositeScore: SDS+ output
    SeasonSuccessScore: PONIES / POWER output
    HeadToHeadRecord / Rivalry: manager-vs-manager aggregates
    CacheEntry: a cached value together with when it was written
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar

T = TypeVar("T")

SeasonSuccessKind = Literal["ponies", "power"]


class Interpretation(Enum):
    """SDS+ interpretation tiers, highest first."""
    ERA_DEFINING = "All-time, era-defining season"
    DOMINANT = "Dominant, likely robbed by variance"
    ELITE = "Elite champion or contender"
    SOLID = "Solid title or strong season"
    AVERAGE = "Average or luck-driven outcome"


# =============================================================================
# INPUT RECORDS
# =============================================================================

@dataclass(frozen=True)
class StandingRecord:
    """One team's season result as reported by the data source."""
    team_id: str
    rank: int
    wins: int = 0
    losses: int = 0
    ties: int = 0
    points_for: float = 0.0
    points_against: float = 0.0
    owner: Optional[str] = None
    team_name: Optional[str] = None

    @property
    def games_played(self) -> int:
        return self.wins + self.losses + self.ties

    @property
    def display_owner(self) -> str:
        """Owner name, falling back to the team name."""
        return self.owner or self.team_name or "Unknown"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StandingRecord":
        return cls(
            team_id=str(data["team_id"]),
            rank=int(data["rank"]),
            wins=int(data.get("wins") or 0),
            losses=int(data.get("losses") or 0),
            ties=int(data.get("ties") or 0),
            points_for=float(data.get("points_for") or 0.0),
            points_against=float(data.get("points_against") or 0.0),
            owner=data.get("owner") or None,
            team_name=data.get("team_name"),
        )


@dataclass(frozen=True)
class WeeklyScoreRecord:
    """One team's score in one week. A missing opponent is allowed."""
    team_id: str
    week: int
    points: float
    opponent_team_id: Optional[str] = None


@dataclass(frozen=True)
class MatchupRecord:
    """A single weekly game between two teams."""
    week: int
    team1_id: str
    team1_points: float
    team2_id: str
    team2_points: float
    team1_name: Optional[str] = None
    team1_owner: Optional[str] = None
    team2_name: Optional[str] = None
    team2_owner: Optional[str] = None
    status: Optional[str] = None
    matchup_key: Optional[str] = None

    @property
    def key(self) -> str:
        return self.matchup_key or f"{self.team1_id}-{self.team2_id}"

    def to_weekly_scores(self) -> List[WeeklyScoreRecord]:
        """Expand into the two per-team weekly scores, opponents linked."""
        return [
            WeeklyScoreRecord(self.team1_id, self.week, self.team1_points, self.team2_id),
            WeeklyScoreRecord(self.team2_id, self.week, self.team2_points, self.team1_id),
        ]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MatchupRecord":
        return cls(
            week=int(data["week"]),
            team1_id=str(data["team1_id"]),
            team1_points=float(data.get("team1_points") or 0.0),
            team2_id=str(data["team2_id"]),
            team2_points=float(data.get("team2_points") or 0.0),
            team1_name=data.get("team1_name"),
            team1_owner=data.get("team1_owner"),
            team2_name=data.get("team2_name"),
            team2_owner=data.get("team2_owner"),
            status=data.get("status"),
            matchup_key=data.get("matchup_key"),
        )


# =============================================================================
# OUTPUT RECORDS
# =============================================================================

@dataclass(frozen=True)
class ScoreBreakdown:
    """Rounded SDS+ sub-metrics for one team."""
    pf_index_era: float
    all_play_win_pct: float
    regular_season_score: float
    weekly_ceiling_rate: float
    strength_of_schedule: float
    consistency_index: float
    postseason_bonus: float
    playoff_luck_diff: float
    # True when SoS fell back to the league-average APW
    sos_estimated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CompositeScore:
    """SDS+ result for one team in one season."""
    owner: str
    team_id: str
    score: float
    breakdown: ScoreBreakdown
    rank: int
    final_rank: int
    interpretation: Interpretation

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["interpretation"] = self.interpretation.value
        return data


@dataclass(frozen=True)
class SeasonSuccessScore:
    """PONIES score or POWER rating for one team."""
    owner: str
    team_id: str
    score: float
    breakdown: Dict[str, float]
    rank: int
    final_rank: int


@dataclass
class HeadToHeadRecord:
    """All-time record of one manager against one opponent."""
    manager: str
    opponent: str
    wins: int = 0
    losses: int = 0
    ties: int = 0
    points_for: float = 0.0
    points_against: float = 0.0

    @property
    def total_games(self) -> int:
        return self.wins + self.losses + self.ties

    def reversed(self) -> "HeadToHeadRecord":
        """The same record from the opponent's side."""
        return HeadToHeadRecord(
            manager=self.opponent,
            opponent=self.manager,
            wins=self.losses,
            losses=self.wins,
            ties=self.ties,
            points_for=self.points_against,
            points_against=self.points_for,
        )


@dataclass(frozen=True)
class Rivalry:
    """A head-to-head record ranked by how competitive it is."""
    manager1: str
    manager2: str
    record: HeadToHeadRecord
    competitiveness_score: float


@dataclass
class CacheEntry(Generic[T]):
    """A cached value and the time its (oldest) row was written."""
    value: T
    cached_at: Optional[datetime] = None
    rows: List[Dict[str, Any]] = field(default_factory=list)
