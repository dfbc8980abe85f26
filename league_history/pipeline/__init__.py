"""
Pipeline package.

Modules:
    season_metrics: Read-through cached season metrics service and CLI
"""

from league_history.pipeline.season_metrics import (
    HEAD_TO_HEAD_TTL,
    SeasonMetricsService,
)

__all__ = [
    "HEAD_TO_HEAD_TTL",
    "SeasonMetricsService",
]
