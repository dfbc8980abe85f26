"""
Season Metrics Module

Scoring engines that turn a season's standings (and weekly scores, where
available) into ranked, comparable per-team metrics.

Key Components:
    - sds_plus: SDS+ composite dominance score
    - season_success: PONIES score and POWER rating
"""

from league_history.metrics.sds_plus import (
    SDS_PLUS_CONFIG,
    compute_composite_scores,
    sds_plus_info,
)
from league_history.metrics.season_success import (
    calculate_ponies_score,
    calculate_power_rating,
    metric_info,
)

__all__ = [
    "SDS_PLUS_CONFIG",
    "compute_composite_scores",
    "sds_plus_info",
    "calculate_ponies_score",
    "calculate_power_rating",
    "metric_info",
]
