from .benchmarks import get_industry_benchmarks, is_improvement_needed, resolve_industry_id
from .dimension_scores import (
    calculate_dimension_score,
    get_dimension_scores,
    refresh_assignment_scores,
    score_answer,
)
from .geonorms import calculate_geonorms, geonorm_snapshot

__all__ = [
    "calculate_dimension_score",
    "calculate_geonorms",
    "geonorm_snapshot",
    "get_dimension_scores",
    "get_industry_benchmarks",
    "is_improvement_needed",
    "refresh_assignment_scores",
    "resolve_industry_id",
    "score_answer",
]
