"""Industry benchmark lookup and the improvement flag."""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from ...models.benchmark import Benchmark
from ...models.profile import Profile
from ...platform.config import settings
from ...schemas.report import Geonorm


def resolve_industry_id(profile: Optional[Profile]) -> Optional[str]:
    """Industry of the rated person, falling back to their client's industry."""
    if profile is None:
        return None
    if profile.industry_id:
        return profile.industry_id
    if profile.client is not None:
        return profile.client.industry_id
    return None


def get_industry_benchmarks(
    db: Session,
    dimension_ids: Iterable[str],
    industry_id: Optional[str],
) -> Dict[str, float]:
    """Return ``{dimension_id: value}`` for one industry. Unknown industry yields no benchmarks."""
    ids = list(dimension_ids)
    if not ids or not industry_id:
        return {}
    rows = (
        db.query(Benchmark.dimension_id, Benchmark.value)
        .filter(Benchmark.dimension_id.in_(ids), Benchmark.industry_id == industry_id)
        .all()
    )
    return {dimension_id: float(value) for dimension_id, value in rows}


def is_improvement_needed(
    score: Optional[float],
    benchmark: Optional[float],
    geonorm: Optional[Geonorm | float],
    threshold: Optional[float] = None,
) -> bool:
    """True when the score falls below either comparator by more than the threshold."""
    if score is None:
        return False
    margin = settings.IMPROVEMENT_THRESHOLD if threshold is None else threshold
    if benchmark is not None and score < benchmark - margin:
        return True
    norm_value = geonorm.avg_score if isinstance(geonorm, Geonorm) else geonorm
    if norm_value is not None and score < norm_value - margin:
        return True
    return False
