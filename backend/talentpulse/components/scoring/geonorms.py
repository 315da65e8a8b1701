"""Group norms: mean dimension scores across a group's completed assignments."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ...models.assignment import Assignment
from ...models.group import GroupMember
from ...schemas.report import Geonorm
from .dimension_scores import get_dimension_scores

logger = logging.getLogger("talentpulse.scoring.geonorms")


def calculate_geonorms(
    db: Session,
    group_id: str,
    assessment_id: str,
    dimension_ids: Optional[Iterable[str]] = None,
) -> Dict[str, Geonorm]:
    """Return ``{dimension_id: Geonorm}`` for the group's members.

    Dimensions nobody in the group has data for are absent from the map rather
    than reported as zero.
    """
    member_ids = [
        row.profile_id
        for row in db.query(GroupMember.profile_id).filter(GroupMember.group_id == group_id).all()
    ]
    if not member_ids:
        return {}

    assignment_ids = [
        row.id
        for row in db.query(Assignment.id)
        .filter(
            Assignment.user_id.in_(member_ids),
            Assignment.assessment_id == assessment_id,
            Assignment.completed.is_(True),
        )
        .all()
    ]
    if not assignment_ids:
        return {}

    scores = get_dimension_scores(db, assignment_ids, dimension_ids)
    by_dimension: Dict[str, List[float]] = defaultdict(list)
    for row in scores:
        by_dimension[row.dimension_id].append(float(row.avg_score))

    geonorms = {
        dimension_id: Geonorm(avg_score=sum(values) / len(values), participant_count=len(values))
        for dimension_id, values in by_dimension.items()
    }
    logger.debug(
        "Calculated geonorms group_id=%s assessment_id=%s dimensions=%d",
        group_id,
        assessment_id,
        len(geonorms),
    )
    return geonorms


def geonorm_snapshot(geonorms: Dict[str, Geonorm]) -> Dict[str, dict]:
    """JSON-serialisable form stored on ``report_data.geonorm_data``."""
    return {dimension_id: norm.model_dump() for dimension_id, norm in geonorms.items()}
