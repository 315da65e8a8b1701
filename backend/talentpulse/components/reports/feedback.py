"""Feedback library selection for leader/blocker reports."""

from __future__ import annotations

import logging
import random
from typing import List, Optional

from sqlalchemy.orm import Session

from ...models.feedback import FeedbackLibrary, FeedbackType
from ...schemas.report import FeedbackAssignment
from ...shared.utils import mean
from ..scoring import get_dimension_scores

logger = logging.getLogger("talentpulse.reports.feedback")


def _pick(entries: List[FeedbackLibrary], score: float, rng: random.Random) -> Optional[FeedbackLibrary]:
    eligible = [entry for entry in entries if entry.accepts(score)]
    if not eligible:
        return None
    return rng.choice(eligible)


def assign_feedback(
    db: Session,
    assignment_id: str,
    assessment_id: str,
    rng: Optional[random.Random] = None,
) -> List[FeedbackAssignment]:
    """Select library feedback for each scored dimension plus one assessment-level entry.

    Each dimension gets its ``overall`` entry when the score is inside the
    entry's range and one random eligible ``specific`` entry.
    """
    rng = rng or random.Random()
    scores = get_dimension_scores(db, [assignment_id])
    if not scores:
        return []

    library = db.query(FeedbackLibrary).filter(FeedbackLibrary.assessment_id == assessment_id).all()
    assigned: List[FeedbackAssignment] = []

    for row in scores:
        score = float(row.avg_score)
        overall_entries = [
            f for f in library if f.dimension_id == row.dimension_id and f.type == FeedbackType.OVERALL
        ]
        if overall_entries and overall_entries[0].accepts(score):
            entry = overall_entries[0]
            assigned.append(
                FeedbackAssignment(
                    dimension_id=row.dimension_id,
                    feedback_id=entry.id,
                    feedback_content=entry.feedback,
                    type=FeedbackType.OVERALL,
                )
            )

        specific = _pick(
            [f for f in library if f.dimension_id == row.dimension_id and f.type == FeedbackType.SPECIFIC],
            score,
            rng,
        )
        if specific is not None:
            assigned.append(
                FeedbackAssignment(
                    dimension_id=row.dimension_id,
                    feedback_id=specific.id,
                    feedback_content=specific.feedback,
                    type=FeedbackType.SPECIFIC,
                )
            )

    overall_score = mean(float(row.avg_score) for row in scores)
    assessment_level = _pick(
        [f for f in library if f.dimension_id is None and f.type == FeedbackType.OVERALL],
        overall_score,
        rng,
    )
    if assessment_level is not None:
        assigned.append(
            FeedbackAssignment(
                dimension_id=None,
                feedback_id=assessment_level.id,
                feedback_content=assessment_level.feedback,
                type=FeedbackType.OVERALL,
            )
        )

    logger.info("Assigned %d feedback entries assignment_id=%s", len(assigned), assignment_id)
    return assigned
