"""Answer and dimension scoring with a per-assignment score cache.

Leaf dimensions score as the mean of their scored answers. Parent dimensions
score as the mean of their children that have data. Results are cached in
``assignment_dimension_scores`` so reports and group norms never re-read raw
answers.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from ...models.assessment import Dimension, Field, FieldType
from ...models.assignment import Answer, Assignment
from ...models.report import AssignmentDimensionScore
from ...shared.utils import mean, utcnow

logger = logging.getLogger("talentpulse.scoring")

SCORED_FIELD_TYPES = (FieldType.MULTIPLE_CHOICE, FieldType.SLIDER)


def score_answer(field_type: str, value, anchors: Optional[list] = None) -> Optional[float]:
    """Numeric score for one answer, or None when the field type is not scored.

    Multiple choice answers store the selected anchor index; unparseable or
    out-of-range selections score 0.
    """
    if field_type == FieldType.MULTIPLE_CHOICE:
        try:
            index = int(str(value).strip())
            if index < 0:
                return 0.0
            return float((anchors or [])[index]["value"])
        except (ValueError, TypeError, IndexError, KeyError):
            return 0.0
    if field_type == FieldType.SLIDER:
        try:
            return float(str(value).strip())
        except (ValueError, TypeError):
            return 0.0
    return None


def _collect_leaf_scores(db: Session, assignment_id: str) -> Dict[str, List[float]]:
    rows = (
        db.query(Answer.value, Field.type, Field.anchors, Field.dimension_id)
        .join(Field, Answer.field_id == Field.id)
        .filter(
            Answer.assignment_id == assignment_id,
            Field.dimension_id.isnot(None),
            Field.type.in_(SCORED_FIELD_TYPES),
        )
        .all()
    )
    by_dimension: Dict[str, List[float]] = defaultdict(list)
    for value, field_type, anchors, dimension_id in rows:
        score = score_answer(field_type, value, anchors)
        if score is not None:
            by_dimension[dimension_id].append(score)
    return by_dimension


def _children_index(dimensions: Iterable[Dimension]) -> Dict[Optional[str], List[Dimension]]:
    index: Dict[Optional[str], List[Dimension]] = defaultdict(list)
    for dim in dimensions:
        index[dim.parent_id].append(dim)
    return index


def _score_tree(
    dimension_id: str,
    children: Dict[Optional[str], List[Dimension]],
    leaf_scores: Dict[str, List[float]],
    _seen: Optional[set] = None,
) -> Tuple[Optional[float], int]:
    seen = _seen if _seen is not None else set()
    if dimension_id in seen:
        # Cyclic parent links would recurse forever
        logger.warning("Dimension cycle detected at %s", dimension_id)
        return None, 0
    seen.add(dimension_id)

    kids = children.get(dimension_id) or []
    if not kids:
        values = leaf_scores.get(dimension_id) or []
        return mean(values), len(values)

    child_scores = []
    total_answers = 0
    for child in kids:
        score, count = _score_tree(child.id, children, leaf_scores, seen)
        if score is not None:
            child_scores.append(score)
        total_answers += count
    return mean(child_scores), total_answers


def calculate_dimension_score(db: Session, assignment_id: str, dimension: Dimension) -> Tuple[float, int]:
    """Return ``(avg_score, answer_count)`` for one dimension of an assignment.

    A dimension without any scored answers in its subtree scores 0 with an
    answer count of 0.
    """
    dimensions = db.query(Dimension).filter(Dimension.assessment_id == dimension.assessment_id).all()
    leaf_scores = _collect_leaf_scores(db, assignment_id)
    score, count = _score_tree(dimension.id, _children_index(dimensions), leaf_scores)
    return (score if score is not None else 0.0), count


def refresh_assignment_scores(db: Session, assignment: Assignment, commit: bool = True) -> Dict[str, float]:
    """Recompute and upsert cached scores for every dimension of the assignment's assessment."""
    dimensions = db.query(Dimension).filter(Dimension.assessment_id == assignment.assessment_id).all()
    if not dimensions:
        return {}

    children = _children_index(dimensions)
    leaf_scores = _collect_leaf_scores(db, assignment.id)
    existing = {
        row.dimension_id: row
        for row in db.query(AssignmentDimensionScore)
        .filter(AssignmentDimensionScore.assignment_id == assignment.id)
        .all()
    }

    now = utcnow()
    results: Dict[str, float] = {}
    for dim in dimensions:
        score, count = _score_tree(dim.id, children, leaf_scores)
        avg = round(score, 4) if score is not None else 0.0
        row = existing.get(dim.id)
        if row is None:
            row = AssignmentDimensionScore(assignment_id=assignment.id, dimension_id=dim.id)
            db.add(row)
        row.avg_score = avg
        row.answer_count = count
        row.calculated_at = now
        results[dim.id] = avg

    stale_ids = set(existing) - set(results)
    for dimension_id in stale_ids:
        db.delete(existing[dimension_id])

    if commit:
        db.commit()
    else:
        db.flush()
    logger.info(
        "Refreshed dimension scores assignment_id=%s dimensions=%d",
        assignment.id,
        len(results),
    )
    return results


def get_dimension_scores(
    db: Session,
    assignment_ids: Iterable[str],
    dimension_ids: Optional[Iterable[str]] = None,
    with_data_only: bool = True,
) -> List[AssignmentDimensionScore]:
    """Read cached scores. Rows without any scored answers are dropped by default."""
    ids = list(assignment_ids)
    if not ids:
        return []
    query = db.query(AssignmentDimensionScore).filter(AssignmentDimensionScore.assignment_id.in_(ids))
    if dimension_ids is not None:
        dim_ids = list(dimension_ids)
        if not dim_ids:
            return []
        query = query.filter(AssignmentDimensionScore.dimension_id.in_(dim_ids))
    if with_data_only:
        query = query.filter(AssignmentDimensionScore.answer_count > 0)
    return query.all()
