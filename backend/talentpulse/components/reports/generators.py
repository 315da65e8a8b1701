"""Report builders for 360 and leader/blocker assessments.

Both builders read cached dimension scores only; callers refresh the cache
(``refresh_assignment_scores``) before generating.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ...models.assessment import Assessment, Dimension, Field, FieldType
from ...models.assignment import Answer, Assignment
from ...models.group import Group, GroupMember
from ...models.profile import Profile
from ...models.report import ReportData
from ...schemas.report import (
    DimensionReport360,
    DimensionReportLeaderBlocker,
    ParticipantResponseSummary,
    RaterBreakdown,
    Report360,
    ReportLeaderBlocker,
)
from ...shared.utils import mean, utcnow
from ..scoring import (
    calculate_geonorms,
    get_dimension_scores,
    get_industry_benchmarks,
    is_improvement_needed,
    resolve_industry_id,
)

logger = logging.getLogger("talentpulse.reports")

RATER_TYPES = ("peer", "direct_report", "supervisor", "self", "other")

_RATER_ALIASES = {
    "peer": "peer",
    "colleague": "peer",
    "directreport": "direct_report",
    "subordinate": "direct_report",
    "supervisor": "supervisor",
    "manager": "supervisor",
    "boss": "supervisor",
    "self": "self",
}


class ReportGenerationError(Exception):
    """Raised when a report cannot be built from the stored data."""


def normalize_rater_type(role: Optional[str]) -> str:
    key = (role or "").strip().lower().replace("_", "").replace("-", "").replace(" ", "")
    return _RATER_ALIASES.get(key, "other")


def _load_assignment(db: Session, assignment_id: str) -> Assignment:
    assignment = db.query(Assignment).filter(Assignment.id == assignment_id).first()
    if not assignment:
        raise ReportGenerationError("Assignment not found")
    return assignment


def get_top_level_dimensions(db: Session, assessment_id: str) -> List[Dimension]:
    """Top-level dimensions ordered by name. Raises when none are configured."""
    dimensions = (
        db.query(Dimension)
        .filter(Dimension.assessment_id == assessment_id, Dimension.parent_id.is_(None))
        .order_by(Dimension.name.asc())
        .all()
    )
    if dimensions:
        return dimensions
    any_dimension = db.query(Dimension.id).filter(Dimension.assessment_id == assessment_id).first()
    if any_dimension is None:
        raise ReportGenerationError(
            "This assessment has no dimensions configured. "
            "Please add dimensions to the assessment before generating a report."
        )
    raise ReportGenerationError(
        "This assessment has dimensions but no top-level (parent) dimensions. "
        "Reports require at least one top-level dimension."
    )


def _text_feedback_by_dimension(db: Session, assignment_ids: List[str]) -> Dict[Optional[str], List[str]]:
    if not assignment_ids:
        return {}
    rows = (
        db.query(Answer.value, Field.dimension_id)
        .join(Field, Answer.field_id == Field.id)
        .filter(Answer.assignment_id.in_(assignment_ids), Field.type == FieldType.TEXT_INPUT)
        .order_by(Answer.created_at.asc())
        .all()
    )
    feedback: Dict[Optional[str], List[str]] = defaultdict(list)
    for value, dimension_id in rows:
        text = (value or "").strip()
        if text:
            feedback[dimension_id].append(text)
    return feedback


def _subtree_ids(db: Session, assessment_id: str, root_ids: List[str]) -> Dict[str, str]:
    """Map every dimension id to the top-level dimension it rolls up to."""
    all_dims = db.query(Dimension.id, Dimension.parent_id).filter(Dimension.assessment_id == assessment_id).all()
    parents = {dim_id: parent_id for dim_id, parent_id in all_dims}
    roots = set(root_ids)
    mapping: Dict[str, str] = {}
    for dim_id in parents:
        current, hops = dim_id, 0
        while current is not None and current not in roots and hops <= len(parents):
            current = parents.get(current)
            hops += 1
        if current in roots:
            mapping[dim_id] = current
    return mapping


def generate_360_report(db: Session, assignment_id: str) -> Report360:
    """Aggregate every completed rater assignment for the target into one 360 report."""
    assignment = _load_assignment(db, assignment_id)
    assessment: Assessment = assignment.assessment
    target_id = assignment.target_id or assignment.user_id
    target = db.query(Profile).filter(Profile.id == target_id).first()

    group = db.query(Group).filter(Group.target_id == target_id).order_by(Group.created_at.asc()).first()

    all_target_assignments = (
        db.query(Assignment)
        .filter(Assignment.assessment_id == assessment.id)
        .filter((Assignment.target_id == target_id) | ((Assignment.target_id.is_(None)) & (Assignment.user_id == target_id)))
        .all()
    )
    rater_assignments = [a for a in all_target_assignments if a.completed]
    if not rater_assignments:
        raise ReportGenerationError("No completed assignments found for this target")

    dimensions = get_top_level_dimensions(db, assessment.id)
    dimension_ids = [d.id for d in dimensions]

    roles: Dict[str, str] = {}
    if group is not None:
        roles = {
            m.profile_id: m.role
            for m in db.query(GroupMember).filter(GroupMember.group_id == group.id).all()
        }
    rater_type_by_assignment = {}
    for rater in rater_assignments:
        if rater.user_id == target_id:
            rater_type_by_assignment[rater.id] = "self"
        else:
            rater_type_by_assignment[rater.id] = normalize_rater_type(roles.get(rater.user_id))

    scores = get_dimension_scores(db, [a.id for a in rater_assignments], dimension_ids)
    scores_by_dimension: Dict[str, List] = defaultdict(list)
    for row in scores:
        scores_by_dimension[row.dimension_id].append(row)

    benchmarks = get_industry_benchmarks(db, dimension_ids, resolve_industry_id(target))
    geonorms = calculate_geonorms(db, group.id, assessment.id, dimension_ids) if group else {}

    raw_feedback = _text_feedback_by_dimension(db, [a.id for a in rater_assignments])
    rollup = _subtree_ids(db, assessment.id, dimension_ids)
    feedback_by_root: Dict[str, List[str]] = defaultdict(list)
    for dimension_id, texts in raw_feedback.items():
        root = rollup.get(dimension_id) if dimension_id else None
        if root:
            feedback_by_root[root].extend(texts)

    reports: List[DimensionReport360] = []
    for dimension in dimensions:
        rows = scores_by_dimension.get(dimension.id) or []
        if not rows:
            continue
        all_scores = [float(r.avg_score) for r in rows]
        by_type: Dict[str, List[float]] = defaultdict(list)
        for r in rows:
            by_type[rater_type_by_assignment.get(r.assignment_id, "other")].append(float(r.avg_score))

        overall = mean(all_scores)
        benchmark = benchmarks.get(dimension.id)
        geonorm = geonorms.get(dimension.id)
        reports.append(
            DimensionReport360(
                dimension_id=dimension.id,
                dimension_name=dimension.name,
                dimension_code=dimension.code,
                overall_score=overall,
                rater_breakdown=RaterBreakdown(
                    **{rater_type: mean(by_type.get(rater_type, [])) for rater_type in RATER_TYPES},
                    all_raters=overall,
                ),
                industry_benchmark=benchmark,
                geonorm=geonorm.avg_score if geonorm else None,
                geonorm_participant_count=geonorm.participant_count if geonorm else 0,
                improvement_needed=is_improvement_needed(overall, benchmark, geonorm),
                text_feedback=feedback_by_root.get(dimension.id, []),
                definition=dimension.definition,
            )
        )

    overall_score = mean(r.overall_score for r in reports) or 0.0
    completed_count = len(rater_assignments)
    total_count = len(all_target_assignments)
    client = (target.client if target is not None else None) or assessment.client

    logger.info(
        "Generated 360 report assignment_id=%s target_id=%s raters=%d dimensions=%d",
        assignment_id,
        target_id,
        completed_count,
        len(reports),
    )
    return Report360(
        assignment_id=assignment.id,
        target_id=target_id,
        target_name=(target.name if target else None) or "Unknown",
        target_email=(target.email if target else None) or "",
        assessment_id=assessment.id,
        assessment_title=assessment.title or "Unknown Assessment",
        group_id=group.id if group else None,
        group_name=group.name if group else None,
        client_name=client.name if client else None,
        overall_score=overall_score,
        dimensions=reports,
        generated_at=utcnow(),
        partial=completed_count < total_count,
        participant_response_summary=ParticipantResponseSummary(completed=completed_count, total=total_count),
    )


def generate_leader_blocker_report(db: Session, assignment_id: str) -> ReportLeaderBlocker:
    """Build a single-respondent report with feedback from the assigned library entries."""
    assignment = _load_assignment(db, assignment_id)
    assessment: Assessment = assignment.assessment
    if assessment.is_360:
        raise ReportGenerationError("This is a 360 assessment. Use generate_360_report instead.")

    user: Optional[Profile] = assignment.user
    membership = (
        db.query(GroupMember)
        .filter(GroupMember.profile_id == assignment.user_id)
        .order_by(GroupMember.created_at.asc())
        .first()
    )
    group = membership.group if membership else None

    dimensions = get_top_level_dimensions(db, assessment.id)
    dimension_ids = [d.id for d in dimensions]

    scores = {row.dimension_id: row for row in get_dimension_scores(db, [assignment.id], dimension_ids)}
    benchmarks = get_industry_benchmarks(db, dimension_ids, resolve_industry_id(user))
    geonorms = calculate_geonorms(db, group.id, assessment.id, dimension_ids) if group else {}

    report_row = db.query(ReportData).filter(ReportData.assignment_id == assignment.id).first()
    assigned = (report_row.feedback_assigned if report_row else None) or []

    def _find_feedback(dimension_id: Optional[str], feedback_type: str) -> Optional[dict]:
        for entry in assigned:
            if entry.get("dimension_id") == dimension_id and entry.get("type") == feedback_type:
                return entry
        return None

    reports: List[DimensionReportLeaderBlocker] = []
    for dimension in dimensions:
        row = scores.get(dimension.id)
        if row is None:
            continue
        target_score = float(row.avg_score)
        benchmark = benchmarks.get(dimension.id)
        geonorm = geonorms.get(dimension.id)
        specific = _find_feedback(dimension.id, "specific")
        overall_fb = _find_feedback(dimension.id, "overall")
        reports.append(
            DimensionReportLeaderBlocker(
                dimension_id=dimension.id,
                dimension_name=dimension.name,
                dimension_code=dimension.code,
                target_score=target_score,
                industry_benchmark=benchmark,
                geonorm=geonorm.avg_score if geonorm else None,
                geonorm_participant_count=geonorm.participant_count if geonorm else 0,
                improvement_needed=is_improvement_needed(target_score, benchmark, geonorm),
                specific_feedback=specific.get("feedback_content") if specific else None,
                specific_feedback_id=specific.get("feedback_id") if specific else None,
                overall_feedback=overall_fb.get("feedback_content") if overall_fb else None,
                overall_feedback_id=overall_fb.get("feedback_id") if overall_fb else None,
                definition=dimension.definition,
            )
        )

    overall_feedback = _find_feedback(None, "overall")
    client = (user.client if user is not None else None) or assessment.client

    logger.info(
        "Generated leader/blocker report assignment_id=%s dimensions=%d",
        assignment_id,
        len(reports),
    )
    return ReportLeaderBlocker(
        assignment_id=assignment.id,
        user_id=assignment.user_id,
        user_name=(user.name if user else None) or "Unknown",
        user_email=(user.email if user else None) or "",
        assessment_id=assessment.id,
        assessment_title=assessment.title or "Unknown Assessment",
        group_id=group.id if group else None,
        group_name=group.name if group else None,
        client_name=client.name if client else None,
        overall_score=mean(r.target_score for r in reports) or 0.0,
        dimensions=reports,
        overall_feedback=overall_feedback.get("feedback_content") if overall_feedback else None,
        overall_feedback_id=overall_feedback.get("feedback_id") if overall_feedback else None,
        generated_at=utcnow(),
    )


def generate_report(db: Session, assignment: Assignment) -> Report360 | ReportLeaderBlocker:
    if assignment.assessment.is_360:
        return generate_360_report(db, assignment.id)
    return generate_leader_blocker_report(db, assignment.id)
