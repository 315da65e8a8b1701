"""Report orchestration: refresh scores, assign feedback, generate, template, persist."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models.assignment import Assignment
from ...models.report import PdfStatus, ReportData
from ...shared.utils import utcnow
from ..scoring import calculate_geonorms, geonorm_snapshot, refresh_assignment_scores
from .feedback import assign_feedback
from .generators import ReportGenerationError, generate_report
from .repository import get_or_create_report_row, get_report_row, is_report_stale, require_completed
from .templates import apply_template, get_report_template

logger = logging.getLogger("talentpulse.reports.service")


def _scoring_assignments(db: Session, assignment: Assignment) -> List[Assignment]:
    """Assignments whose cached scores feed this report."""
    if not assignment.assessment.is_360:
        return [assignment]
    target_id = assignment.target_id or assignment.user_id
    raters = (
        db.query(Assignment)
        .filter(
            Assignment.assessment_id == assignment.assessment_id,
            Assignment.completed.is_(True),
            (Assignment.target_id == target_id)
            | ((Assignment.target_id.is_(None)) & (Assignment.user_id == target_id)),
        )
        .all()
    )
    return raters or [assignment]


def refresh_report_scores(db: Session, assignment: Assignment) -> None:
    for scored in _scoring_assignments(db, assignment):
        refresh_assignment_scores(db, scored, commit=False)
    db.flush()


def _group_geonorm_snapshot(db: Session, report: Dict[str, Any]) -> Dict[str, dict] | None:
    group_id = report.get("group_id")
    if not group_id:
        return None
    return geonorm_snapshot(calculate_geonorms(db, group_id, report["assessment_id"]))


def _generate_and_store(db: Session, assignment: Assignment) -> Dict[str, Any]:
    refresh_report_scores(db, assignment)
    row = get_or_create_report_row(db, assignment.id)
    if row.dimension_scores:
        mark_pdf_stale(row)

    if not assignment.assessment.is_360 and not row.feedback_assigned:
        feedback = assign_feedback(db, assignment.id, assignment.assessment_id)
        row.feedback_assigned = [entry.model_dump() for entry in feedback]
        db.flush()

    report_model = generate_report(db, assignment)
    report = apply_template(
        report_model.model_dump(mode="json"),
        get_report_template(db, assignment.assessment_id),
    )

    row.overall_score = report_model.overall_score
    row.dimension_scores = report
    row.geonorm_data = _group_geonorm_snapshot(db, report)
    row.calculated_at = utcnow()
    return report


def build_report(db: Session, assignment: Assignment) -> Dict[str, Any]:
    """Regenerate and persist the report for a completed assignment.

    Configuration errors (missing dimensions) map to 400, everything else to 500.
    """
    require_completed(assignment)
    try:
        report = _generate_and_store(db, assignment)
        db.commit()
    except ReportGenerationError as exc:
        db.rollback()
        message = str(exc)
        logger.warning("Report generation rejected assignment_id=%s: %s", assignment.id, message)
        if "dimensions" in message.lower():
            raise HTTPException(status_code=400, detail=message)
        raise HTTPException(status_code=500, detail=f"Failed to generate report: {message}")
    except HTTPException:
        db.rollback()
        raise
    except Exception as exc:
        db.rollback()
        logger.exception("Failed to generate report assignment_id=%s", assignment.id)
        raise HTTPException(status_code=500, detail=f"Failed to generate report: {exc}")

    logger.info("Report generated assignment_id=%s", assignment.id)
    return report


def get_report(db: Session, assignment: Assignment) -> Dict[str, Any]:
    """Return the stored report, regenerating it when missing or stale."""
    require_completed(assignment)
    row = get_report_row(db, assignment.id)
    if is_report_stale(row, assignment):
        return {"report": build_report(db, assignment), "cached": False}
    return {"report": row.dimension_scores, "cached": True}


def load_report_payload(db: Session, assignment: Assignment) -> Dict[str, Any]:
    return get_report(db, assignment)["report"]


def mark_pdf_stale(row: ReportData) -> None:
    """A regenerated report invalidates any stored PDF."""
    if row.pdf_status == PdfStatus.READY:
        row.pdf_status = PdfStatus.NOT_REQUESTED
        row.pdf_version = (row.pdf_version or 1) + 1
