"""Report data access helpers shared by the report routes, service, and PDF jobs."""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models.assignment import Assignment
from ...models.profile import AccessLevel, Profile
from ...models.report import ReportData
from ...shared.utils import ensure_utc


def get_assignment_or_404(db: Session, assignment_id: str) -> Assignment:
    assignment = db.query(Assignment).filter(Assignment.id == assignment_id).first()
    if not assignment:
        raise HTTPException(status_code=404, detail="Assignment not found")
    return assignment


def require_completed(assignment: Assignment) -> None:
    if not assignment.completed:
        raise HTTPException(
            status_code=400,
            detail="Assignment must be completed before generating a report",
        )


def get_report_row(db: Session, assignment_id: str) -> Optional[ReportData]:
    return db.query(ReportData).filter(ReportData.assignment_id == assignment_id).first()


def get_or_create_report_row(db: Session, assignment_id: str) -> ReportData:
    row = get_report_row(db, assignment_id)
    if row is None:
        row = ReportData(assignment_id=assignment_id)
        db.add(row)
        db.flush()
    return row


def is_report_stale(row: Optional[ReportData], assignment: Assignment) -> bool:
    """Stored report is missing or was calculated before the assignment was (re)completed."""
    if row is None or not row.dimension_scores:
        return True
    completed_at = ensure_utc(assignment.completed_at)
    calculated_at = ensure_utc(row.calculated_at)
    if completed_at and calculated_at and calculated_at < completed_at:
        return True
    return False


def can_view_assignment(profile: Profile, assignment: Assignment) -> bool:
    """Owners and the rated person see their report; admins see reports within their client."""
    if profile.access_level == AccessLevel.SUPER_ADMIN:
        return True
    if assignment.user_id == profile.id or assignment.target_id == profile.id:
        return True
    if profile.access_level == AccessLevel.CLIENT_ADMIN:
        owner = assignment.user
        return owner is not None and owner.client_id is not None and owner.client_id == profile.client_id
    return False
