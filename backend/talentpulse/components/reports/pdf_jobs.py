"""Background PDF jobs: queue report exports, render them and store the result in S3."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional
from urllib.parse import quote

from sqlalchemy.orm import Session

from ...models.assignment import Assignment
from ...models.report import PdfStatus, ReportData
from ...platform.config import settings
from ...platform.request_context import get_request_id
from ...services.s3_service import build_report_pdf_key, upload_bytes
from ...shared.utils import new_uuid, utcnow
from .pdf_browser import export_pdf_from_url
from .pdf_document import render_report_pdf
from .repository import get_or_create_report_row, get_report_row
from .service import load_report_payload

logger = logging.getLogger("talentpulse.reports.pdf_jobs")

Renderer = Callable[[Session, Assignment], bytes]

_ACTIVE_STATUSES = (PdfStatus.QUEUED, PdfStatus.GENERATING, PdfStatus.READY)
_CLAIMABLE_STATUSES = (PdfStatus.NOT_REQUESTED, PdfStatus.QUEUED, PdfStatus.FAILED)


class PdfJobError(Exception):
    """Raised when a queued PDF cannot be rendered or stored."""


def build_report_view_url(assignment_id: str, service_role_token: Optional[str] = None) -> str:
    """URL of the HTML report view the headless browser prints."""
    url = f"{settings.report_view_base_url}/api/v1/reports/{assignment_id}/view"
    if service_role_token:
        url = f"{url}?service_role_token={quote(service_role_token, safe='')}"
    return url


def browser_renderer(db: Session, assignment: Assignment) -> bytes:
    """Print the report view as the service role."""
    url = build_report_view_url(assignment.id, service_role_token=settings.SERVICE_ROLE_KEY)
    return asyncio.run(export_pdf_from_url(url))


def document_renderer(db: Session, assignment: Assignment) -> bytes:
    return render_report_pdf(load_report_payload(db, assignment))


def default_renderer() -> Renderer:
    return browser_renderer if settings.PDF_BROWSER_ENABLED else document_renderer


def _dispatch(assignment_id: str, job_id: str) -> None:
    if settings.DISABLE_CELERY:
        return
    from ...tasks.report_tasks import generate_report_pdf

    generate_report_pdf.apply_async(
        args=[assignment_id],
        kwargs={"request_id": get_request_id()},
        task_id=job_id,
    )


def queue_pdf_exports(
    db: Session,
    assignment_ids: List[str],
    authorize: Optional[Callable[[Assignment], bool]] = None,
) -> Dict:
    """Mark each completed assignment's PDF as queued.

    Assignments already queued, generating or ready are skipped. Unknown,
    unauthorized and incomplete assignments are reported in ``errors`` and do
    not abort the batch.
    """
    queued: List[tuple] = []
    skipped = 0
    errors: List[str] = []

    assignments = {
        a.id: a for a in db.query(Assignment).filter(Assignment.id.in_(assignment_ids)).all()
    }
    try:
        for assignment_id in assignment_ids:
            assignment = assignments.get(assignment_id)
            if assignment is None:
                errors.append(f"{assignment_id[:8]}: not found")
                continue
            if authorize is not None and not authorize(assignment):
                errors.append(f"{assignment_id[:8]}: not authorized")
                continue
            if not assignment.completed:
                errors.append(f"{assignment_id[:8]}: assignment not completed")
                continue
            row = get_or_create_report_row(db, assignment_id)
            if row.pdf_status in _ACTIVE_STATUSES:
                skipped += 1
                continue
            row.pdf_status = PdfStatus.QUEUED
            row.pdf_job_id = new_uuid()
            row.pdf_last_error = None
            queued.append((assignment_id, row.pdf_job_id))
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to queue PDF exports")
        raise

    for assignment_id, job_id in queued:
        _dispatch(assignment_id, job_id)

    logger.info("Queued PDF exports queued=%d skipped=%d errors=%d", len(queued), skipped, len(errors))
    result: Dict = {"queued": len(queued), "skipped": skipped}
    if errors:
        result["errors"] = errors
    return result


def claim_pdf_job(db: Session, assignment_id: str) -> bool:
    """Move the row to ``generating`` unless another worker holds it or it is ready.

    The status check and the write are one UPDATE, so of two workers racing
    for the same row only one gets ``True``.
    """
    get_or_create_report_row(db, assignment_id)
    claimed = (
        db.query(ReportData)
        .filter(
            ReportData.assignment_id == assignment_id,
            ReportData.pdf_status.in_(_CLAIMABLE_STATUSES),
        )
        .update({ReportData.pdf_status: PdfStatus.GENERATING}, synchronize_session=False)
    )
    db.commit()
    return claimed == 1


def process_pdf_job(db: Session, assignment_id: str, renderer: Optional[Renderer] = None) -> Optional[ReportData]:
    """Render, upload and record the PDF for one assignment.

    Returns None without rendering when the job could not be claimed. On
    failure the row is marked ``failed`` with the error message and the
    exception is re-raised for the caller's retry policy.
    """
    renderer = renderer or default_renderer()
    assignment = db.query(Assignment).filter(Assignment.id == assignment_id).first()
    if assignment is None:
        raise PdfJobError(f"Assignment {assignment_id} not found")

    if not claim_pdf_job(db, assignment_id):
        logger.info("PDF job already claimed or ready assignment_id=%s", assignment_id)
        return None
    row = get_report_row(db, assignment_id)

    try:
        pdf_bytes = renderer(db, assignment)
        db.refresh(row)
        key = build_report_pdf_key(assignment_id, row.pdf_version or 1)
        if upload_bytes(pdf_bytes, key) is None:
            raise PdfJobError(f"Storage upload failed for {key}")
        row.pdf_status = PdfStatus.READY
        row.pdf_storage_path = key
        row.pdf_generated_at = utcnow()
        row.pdf_last_error = None
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.error("PDF job failed assignment_id=%s: %s", assignment_id, exc)
        failed = get_report_row(db, assignment_id)
        if failed is not None:
            failed.pdf_status = PdfStatus.FAILED
            failed.pdf_last_error = str(exc)
            db.commit()
        raise

    logger.info("PDF job completed assignment_id=%s path=%s", assignment_id, row.pdf_storage_path)
    return row


def process_queued_pdfs(db: Session, limit: Optional[int] = None, renderer: Optional[Renderer] = None) -> Dict:
    """Process the oldest queued PDF jobs. Failures are counted, not raised."""
    rows = (
        db.query(ReportData.assignment_id)
        .filter(ReportData.pdf_status == PdfStatus.QUEUED)
        .order_by(ReportData.updated_at.asc(), ReportData.created_at.asc())
        .limit(limit or settings.PDF_SWEEP_BATCH_SIZE)
        .all()
    )
    processed = 0
    failed = 0
    skipped = 0
    for (assignment_id,) in rows:
        try:
            row = process_pdf_job(db, assignment_id, renderer=renderer)
        except Exception:
            failed += 1
            continue
        if row is None:
            skipped += 1
        else:
            processed += 1
    if rows:
        logger.info("PDF sweep processed=%d failed=%d skipped=%d", processed, failed, skipped)
    return {"processed": processed, "failed": failed, "skipped": skipped}
