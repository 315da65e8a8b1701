"""Report endpoints: generate, read, view, export (PDF/CSV/Excel), bulk export and the PDF queue."""
import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from sqlalchemy.orm import Session

from ...components.reports.bulk_export import EXCEL_MEDIA_TYPE, export_reports
from ...components.reports.exports import (
    build_csv_filename,
    build_excel_filename,
    build_pdf_filename,
    render_report_csv,
    render_report_excel,
)
from ...components.reports.html_view import render_report_html
from ...components.reports.pdf_browser import export_pdf_from_url
from ...components.reports.pdf_document import render_report_pdf
from ...components.reports.pdf_jobs import build_report_view_url, queue_pdf_exports
from ...components.reports.presentation import build_report_view
from ...components.reports.repository import get_assignment_or_404, get_report_row, require_completed
from ...components.reports.service import build_report, get_report, load_report_payload
from ...components.scoring import get_dimension_scores
from ...deps import ReportActor, get_report_actor, get_view_actor, require_view_access
from ...models.report import PdfStatus
from ...platform.config import settings
from ...platform.database import get_db
from ...schemas.report import (
    BulkExportRequest,
    DimensionScoreResponse,
    DimensionScoresResponse,
    GenerateReportResponse,
    PdfQueueRequest,
    PdfQueueResponse,
    PdfStatusResponse,
    PdfUrlResponse,
    ReportResponse,
)
from ...services.s3_service import generate_presigned_url

logger = logging.getLogger("talentpulse.api.reports")

router = APIRouter(prefix="/reports", tags=["Reports"])


def _load_viewable(db: Session, assignment_id: str, actor: ReportActor):
    assignment = get_assignment_or_404(db, assignment_id)
    require_view_access(actor, assignment)
    return assignment


@router.post("/generate/{assignment_id}", response_model=GenerateReportResponse)
def generate_report_endpoint(
    assignment_id: str,
    db: Session = Depends(get_db),
    actor: ReportActor = Depends(get_report_actor),
):
    """Recalculate scores and regenerate the stored report."""
    assignment = _load_viewable(db, assignment_id, actor)
    return GenerateReportResponse(success=True, report=build_report(db, assignment))


@router.get("/scores/{assignment_id}", response_model=DimensionScoresResponse)
def get_scores(
    assignment_id: str,
    db: Session = Depends(get_db),
    actor: ReportActor = Depends(get_report_actor),
):
    """Cached dimension scores for one assignment."""
    assignment = _load_viewable(db, assignment_id, actor)
    rows = get_dimension_scores(db, [assignment.id], with_data_only=False)
    scores = [
        DimensionScoreResponse(
            dimension_id=row.dimension_id,
            dimension_name=row.dimension.name,
            dimension_code=row.dimension.code,
            parent_id=row.dimension.parent_id,
            avg_score=row.avg_score,
            answer_count=row.answer_count,
            calculated_at=row.calculated_at,
        )
        for row in sorted(rows, key=lambda r: r.dimension.name)
    ]
    return DimensionScoresResponse(assignment_id=assignment.id, scores=scores)


@router.post("/pdf/queue", response_model=PdfQueueResponse, response_model_exclude_none=True)
def queue_pdfs(
    data: PdfQueueRequest,
    db: Session = Depends(get_db),
    actor: ReportActor = Depends(get_report_actor),
):
    """Queue PDF generation for many assignments. Idempotent for queued/ready reports."""
    try:
        result = queue_pdf_exports(db, data.assignment_ids, authorize=actor.can_view)
    except HTTPException:
        raise
    except Exception as exc:
        return JSONResponse(status_code=500, content={"error": "Failed to queue PDFs", "details": str(exc)})
    return PdfQueueResponse(**result)


@router.post("/bulk-export")
def bulk_export(
    data: BulkExportRequest,
    db: Session = Depends(get_db),
    actor: ReportActor = Depends(get_report_actor),
):
    """Export many reports at once; more than one file comes back as a ZIP."""
    try:
        export = export_reports(db, data.assignment_ids, data.format, authorize=actor.can_view)
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Bulk export failed")
        return JSONResponse(status_code=500, content={"error": "Failed to create bulk export", "details": str(exc)})
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.get("/{assignment_id}", response_model=ReportResponse)
def get_report_endpoint(
    assignment_id: str,
    db: Session = Depends(get_db),
    actor: ReportActor = Depends(get_report_actor),
):
    assignment = _load_viewable(db, assignment_id, actor)
    return ReportResponse(**get_report(db, assignment))


@router.get("/{assignment_id}/view", response_class=HTMLResponse)
def view_report(
    assignment_id: str,
    db: Session = Depends(get_db),
    actor: ReportActor = Depends(get_view_actor),
):
    """Printable HTML report, one ``.page-container`` per page."""
    assignment = _load_viewable(db, assignment_id, actor)
    require_completed(assignment)
    report = load_report_payload(db, assignment)
    return HTMLResponse(content=render_report_html(build_report_view(report)))


@router.get("/{assignment_id}/pdf/status", response_model=PdfStatusResponse)
def get_pdf_status(
    assignment_id: str,
    db: Session = Depends(get_db),
    actor: ReportActor = Depends(get_report_actor),
):
    assignment = _load_viewable(db, assignment_id, actor)
    row = get_report_row(db, assignment.id)
    if row is None:
        return PdfStatusResponse(
            assignment_id=assignment.id,
            pdf_status=PdfStatus.NOT_REQUESTED.value,
            pdf_version=1,
        )
    return PdfStatusResponse(
        assignment_id=assignment.id,
        pdf_status=PdfStatus(row.pdf_status).value,
        pdf_version=row.pdf_version or 1,
        pdf_generated_at=row.pdf_generated_at,
        pdf_last_error=row.pdf_last_error,
        pdf_job_id=row.pdf_job_id,
        pdf_storage_path=row.pdf_storage_path,
    )


@router.get("/{assignment_id}/pdf/url", response_model=PdfUrlResponse)
def get_pdf_url(
    assignment_id: str,
    download: bool = Query(False),
    db: Session = Depends(get_db),
    actor: ReportActor = Depends(get_report_actor),
):
    """Presigned URL of the stored PDF; ``download=true`` redirects to it instead."""
    assignment = _load_viewable(db, assignment_id, actor)
    row = get_report_row(db, assignment.id)
    if row is None:
        raise HTTPException(status_code=404, detail="Report data not found")
    if row.pdf_status != PdfStatus.READY or not row.pdf_storage_path:
        return JSONResponse(
            status_code=404,
            content={"error": "PDF not ready", "status": PdfStatus(row.pdf_status).value},
        )

    url = generate_presigned_url(row.pdf_storage_path)
    if not url:
        return JSONResponse(status_code=500, content={"error": "Failed to generate signed URL"})
    if download:
        return RedirectResponse(url, status_code=307)
    return PdfUrlResponse(url=url)


def _browser_cookies(request: Request, actor: ReportActor) -> dict:
    cookies = dict(request.cookies)
    if actor.token and actor.token_from_bearer and not actor.service_role:
        cookies[settings.SESSION_COOKIE_NAME] = actor.token
    return cookies


@router.get("/{assignment_id}/export/pdf")
async def export_pdf(
    assignment_id: str,
    request: Request,
    engine: Literal["browser", "document"] = Query("browser"),
    download: bool = Query(False),
    db: Session = Depends(get_db),
    actor: ReportActor = Depends(get_report_actor),
):
    """Export the report as PDF, redirecting to the stored copy when one is ready."""
    assignment = _load_viewable(db, assignment_id, actor)
    require_completed(assignment)

    row = get_report_row(db, assignment.id)
    if row is not None and row.pdf_status == PdfStatus.READY and row.pdf_storage_path:
        url = generate_presigned_url(row.pdf_storage_path)
        if url:
            return RedirectResponse(url, status_code=307)

    try:
        report = await run_in_threadpool(load_report_payload, db, assignment)
        if engine == "browser" and settings.PDF_BROWSER_ENABLED:
            view_url = build_report_view_url(
                assignment.id,
                service_role_token=actor.token if actor.service_role else None,
            )
            pdf_bytes = await export_pdf_from_url(view_url, _browser_cookies(request, actor))
        else:
            pdf_bytes = await run_in_threadpool(render_report_pdf, report)
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("PDF export failed assignment_id=%s engine=%s", assignment.id, engine)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to export PDF", "details": str(exc)},
        )

    filename = build_pdf_filename(report.get("assessment_title"), assignment.id)
    disposition = "attachment" if download else "inline"
    logger.info("Exported PDF assignment_id=%s engine=%s bytes=%d", assignment.id, engine, len(pdf_bytes))
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'{disposition}; filename="{filename}"'},
    )


@router.get("/{assignment_id}/export/csv")
def export_csv(
    assignment_id: str,
    db: Session = Depends(get_db),
    actor: ReportActor = Depends(get_report_actor),
):
    assignment = _load_viewable(db, assignment_id, actor)
    require_completed(assignment)
    try:
        report = load_report_payload(db, assignment)
        content = render_report_csv(report)
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("CSV export failed assignment_id=%s", assignment.id)
        return JSONResponse(status_code=500, content={"error": "Failed to export CSV", "details": str(exc)})

    filename = build_csv_filename(report.get("assessment_title"), assignment.id)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{assignment_id}/export/excel")
def export_excel(
    assignment_id: str,
    db: Session = Depends(get_db),
    actor: ReportActor = Depends(get_report_actor),
):
    assignment = _load_viewable(db, assignment_id, actor)
    require_completed(assignment)
    try:
        report = load_report_payload(db, assignment)
        content = render_report_excel(report)
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Excel export failed assignment_id=%s", assignment.id)
        return JSONResponse(status_code=500, content={"error": "Failed to export Excel", "details": str(exc)})

    filename = build_excel_filename(report.get("assessment_title"), assignment.id)
    return Response(
        content=content,
        media_type=EXCEL_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
