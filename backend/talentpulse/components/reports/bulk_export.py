"""Bulk export: render many reports in one or more formats.

A single resulting file is returned as-is; anything more is packed into a ZIP.
PDFs come from the ReportLab renderer so a batch never starts a browser.
"""

from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass
from typing import Callable, List, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models.assignment import Assignment
from ...shared.utils import utcnow
from .exports import (
    build_csv_filename,
    build_excel_filename,
    build_pdf_filename,
    render_report_csv,
    render_report_excel,
)
from .pdf_document import render_report_pdf
from .service import load_report_payload

logger = logging.getLogger("talentpulse.reports.bulk_export")

EXPORT_FORMATS = ("pdf", "excel", "csv")

PDF_MEDIA_TYPE = "application/pdf"
EXCEL_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MEDIA_TYPE = "text/csv"
ZIP_MEDIA_TYPE = "application/zip"


@dataclass
class ExportFile:
    filename: str
    media_type: str
    content: bytes


def _render(report: dict, assignment_id: str, fmt: str) -> ExportFile:
    title = report.get("assessment_title")
    if fmt == "pdf":
        return ExportFile(build_pdf_filename(title, assignment_id), PDF_MEDIA_TYPE, render_report_pdf(report))
    if fmt == "excel":
        return ExportFile(build_excel_filename(title, assignment_id), EXCEL_MEDIA_TYPE, render_report_excel(report))
    if fmt == "csv":
        return ExportFile(build_csv_filename(title, assignment_id), CSV_MEDIA_TYPE, render_report_csv(report).encode("utf-8"))
    raise ValueError(f"Unsupported export format: {fmt}")


def _zip(files: List[ExportFile]) -> ExportFile:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
        for item in files:
            archive.writestr(item.filename, item.content)
    filename = f"reports_export_{utcnow().date().isoformat()}.zip"
    return ExportFile(filename, ZIP_MEDIA_TYPE, buffer.getvalue())


def export_reports(
    db: Session,
    assignment_ids: List[str],
    fmt: str = "all",
    authorize: Optional[Callable[[Assignment], bool]] = None,
) -> ExportFile:
    """Export every completed, viewable assignment in ``assignment_ids``.

    Raises 404 when none qualify and 500 when every report failed to render.
    A report that fails is logged and left out of the batch.
    """
    formats = EXPORT_FORMATS if fmt == "all" else (fmt,)
    assignments = (
        db.query(Assignment)
        .filter(Assignment.id.in_(assignment_ids), Assignment.completed.is_(True))
        .all()
    )
    if authorize is not None:
        assignments = [a for a in assignments if authorize(a)]
    if not assignments:
        raise HTTPException(status_code=404, detail="No completed assignments found")

    # Keep request order
    order = {assignment_id: i for i, assignment_id in enumerate(assignment_ids)}
    assignments.sort(key=lambda a: order.get(a.id, len(order)))

    files: List[ExportFile] = []
    for assignment in assignments:
        try:
            report = load_report_payload(db, assignment)
            rendered = [_render(report, assignment.id, f) for f in formats]
        except Exception as exc:
            logger.error("Bulk export skipped assignment_id=%s: %s", assignment.id, exc)
            continue
        files.extend(rendered)

    if not files:
        raise HTTPException(status_code=500, detail="Failed to generate any reports")

    logger.info("Bulk export reports=%d files=%d format=%s", len(assignments), len(files), fmt)
    if len(files) == 1:
        return files[0]
    return _zip(files)
