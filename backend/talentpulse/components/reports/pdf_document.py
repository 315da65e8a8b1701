"""Declarative PDF renderer: builds the report directly with ReportLab Platypus.

This path needs no browser. The output follows the HTML view's theme and page
structure (cover, one page per dimension, overall feedback) without being
pixel-identical to it.
"""

from __future__ import annotations

import logging
from html import escape
from io import BytesIO
from typing import Any, Dict, List

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ...platform.brand import BRAND_NAME
from .presentation import DimensionView, ReportView, build_report_view, format_score

logger = logging.getLogger("talentpulse.reports.pdf_document")


def _p(text: Any) -> str:
    return escape(str(text), quote=False)


def _build_styles(palette: Dict[str, str]) -> dict:
    base = getSampleStyleSheet()
    primary = colors.HexColor(palette["primary"])
    dark = colors.HexColor(palette["dark"])
    return {
        "title": ParagraphStyle(
            "ReportTitle",
            parent=base["Title"],
            fontSize=24,
            leading=30,
            textColor=dark,
            alignment=TA_LEFT,
            spaceAfter=6,
        ),
        "subtitle": ParagraphStyle(
            "ReportSubtitle",
            parent=base["Normal"],
            fontSize=13,
            textColor=dark,
            spaceAfter=24,
        ),
        "score": ParagraphStyle(
            "OverallScore",
            parent=base["Normal"],
            fontName="Helvetica-Bold",
            fontSize=48,
            leading=56,
            textColor=primary,
            alignment=TA_CENTER,
        ),
        "score_label": ParagraphStyle(
            "OverallScoreLabel",
            parent=base["Normal"],
            fontSize=11,
            textColor=dark,
            alignment=TA_CENTER,
            spaceAfter=18,
        ),
        "section": ParagraphStyle(
            "SectionTitle",
            parent=base["Heading3"],
            fontSize=13,
            textColor=dark,
            spaceBefore=6,
            spaceAfter=6,
        ),
        "dimension": ParagraphStyle(
            "DimensionTitle",
            parent=base["Heading2"],
            fontSize=18,
            textColor=primary,
            spaceAfter=8,
        ),
        "dimension_score": ParagraphStyle(
            "DimensionScore",
            parent=base["Normal"],
            fontName="Helvetica-Bold",
            fontSize=14,
            textColor=dark,
            spaceAfter=10,
        ),
        "body": ParagraphStyle(
            "Body",
            parent=base["Normal"],
            fontSize=10,
            leading=14,
            textColor=dark,
            spaceAfter=4,
        ),
        "improvement": ParagraphStyle(
            "Improvement",
            parent=base["Normal"],
            fontName="Helvetica-Bold",
            fontSize=11,
            textColor=colors.HexColor(palette["improvement"]),
            spaceBefore=4,
            spaceAfter=6,
        ),
        "partial": ParagraphStyle(
            "Partial",
            parent=base["Normal"],
            fontSize=10,
            textColor=colors.HexColor(palette["accent"]),
        ),
    }


def _comparison(label: str, value, comparison: str, count: int | None = None) -> str:
    if value is None:
        return f"<b>{_p(label)}:</b> N/A"
    suffix = f" (n={count})" if count is not None else ""
    return f"<b>{_p(label)}{suffix}:</b> {format_score(value)} {_p(comparison)}"


def _breakdown_table(dim: DimensionView, palette: Dict[str, str]) -> Table:
    rows = [["Rater", "Score"]] + [[label, format_score(value)] for label, value in dim.rater_breakdown or []]
    table = Table(rows, colWidths=[60 * mm, 30 * mm], hAlign="LEFT")
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor(palette["primary"])),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("LINEBELOW", (0, 1), (-1, -1), 0.5, colors.HexColor(palette["light"])),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
                ("TOPPADDING", (0, 0), (-1, -1), 4),
            ]
        )
    )
    return table


def _dimension_flowables(view: ReportView, dim: DimensionView, styles: dict, palette: Dict[str, str]) -> List:
    labels = view.labels
    score_label = "Score" if view.is_360 else "Your Score"
    story: List = [
        Paragraph(_p(dim.name), styles["dimension"]),
        Paragraph(f"{score_label}: {format_score(dim.score)}", styles["dimension_score"]),
    ]
    if dim.definition:
        story.append(Paragraph(_p(dim.definition), styles["body"]))
        story.append(Spacer(1, 6))
    if view.is_360:
        if dim.rater_breakdown:
            story.append(Paragraph("Rater Breakdown:", styles["section"]))
            story.append(_breakdown_table(dim, palette))
            story.append(Spacer(1, 10))
        if dim.show_benchmark and dim.benchmark is not None:
            story.append(Paragraph(_comparison(labels["benchmark_label"], dim.benchmark, dim.benchmark_comparison), styles["body"]))
        if dim.show_geonorm and dim.geonorm is not None:
            story.append(
                Paragraph(
                    _comparison(labels["geonorm_label"], dim.geonorm, dim.geonorm_comparison, dim.geonorm_count),
                    styles["body"],
                )
            )
    else:
        if dim.show_benchmark:
            story.append(Paragraph(_comparison(labels["benchmark_label"], dim.benchmark, dim.benchmark_comparison), styles["body"]))
        if dim.show_geonorm:
            story.append(
                Paragraph(
                    _comparison(
                        labels["geonorm_label"],
                        dim.geonorm,
                        dim.geonorm_comparison,
                        dim.geonorm_count if dim.geonorm is not None else None,
                    ),
                    styles["body"],
                )
            )
    if dim.improvement_needed:
        story.append(Paragraph("Improvement suggested", styles["improvement"]))
    if dim.feedback:
        title = "Feedback from Raters:" if view.is_360 else f"{labels['feedback_label']}:"
        story.append(Spacer(1, 8))
        story.append(Paragraph(_p(title), styles["section"]))
        for text in dim.feedback:
            story.append(Paragraph(_p(text), styles["body"]))
    return story


def _page_decorator(view: ReportView, palette: Dict[str, str]):
    def _draw(canvas, doc):
        canvas.saveState()
        canvas.setFont("Helvetica", 8)
        canvas.setFillColor(colors.HexColor(palette["light"]))
        width, _height = A4
        canvas.drawString(20 * mm, 10 * mm, f"{BRAND_NAME} | {view.title}")
        canvas.drawRightString(width - 20 * mm, 10 * mm, f"Page {canvas.getPageNumber()} of {view.page_count}")
        canvas.restoreState()

    return _draw


def render_report_pdf(report: Dict[str, Any]) -> bytes:
    """Render a stored report dict to A4 PDF bytes."""
    view = build_report_view(report)
    palette = view.palette
    styles = _build_styles(palette)
    labels = view.labels

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        title=f"{view.title} - {view.subject_name}",
        author=BRAND_NAME,
    )

    story: List = [
        Paragraph(_p(view.title), styles["title"]),
        Paragraph(_p(view.subtitle), styles["subtitle"]),
    ]
    if view.overall_score is not None:
        story.append(Paragraph(format_score(view.overall_score), styles["score"]))
        story.append(Paragraph(_p(labels["overall_score_label"]), styles["score_label"]))
    if view.group_name:
        story.append(Paragraph(f"Group: {_p(view.group_name)}", styles["section"]))
    if view.partial and view.response_summary:
        story.append(
            Paragraph(
                f"Partial report: {_p(view.response_summary.get('completed'))} of "
                f"{_p(view.response_summary.get('total'))} responses received",
                styles["partial"],
            )
        )

    for dim in view.dimensions:
        story.append(PageBreak())
        story.extend(_dimension_flowables(view, dim, styles, palette))

    if view.overall_feedback:
        story.append(PageBreak())
        story.append(Paragraph(f"Overall {_p(labels['feedback_label'])}", styles["dimension"]))
        story.append(Paragraph(_p(view.overall_feedback), styles["body"]))

    decorate = _page_decorator(view, palette)
    doc.build(story, onFirstPage=decorate, onLaterPages=decorate)
    pdf_bytes = buffer.getvalue()
    logger.info(
        "Rendered report PDF assignment_id=%s pages=%d bytes=%d",
        view.assignment_id,
        view.page_count,
        len(pdf_bytes),
    )
    return pdf_bytes
