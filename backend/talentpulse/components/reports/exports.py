"""CSV and Excel exports and download filenames for generated reports."""

from __future__ import annotations

import csv
import io
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .presentation import build_report_view, format_score, strip_html

_UNSAFE_FILENAME_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def _safe_stem(title: Optional[str], assignment_id: str) -> str:
    stem = f"{title or 'Report'}_{str(assignment_id)[:8]}"
    return _UNSAFE_FILENAME_RE.sub("_", stem).lower()


def build_pdf_filename(title: Optional[str], assignment_id: str) -> str:
    return f"{_safe_stem(title, assignment_id)}.pdf"


def build_csv_filename(title: Optional[str], assignment_id: str) -> str:
    return f"{_safe_stem(title, assignment_id)}.csv"


def build_excel_filename(title: Optional[str], assignment_id: str) -> str:
    return f"{_safe_stem(title, assignment_id)}.xlsx"


def _optional_score(value: Any) -> str:
    # Zero is a real score, so only a missing value prints N/A
    return format_score(value) if value is not None else "N/A"


def _geonorm_cell(dim: Dict[str, Any]) -> str:
    if dim.get("geonorm") is None:
        return "N/A"
    return f"{format_score(dim['geonorm'])} (n={dim.get('geonorm_participant_count') or 0})"


def _generated_at(report: Dict[str, Any]) -> str:
    return str(report.get("generated_at") or "N/A")


def _to_csv(rows: List[List[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue()


def report_360_csv(report: Dict[str, Any]) -> str:
    dimensions = report.get("dimensions") or []
    rows: List[List[Any]] = [
        ["Assessment", "Target Name", "Target Email", "Group", "Overall Score", "Generated At"],
        [
            report.get("assessment_title") or "",
            report.get("target_name") or "",
            report.get("target_email") or "",
            report.get("group_name") or "",
            _optional_score(report.get("overall_score")),
            _generated_at(report),
        ],
        [],
        [
            "Dimension", "Code", "All Raters", "Peer", "Direct Report", "Supervisor",
            "Self", "Other", "Industry Benchmark", "Group Norm", "Improvement Needed",
        ],
    ]
    if not dimensions:
        rows.append(["No data", "", "0", "N/A", "N/A", "N/A", "N/A", "N/A", "N/A", "N/A", "No"])
    for dim in dimensions:
        breakdown = dim.get("rater_breakdown") or {}
        all_raters = breakdown.get("all_raters")
        if all_raters is None:
            all_raters = dim.get("overall_score")
        rows.append(
            [
                dim.get("dimension_name") or "",
                dim.get("dimension_code") or "",
                _optional_score(all_raters),
                _optional_score(breakdown.get("peer")),
                _optional_score(breakdown.get("direct_report")),
                _optional_score(breakdown.get("supervisor")),
                _optional_score(breakdown.get("self")),
                _optional_score(breakdown.get("other")),
                _optional_score(dim.get("industry_benchmark")),
                _geonorm_cell(dim),
                "Yes" if dim.get("improvement_needed") else "No",
            ]
        )

    feedback_rows = [
        [dim.get("dimension_name") or "", strip_html(text)]
        for dim in dimensions
        for text in dim.get("text_feedback") or []
    ]
    if feedback_rows:
        rows.append([])
        rows.append(["Dimension", "Feedback"])
        rows.extend(feedback_rows)
    return _to_csv(rows)


def report_leader_blocker_csv(report: Dict[str, Any]) -> str:
    dimensions = report.get("dimensions") or []
    rows: List[List[Any]] = [
        ["Assessment", "User Name", "User Email", "Group", "Overall Score", "Generated At"],
        [
            report.get("assessment_title") or "",
            report.get("user_name") or "",
            report.get("user_email") or "",
            report.get("group_name") or "N/A",
            _optional_score(report.get("overall_score")),
            _generated_at(report),
        ],
        [],
        ["Dimension", "Code", "Your Score", "Industry Benchmark", "Group Norm", "Improvement Needed", "Feedback"],
    ]
    if not dimensions:
        rows.append(["No data", "", "0", "N/A", "N/A", "No", "N/A"])
    for dim in dimensions:
        rows.append(
            [
                dim.get("dimension_name") or "",
                dim.get("dimension_code") or "",
                _optional_score(dim.get("target_score")),
                _optional_score(dim.get("industry_benchmark")),
                _geonorm_cell(dim),
                "Yes" if dim.get("improvement_needed") else "No",
                strip_html(dim.get("specific_feedback")) or "N/A",
            ]
        )

    overall_feedback = strip_html(report.get("overall_feedback"))
    if overall_feedback:
        rows.append([])
        rows.append(["Overall Feedback"])
        rows.append([overall_feedback])
    return _to_csv(rows)


def render_report_csv(report: Dict[str, Any]) -> str:
    if build_report_view(report).is_360:
        return report_360_csv(report)
    return report_leader_blocker_csv(report)


# ---------------------------------------------------------------------------
# Excel
# ---------------------------------------------------------------------------

Column = Tuple[str, int]


def _add_sheet(workbook: Workbook, title: str, columns: Sequence[Column], rows: List[List[Any]]) -> None:
    sheet = workbook.create_sheet(title=title)
    sheet.append([header for header, _ in columns])
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for index, (_, width) in enumerate(columns, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width
    for row in rows:
        sheet.append(row)


def _to_xlsx(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _new_workbook() -> Workbook:
    workbook = Workbook()
    # Drop the default sheet so the first added sheet is the active one
    workbook.remove(workbook.active)
    return workbook


_SUMMARY_COLUMNS: Tuple[Column, ...] = (("Metric", 30), ("Value", 30))


def report_360_excel(report: Dict[str, Any]) -> bytes:
    dimensions = report.get("dimensions") or []
    workbook = _new_workbook()
    _add_sheet(
        workbook,
        "Summary",
        _SUMMARY_COLUMNS,
        [
            ["Assessment", report.get("assessment_title") or ""],
            ["Target Name", report.get("target_name") or ""],
            ["Target Email", report.get("target_email") or ""],
            ["Group", report.get("group_name") or ""],
            ["Overall Score", _optional_score(report.get("overall_score"))],
            ["Generated At", _generated_at(report)],
        ],
    )

    rows = []
    for dim in dimensions:
        breakdown = dim.get("rater_breakdown") or {}
        rows.append(
            [
                dim.get("dimension_name") or "",
                dim.get("dimension_code") or "",
                _optional_score(dim.get("overall_score")),
                _optional_score(breakdown.get("peer")),
                _optional_score(breakdown.get("direct_report")),
                _optional_score(breakdown.get("supervisor")),
                _optional_score(breakdown.get("self")),
                _optional_score(breakdown.get("other")),
                _optional_score(dim.get("industry_benchmark")),
                _geonorm_cell(dim),
                "Yes" if dim.get("improvement_needed") else "No",
            ]
        )
    _add_sheet(
        workbook,
        "Dimension Breakdown",
        (
            ("Dimension", 30), ("Code", 15), ("Overall Score", 15), ("Peer", 12),
            ("Direct Report", 15), ("Supervisor", 15), ("Self", 12), ("Other", 12),
            ("Industry Benchmark", 18), ("Group Norm", 15), ("Improvement Needed", 18),
        ),
        rows,
    )

    _add_sheet(
        workbook,
        "Feedback",
        (("Dimension", 30), ("Feedback", 80)),
        [
            [dim.get("dimension_name") or "", strip_html(text)]
            for dim in dimensions
            for text in dim.get("text_feedback") or []
        ],
    )
    return _to_xlsx(workbook)


def report_leader_blocker_excel(report: Dict[str, Any]) -> bytes:
    workbook = _new_workbook()
    summary = [
        ["Assessment", report.get("assessment_title") or ""],
        ["User Name", report.get("user_name") or ""],
        ["User Email", report.get("user_email") or ""],
    ]
    if report.get("group_name"):
        summary.append(["Group", report["group_name"]])
    summary.append(["Overall Score", _optional_score(report.get("overall_score"))])
    summary.append(["Generated At", _generated_at(report)])
    _add_sheet(workbook, "Summary", _SUMMARY_COLUMNS, summary)

    _add_sheet(
        workbook,
        "Dimension Breakdown",
        (
            ("Dimension", 30), ("Code", 15), ("Your Score", 15), ("Industry Benchmark", 18),
            ("Group Norm", 15), ("Improvement Needed", 18), ("Feedback", 60),
        ),
        [
            [
                dim.get("dimension_name") or "",
                dim.get("dimension_code") or "",
                _optional_score(dim.get("target_score")),
                _optional_score(dim.get("industry_benchmark")),
                _geonorm_cell(dim),
                "Yes" if dim.get("improvement_needed") else "No",
                strip_html(dim.get("specific_feedback")) or "N/A",
            ]
            for dim in report.get("dimensions") or []
        ],
    )

    overall_feedback = strip_html(report.get("overall_feedback"))
    if overall_feedback:
        _add_sheet(workbook, "Overall Feedback", (("Feedback", 80),), [[overall_feedback]])
    return _to_xlsx(workbook)


def render_report_excel(report: Dict[str, Any]) -> bytes:
    if build_report_view(report).is_360:
        return report_360_excel(report)
    return report_leader_blocker_excel(report)
