"""HTML view markers, the ReportLab renderer and CSV/filename exports."""
import csv
import io
import re

import pytest
from openpyxl import load_workbook
from PyPDF2 import PdfReader

from talentpulse.components.reports.exports import (
    build_csv_filename,
    build_excel_filename,
    build_pdf_filename,
    render_report_csv,
    render_report_excel,
)
from talentpulse.components.reports.html_view import render_report_html
from talentpulse.components.reports.pdf_document import render_report_pdf
from talentpulse.components.reports.presentation import (
    DEFAULT_FONT_FAMILY,
    build_report_view,
    comparison_label,
    format_score,
    strip_html,
)


def leader_report(**overrides):
    report = {
        "report_type": "leader_blocker",
        "assignment_id": "a1b2c3d4-0000-0000-0000-000000000000",
        "user_name": "Pat Lee",
        "user_email": "pat@example.com",
        "assessment_title": "Leadership Assessment",
        "group_name": "Team Alpha",
        "overall_score": 3.456,
        "generated_at": "2026-01-01T00:00:00Z",
        "dimensions": [
            {
                "dimension_id": "d1",
                "dimension_name": "Vision",
                "dimension_code": "VIS",
                "target_score": 3.0,
                "industry_benchmark": 4.0,
                "geonorm": 2.5,
                "geonorm_participant_count": 6,
                "improvement_needed": True,
                "specific_feedback": "<p>Share the <b>why</b></p>",
                "overall_feedback": None,
            },
            {
                "dimension_id": "d2",
                "dimension_name": "Delivery",
                "dimension_code": "DEL",
                "target_score": 4.0,
                "industry_benchmark": None,
                "geonorm": None,
                "geonorm_participant_count": 0,
                "improvement_needed": False,
            },
        ],
        "overall_feedback": "<p>Strong &amp; steady</p>",
    }
    report.update(overrides)
    return report


def report_360(**overrides):
    report = {
        "report_type": "360",
        "assignment_id": "f00dbabe-0000-0000-0000-000000000000",
        "target_id": "t1",
        "target_name": "Jordan Diaz",
        "target_email": "jordan@example.com",
        "assessment_title": "360 Leadership",
        "group_name": "Jordan's raters",
        "overall_score": 3.0,
        "generated_at": "2026-01-01T00:00:00Z",
        "partial": True,
        "participant_response_summary": {"completed": 3, "total": 4},
        "dimensions": [
            {
                "dimension_id": "c1",
                "dimension_name": "Communication",
                "dimension_code": "COM",
                "overall_score": 3.0,
                "rater_breakdown": {"peer": 2.0, "supervisor": 3.0, "self": 4.0, "direct_report": None, "other": None, "all_raters": 3.0},
                "industry_benchmark": 3.5,
                "geonorm": 3.0,
                "geonorm_participant_count": 3,
                "improvement_needed": True,
                "text_feedback": ["<p>Listens well</p>", "Asks, then answers"],
            }
        ],
    }
    report.update(overrides)
    return report


class TestPresentationHelpers:
    def test_strip_html(self):
        assert strip_html("<p>Strong &amp; <b>steady</b></p>") == "Strong & steady"
        assert strip_html(None) == ""

    def test_format_score(self):
        assert format_score(3.456) == "3.46"
        assert format_score(0) == "0.00"
        assert format_score(None) == "N/A"

    def test_comparison_label(self):
        assert comparison_label(3.0, 4.0) == "(Below)"
        assert comparison_label(4.0, 4.0) == "(Above)"
        assert comparison_label(4.0, None) == ""

    def test_view_page_count(self):
        assert build_report_view(leader_report()).page_count == 4
        assert build_report_view(leader_report(overall_feedback=None)).page_count == 3
        assert build_report_view(report_360()).page_count == 2
        assert build_report_view(leader_report(dimensions=[], overall_feedback=None)).page_count == 1

    def test_subtitles(self):
        assert build_report_view(leader_report()).subtitle == "Assessment Report for Pat Lee"
        assert build_report_view(report_360()).subtitle == "360 Assessment Report for Jordan Diaz"

    def test_template_styling_overrides_palette(self):
        view = build_report_view(leader_report(_templateStyling={"primary_color": "#123456"}))
        assert view.palette["primary"] == "#123456"
        assert view.palette["dark"] == "#272842"

    @pytest.mark.parametrize(
        "value",
        ["red", "#12345", "123456", "#fff}</style><script>alert(1)</script><style>", "", None, 42],
    )
    def test_invalid_styling_colours_are_ignored(self, value):
        view = build_report_view(leader_report(_templateStyling={"primary_color": value}))
        assert view.palette["primary"] == "#55a1d8"

    def test_short_hex_colours_are_expanded(self):
        view = build_report_view(leader_report(_templateStyling={"accent_color": " #fa0 "}))
        assert view.palette["accent"] == "#FFAA00"

    def test_font_family_override(self):
        view = build_report_view(leader_report(_templateStyling={"font_family": "Georgia, 'Times New Roman', serif"}))
        assert view.font_family == "Georgia, 'Times New Roman', serif"
        hostile = build_report_view(leader_report(_templateStyling={"font_family": "x; } body { display: none"}))
        assert hostile.font_family == DEFAULT_FONT_FAMILY


class TestHtmlView:
    def test_markers_and_one_container_per_page(self):
        view = build_report_view(leader_report())
        html = render_report_html(view)
        assert 'data-report-loaded="true"' in html
        assert 'data-report-pages="4"' in html
        assert len(re.findall(r'class="page-container"', html)) == view.page_count

    def test_dimension_page_content(self):
        html = render_report_html(build_report_view(leader_report()))
        assert "Your Score: 3.00" in html
        assert "Industry Benchmark: 4.00" in html
        assert "Group Norm (n=6): 2.50" in html
        assert "(Below)" in html and "(Above)" in html
        assert "Improvement suggested" in html
        assert "Share the why" in html
        assert "<b>why</b>" not in html

    def test_360_breakdown_and_partial_notice(self):
        html = render_report_html(build_report_view(report_360()))
        assert "Peer" in html and "Supervisor" in html
        assert "Direct Report" not in html
        assert "Partial report: 3 of 4 responses received" in html
        assert "Listens well" in html

    def test_values_are_escaped(self):
        html = render_report_html(build_report_view(leader_report(user_name="<script>x</script>")))
        assert "<script>x</script>" not in html
        assert "&lt;script&gt;" in html

    def test_template_labels_are_used(self):
        report = leader_report(_templateLabels={"geonorm_label": "Team Average"})
        assert "Team Average (n=6)" in render_report_html(build_report_view(report))

    def test_styling_cannot_break_out_of_the_style_block(self):
        report = leader_report(
            _templateStyling={
                "primary_color": "#fff}</style><script>alert(1)</script><style>",
                "font_family": "</style><script>alert(2)</script>",
            }
        )
        html = render_report_html(build_report_view(report))
        assert "<script>" not in html
        assert html.count("</style>") == 1
        assert "color: #55a1d8" in html

    def test_valid_styling_reaches_the_stylesheet(self):
        report = leader_report(_templateStyling={"primary_color": "#123456", "font_family": "Georgia, serif"})
        html = render_report_html(build_report_view(report))
        assert "color: #123456" in html
        assert "font-family: Georgia, serif;" in html


class TestPdfDocument:
    def _pages(self, pdf_bytes):
        return len(PdfReader(io.BytesIO(pdf_bytes)).pages)

    def test_leader_report_one_page_per_section(self):
        pdf_bytes = render_report_pdf(leader_report())
        assert pdf_bytes.startswith(b"%PDF")
        assert self._pages(pdf_bytes) == 4

    def test_360_report_pages(self):
        assert self._pages(render_report_pdf(report_360())) == 2

    def test_partial_report_renders(self):
        report = leader_report(dimensions=[], overall_feedback=None, overall_score=None, group_name=None)
        assert self._pages(render_report_pdf(report)) == 1

    def test_null_scores_do_not_raise(self):
        report = report_360()
        report["dimensions"][0].update(overall_score=None, industry_benchmark=None, geonorm=None, rater_breakdown=None)
        assert render_report_pdf(report).startswith(b"%PDF")

    def test_markup_in_text_is_escaped(self):
        report = leader_report(user_name="A & B <Co>", overall_feedback="1 < 2 & 3 > 2")
        assert render_report_pdf(report).startswith(b"%PDF")

    @pytest.mark.parametrize("colour", ["red", "#fff", "rgb(0, 0, 0)"])
    def test_template_colours_never_break_rendering(self, colour):
        report = leader_report(_templateStyling={"primary_color": colour, "improvement_color": colour})
        assert self._pages(render_report_pdf(report)) == 4


class TestExports:
    def test_pdf_filename(self):
        assert build_pdf_filename("Leadership 360: Q1", "a1b2c3d4-ffff") == "leadership_360__q1_a1b2c3d4.pdf"
        assert build_pdf_filename(None, "a1b2c3d4-ffff") == "report_a1b2c3d4.pdf"

    def test_csv_filename(self):
        assert build_csv_filename("Leadership", "a1b2c3d4-ffff") == "leadership_a1b2c3d4.csv"

    def test_leader_csv(self):
        rows = list(csv.reader(io.StringIO(render_report_csv(leader_report()))))
        assert rows[0] == ["Assessment", "User Name", "User Email", "Group", "Overall Score", "Generated At"]
        assert rows[1][:5] == ["Leadership Assessment", "Pat Lee", "pat@example.com", "Team Alpha", "3.46"]
        assert rows[3] == ["Dimension", "Code", "Your Score", "Industry Benchmark", "Group Norm", "Improvement Needed", "Feedback"]
        assert rows[4] == ["Vision", "VIS", "3.00", "4.00", "2.50 (n=6)", "Yes", "Share the why"]
        assert rows[5] == ["Delivery", "DEL", "4.00", "N/A", "N/A", "No", "N/A"]
        assert rows[-2:] == [["Overall Feedback"], ["Strong & steady"]]

    def test_360_csv(self):
        rows = list(csv.reader(io.StringIO(render_report_csv(report_360()))))
        assert rows[0][:3] == ["Assessment", "Target Name", "Target Email"]
        assert rows[4] == ["Communication", "COM", "3.00", "2.00", "N/A", "3.00", "4.00", "N/A", "3.50", "3.00 (n=3)", "Yes"]
        assert rows[6] == ["Dimension", "Feedback"]
        assert rows[7:] == [["Communication", "Listens well"], ["Communication", "Asks, then answers"]]

    @pytest.mark.parametrize("builder", [leader_report, report_360])
    def test_empty_report_has_no_data_row(self, builder):
        rows = list(csv.reader(io.StringIO(render_report_csv(builder(dimensions=[], overall_feedback=None)))))
        assert rows[4][0] == "No data"

    @pytest.mark.parametrize("builder", [leader_report, report_360])
    def test_hidden_overall_score_is_not_reported_as_zero(self, builder):
        rows = list(csv.reader(io.StringIO(render_report_csv(builder(overall_score=None)))))
        assert rows[1][4] == "N/A"

    def test_missing_dimension_score_is_not_reported_as_zero(self):
        report = leader_report()
        report["dimensions"][1]["target_score"] = None
        rows = list(csv.reader(io.StringIO(render_report_csv(report))))
        assert rows[5][2] == "N/A"

    def test_excel_filename(self):
        assert build_excel_filename("Leadership 360", "a1b2c3d4-ffff") == "leadership_360_a1b2c3d4.xlsx"


class TestExcelExport:
    def _workbook(self, report):
        return load_workbook(io.BytesIO(render_report_excel(report)))

    def _rows(self, sheet):
        return [list(row) for row in sheet.iter_rows(values_only=True)]

    def test_leader_workbook(self):
        workbook = self._workbook(leader_report())
        assert workbook.sheetnames == ["Summary", "Dimension Breakdown", "Overall Feedback"]

        summary = self._rows(workbook["Summary"])
        assert summary[0] == ["Metric", "Value"]
        assert ["Group", "Team Alpha"] in summary
        assert ["Overall Score", "3.46"] in summary

        dimensions = self._rows(workbook["Dimension Breakdown"])
        assert dimensions[0] == [
            "Dimension", "Code", "Your Score", "Industry Benchmark", "Group Norm", "Improvement Needed", "Feedback",
        ]
        assert dimensions[1] == ["Vision", "VIS", "3.00", "4.00", "2.50 (n=6)", "Yes", "Share the why"]
        assert dimensions[2] == ["Delivery", "DEL", "4.00", "N/A", "N/A", "No", "N/A"]
        assert self._rows(workbook["Overall Feedback"]) == [["Feedback"], ["Strong & steady"]]

    def test_leader_workbook_without_group_or_feedback(self):
        workbook = self._workbook(leader_report(group_name=None, overall_feedback=None, overall_score=None))
        assert workbook.sheetnames == ["Summary", "Dimension Breakdown"]
        summary = self._rows(workbook["Summary"])
        assert not any(row[0] == "Group" for row in summary)
        assert ["Overall Score", "N/A"] in summary

    def test_360_workbook(self):
        workbook = self._workbook(report_360())
        assert workbook.sheetnames == ["Summary", "Dimension Breakdown", "Feedback"]
        assert ["Target Name", "Jordan Diaz"] in self._rows(workbook["Summary"])

        dimensions = self._rows(workbook["Dimension Breakdown"])
        assert dimensions[1] == [
            "Communication", "COM", "3.00", "2.00", "N/A", "3.00", "4.00", "N/A", "3.50", "3.00 (n=3)", "Yes",
        ]
        assert self._rows(workbook["Feedback"])[1:] == [
            ["Communication", "Listens well"],
            ["Communication", "Asks, then answers"],
        ]

    def test_header_row_is_bold(self):
        sheet = self._workbook(leader_report())["Dimension Breakdown"]
        assert sheet["A1"].font.bold is True
        assert sheet.column_dimensions["A"].width == 30
