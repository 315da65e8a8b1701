"""Server-rendered HTML report view printed by the headless-browser exporter.

The browser exporter depends on three markers emitted here:
``data-report-loaded`` on the root, ``data-report-pages`` with the expected
page count, and one ``.page-container`` element per printed A4 page.
"""

from __future__ import annotations

from html import escape
from typing import List

from ...platform.brand import BRAND_NAME
from .presentation import DimensionView, ReportView, format_score

PAGE_CONTAINER_CLASS = "page-container"


def _e(value) -> str:
    return escape(str(value)) if value is not None else ""


def _styles(view: ReportView) -> str:
    p = view.palette
    font_family = view.font_family
    return f"""\
  * {{ box-sizing: border-box; }}
  body {{ margin: 0; padding: 0; background: #f3f5f7; font-family: {font_family}; color: {p['dark']}; }}
  .report-view-container {{ position: relative; padding: 24px 0; }}
  .page-container {{
    position: relative; width: 210mm; height: 296mm; margin: 0 auto 24px; overflow: hidden;
    background: {p['background']}; page-break-after: always; break-after: page;
  }}
  .page-container:last-child {{ page-break-after: auto; break-after: auto; }}
  .page-wrapper {{ padding: 48px 56px 59px; height: 100%; }}
  .page-footer {{
    position: absolute; left: 0; right: 0; bottom: 0; height: 43px; padding: 12px 56px;
    font-size: 11px; color: {p['light']}; border-top: 1px solid {p['light']};
    display: flex; justify-content: space-between;
  }}
  h1 {{ font-size: 30px; margin: 0 0 8px; color: {p['dark']}; }}
  h2 {{ font-size: 22px; margin: 0 0 12px; color: {p['primary']}; }}
  .subtitle {{ font-size: 16px; color: {p['dark']}; margin-bottom: 32px; }}
  .overall-score {{ font-size: 64px; font-weight: 700; color: {p['primary']}; }}
  .overall-label {{ font-size: 14px; text-transform: uppercase; letter-spacing: 1px; }}
  .group {{ margin-top: 24px; font-size: 14px; }}
  .partial {{ margin-top: 16px; font-size: 12px; color: {p['accent']}; }}
  .dimension-score {{ font-size: 18px; margin-bottom: 16px; }}
  .definition {{ font-size: 12px; margin-bottom: 16px; color: {p['dark']}; }}
  table.breakdown {{ border-collapse: collapse; margin-bottom: 16px; min-width: 50%; }}
  table.breakdown td {{ padding: 4px 12px 4px 0; font-size: 13px; border-bottom: 1px solid {p['light']}; }}
  .comparison {{ font-size: 13px; margin-bottom: 6px; }}
  .below {{ color: {p['accent']}; }}
  .improvement {{ color: {p['improvement']}; font-size: 13px; font-weight: 600; margin-top: 8px; }}
  .feedback {{ margin-top: 20px; padding: 12px 16px; background: #f7f9fa; border-left: 3px solid {p['primary']}; }}
  .feedback-title {{ font-weight: 700; margin-bottom: 6px; font-size: 13px; }}
  .feedback p {{ margin: 0 0 6px; font-size: 12px; line-height: 1.5; }}
"""


def _footer(view: ReportView, page_number: int) -> str:
    return (
        '<div class="page-footer">'
        f"<span>{_e(BRAND_NAME)} | {_e(view.title)}</span>"
        f"<span>Page {page_number} of {view.page_count}</span>"
        "</div>"
    )


def _page(view: ReportView, page_number: int, body: str) -> str:
    return (
        f'<section class="{PAGE_CONTAINER_CLASS}" data-page="{page_number}">'
        f'<div class="page-wrapper">{body}</div>'
        f"{_footer(view, page_number)}"
        "</section>"
    )


def _cover(view: ReportView) -> str:
    labels = view.labels
    parts = [
        f"<h1>{_e(view.title)}</h1>",
        f'<div class="subtitle">{_e(view.subtitle)}</div>',
    ]
    if view.overall_score is not None:
        parts.append(
            f'<div class="overall-score">{format_score(view.overall_score)}</div>'
            f'<div class="overall-label">{_e(labels["overall_score_label"])}</div>'
        )
    if view.group_name:
        parts.append(f'<div class="group">Group: {_e(view.group_name)}</div>')
    if view.client_name:
        parts.append(f'<div class="group">Client: {_e(view.client_name)}</div>')
    if view.partial and view.response_summary:
        parts.append(
            '<div class="partial">Partial report: '
            f"{_e(view.response_summary.get('completed'))} of {_e(view.response_summary.get('total'))} responses received"
            "</div>"
        )
    return "".join(parts)


def _comparison_line(label: str, value, comparison: str, count: int | None = None) -> str:
    if value is None:
        return f'<div class="comparison">{_e(label)}: N/A</div>'
    suffix = f" (n={count})" if count is not None else ""
    css = " below" if comparison == "(Below)" else ""
    return (
        f'<div class="comparison">{_e(label)}{suffix}: {format_score(value)} '
        f'<span class="{css.strip()}">{_e(comparison)}</span></div>'
    )


def _dimension_page(view: ReportView, dim: DimensionView) -> str:
    labels = view.labels
    score_label = "Score" if view.is_360 else "Your Score"
    parts: List[str] = [
        f"<h2>{_e(dim.name)}</h2>",
        f'<div class="dimension-score">{_e(score_label)}: {format_score(dim.score)}</div>',
    ]
    if dim.definition:
        parts.append(f'<div class="definition">{_e(dim.definition)}</div>')
    if dim.rater_breakdown:
        rows = "".join(f"<tr><td>{_e(label)}</td><td>{format_score(value)}</td></tr>" for label, value in dim.rater_breakdown)
        parts.append(f'<table class="breakdown"><tbody>{rows}</tbody></table>')
    # 360 pages omit missing comparators, leader pages print N/A
    if dim.show_benchmark and (dim.benchmark is not None or not view.is_360):
        parts.append(_comparison_line(labels["benchmark_label"], dim.benchmark, dim.benchmark_comparison))
    if dim.show_geonorm and (dim.geonorm is not None or not view.is_360):
        parts.append(_comparison_line(labels["geonorm_label"], dim.geonorm, dim.geonorm_comparison, dim.geonorm_count))
    if dim.improvement_needed:
        parts.append('<div class="improvement">Improvement suggested</div>')
    if dim.feedback:
        title = "Feedback from Raters" if view.is_360 else labels["feedback_label"]
        paragraphs = "".join(f"<p>{_e(text)}</p>" for text in dim.feedback)
        parts.append(f'<div class="feedback"><div class="feedback-title">{_e(title)}</div>{paragraphs}</div>')
    return "".join(parts)


def _overall_feedback_page(view: ReportView) -> str:
    return (
        f"<h2>Overall {_e(view.labels['feedback_label'])}</h2>"
        f'<div class="feedback"><p>{_e(view.overall_feedback)}</p></div>'
    )


def render_report_html(view: ReportView) -> str:
    """Full HTML document for one report, one ``.page-container`` per A4 page."""
    pages = [_page(view, 1, _cover(view))]
    for index, dim in enumerate(view.dimensions, start=2):
        pages.append(_page(view, index, _dimension_page(view, dim)))
    if view.overall_feedback:
        pages.append(_page(view, view.page_count, _overall_feedback_page(view)))
    body = "".join(pages)

    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{_e(view.title)} | {_e(view.subject_name)}</title>
  <style>
{_styles(view)}
  </style>
</head>
<body>
  <main class="report-view-container" data-report-loaded="true" data-report-pages="{view.page_count}" data-assignment-id="{_e(view.assignment_id)}">{body}</main>
</body>
</html>
"""
