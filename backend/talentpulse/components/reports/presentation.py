"""Render-ready view of a stored report dict, shared by the HTML, PDF, and CSV outputs.

Stored reports may be partial or template-filtered: any score can be null and
any key can be missing, so everything here reads with ``.get`` and defaults.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ...platform.brand import report_palette, sanitize_hex_color
from .templates import DEFAULT_LABELS

_TAG_RE = re.compile(r"<[^>]*>")
# Font stacks: names, quotes, commas and hyphens only
_FONT_FAMILY_RE = re.compile(r"""^[A-Za-z0-9 ,'"-]{1,120}$""")
DEFAULT_FONT_FAMILY = "'Helvetica Neue', Helvetica, Arial, sans-serif"

RATER_LABELS: Tuple[Tuple[str, str], ...] = (
    ("peer", "Peer"),
    ("direct_report", "Direct Report"),
    ("supervisor", "Supervisor"),
    ("self", "Self"),
    ("other", "Other"),
)


def strip_html(text: Optional[str]) -> str:
    if not text:
        return ""
    return html.unescape(_TAG_RE.sub("", text)).strip()


def format_score(value: Optional[float], digits: int = 2) -> str:
    if value is None:
        return "N/A"
    return f"{float(value):.{digits}f}"


def comparison_label(score: Optional[float], comparator: Optional[float]) -> str:
    if score is None or comparator is None:
        return ""
    return "(Below)" if score < comparator else "(Above)"


@dataclass
class DimensionView:
    dimension_id: str
    name: str
    code: str
    score: Optional[float]
    rater_breakdown: Optional[List[Tuple[str, float]]]
    benchmark: Optional[float]
    geonorm: Optional[float]
    geonorm_count: int
    improvement_needed: bool
    feedback: List[str] = field(default_factory=list)
    definition: Optional[str] = None
    # False when a report template removed the comparator
    show_benchmark: bool = True
    show_geonorm: bool = True

    @property
    def benchmark_comparison(self) -> str:
        return comparison_label(self.score, self.benchmark)

    @property
    def geonorm_comparison(self) -> str:
        return comparison_label(self.score, self.geonorm)


@dataclass
class ReportView:
    assignment_id: str
    is_360: bool
    title: str
    subject_name: str
    subject_email: str
    group_name: Optional[str]
    client_name: Optional[str]
    overall_score: Optional[float]
    generated_at: Optional[str]
    dimensions: List[DimensionView]
    overall_feedback: Optional[str]
    labels: Dict[str, str]
    styling: Dict[str, Any]
    partial: bool = False
    response_summary: Optional[Dict[str, int]] = None

    @property
    def subtitle(self) -> str:
        prefix = "360 Assessment Report" if self.is_360 else "Assessment Report"
        return f"{prefix} for {self.subject_name}"

    @property
    def page_count(self) -> int:
        """Cover page, one page per dimension, and an optional overall feedback page."""
        return 1 + len(self.dimensions) + (1 if self.overall_feedback else 0)

    @property
    def palette(self) -> Dict[str, str]:
        palette = report_palette()
        for key in palette:
            # Only #RGB/#RRGGBB overrides apply; anything else keeps the brand colour
            override = sanitize_hex_color(self.styling.get(f"{key}_color"))
            if override:
                palette[key] = override
        return palette

    @property
    def font_family(self) -> str:
        value = self.styling.get("font_family")
        if isinstance(value, str) and _FONT_FAMILY_RE.match(value.strip()):
            return value.strip()
        return DEFAULT_FONT_FAMILY


def _rater_breakdown(raw: Any) -> Optional[List[Tuple[str, float]]]:
    if not isinstance(raw, dict):
        return None
    return [(label, float(raw[key])) for key, label in RATER_LABELS if raw.get(key) is not None]


def _dimension_view(raw: Dict[str, Any], is_360: bool) -> DimensionView:
    score_key = "overall_score" if is_360 else "target_score"
    if is_360:
        feedback = [strip_html(t) for t in raw.get("text_feedback") or []]
    else:
        feedback = [strip_html(raw.get(k)) for k in ("specific_feedback", "overall_feedback")]
    return DimensionView(
        dimension_id=str(raw.get("dimension_id") or ""),
        name=raw.get("dimension_name") or "Unnamed dimension",
        code=raw.get("dimension_code") or "",
        score=raw.get(score_key),
        rater_breakdown=_rater_breakdown(raw.get("rater_breakdown")) if is_360 else None,
        benchmark=raw.get("industry_benchmark"),
        geonorm=raw.get("geonorm"),
        geonorm_count=int(raw.get("geonorm_participant_count") or 0),
        improvement_needed=bool(raw.get("improvement_needed")),
        feedback=[f for f in feedback if f],
        definition=raw.get("definition"),
        show_benchmark="industry_benchmark" in raw,
        show_geonorm="geonorm" in raw,
    )


def build_report_view(report: Dict[str, Any]) -> ReportView:
    is_360 = report.get("report_type") == "360" or "target_id" in report
    labels = {**DEFAULT_LABELS, **(report.get("_templateLabels") or {})}
    return ReportView(
        assignment_id=str(report.get("assignment_id") or ""),
        is_360=is_360,
        title=report.get("assessment_title") or "Assessment Report",
        subject_name=(report.get("target_name") if is_360 else report.get("user_name")) or "Unknown",
        subject_email=(report.get("target_email") if is_360 else report.get("user_email")) or "",
        group_name=report.get("group_name"),
        client_name=report.get("client_name"),
        overall_score=report.get("overall_score"),
        generated_at=report.get("generated_at"),
        dimensions=[_dimension_view(d, is_360) for d in report.get("dimensions") or []],
        overall_feedback=strip_html(report.get("overall_feedback")) or None,
        labels=labels,
        styling=dict(report.get("_templateStyling") or {}),
        partial=bool(report.get("partial")),
        response_summary=report.get("participant_response_summary"),
    )
