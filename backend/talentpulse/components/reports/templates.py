"""Per-assessment report templates: component toggles, labels, and styling."""

from __future__ import annotations

import copy
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ...models.report import ReportTemplate

DEFAULT_COMPONENTS = {
    "dimension_breakdown": True,
    "overall_score": True,
    "benchmarks": True,
    "geonorms": True,
    "feedback": True,
    "improvement_indicators": True,
    "rater_breakdown": True,
}

DEFAULT_LABELS = {
    "overall_score_label": "Overall Score",
    "dimension_label": "Dimension",
    "benchmark_label": "Industry Benchmark",
    "geonorm_label": "Group Norm",
    "feedback_label": "Feedback",
}

# component toggle -> dimension keys removed when the toggle is off
_COMPONENT_KEYS = {
    "benchmarks": ("industry_benchmark",),
    "geonorms": ("geonorm", "geonorm_participant_count"),
    "feedback": ("specific_feedback", "specific_feedback_id", "text_feedback", "overall_feedback", "overall_feedback_id"),
    "improvement_indicators": ("improvement_needed",),
    "rater_breakdown": ("rater_breakdown",),
}


def default_template() -> Dict[str, Any]:
    return {
        "components": dict(DEFAULT_COMPONENTS),
        "labels": dict(DEFAULT_LABELS),
        "styling": {},
    }


def get_report_template(db: Session, assessment_id: str) -> Optional[ReportTemplate]:
    return (
        db.query(ReportTemplate)
        .filter(ReportTemplate.assessment_id == assessment_id)
        .order_by(ReportTemplate.is_default.desc(), ReportTemplate.created_at.desc())
        .first()
    )


def _template_parts(template) -> tuple[dict, dict, dict]:
    if isinstance(template, dict):
        return template.get("components") or {}, template.get("labels") or {}, template.get("styling") or {}
    return template.components or {}, template.labels or {}, template.styling or {}


def apply_template(report: Dict[str, Any], template: ReportTemplate | Dict[str, Any] | None) -> Dict[str, Any]:
    """Filter a report dict by the template's component toggles and attach its labels/styling.

    Only an explicit ``False`` disables a component. The input is not mutated.
    """
    if template is None:
        return report

    components, labels, styling = _template_parts(template)
    filtered = copy.deepcopy(report)

    if components.get("overall_score") is False:
        filtered["overall_score"] = None

    if components.get("dimension_breakdown") is False:
        filtered["dimensions"] = []
    else:
        removed = [
            key
            for component, keys in _COMPONENT_KEYS.items()
            if components.get(component) is False
            for key in keys
        ]
        for dimension in filtered.get("dimensions") or []:
            for key in removed:
                dimension.pop(key, None)

    if components.get("feedback") is False:
        filtered.pop("overall_feedback", None)
        filtered.pop("overall_feedback_id", None)

    filtered["_templateLabels"] = {**DEFAULT_LABELS, **labels}
    filtered["_templateStyling"] = dict(styling)
    return filtered
