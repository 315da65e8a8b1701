"""360 and leader/blocker report builders, feedback assignment, templates and the report service."""
import random
from datetime import timedelta

import pytest
from fastapi import HTTPException

from talentpulse.components.reports.feedback import assign_feedback
from talentpulse.components.reports.generators import (
    ReportGenerationError,
    generate_360_report,
    generate_leader_blocker_report,
    get_top_level_dimensions,
    normalize_rater_type,
)
from talentpulse.components.reports.service import build_report, get_report, mark_pdf_stale
from talentpulse.components.reports.templates import DEFAULT_LABELS, apply_template, default_template, get_report_template
from talentpulse.components.scoring import refresh_assignment_scores
from talentpulse.models import PdfStatus, ReportData
from talentpulse.shared.utils import utcnow


def _refresh(db, *assignments):
    for assignment in assignments:
        refresh_assignment_scores(db, assignment)


class TestRaterTypes:
    @pytest.mark.parametrize(
        "role,expected",
        [
            ("peer", "peer"),
            ("Colleague", "peer"),
            ("direct report", "direct_report"),
            ("direct_report", "direct_report"),
            ("Manager", "supervisor"),
            ("self", "self"),
            ("mentor", "other"),
            (None, "other"),
        ],
    )
    def test_normalize(self, role, expected):
        assert normalize_rater_type(role) == expected


class TestTopLevelDimensions:
    def test_no_dimensions_raises(self, db, factory):
        assessment = factory.assessment()
        with pytest.raises(ReportGenerationError, match="no dimensions"):
            get_top_level_dimensions(db, assessment.id)

    def test_ordered_by_name(self, db, factory):
        assessment = factory.assessment()
        factory.dimension(assessment, "Vision")
        factory.dimension(assessment, "Agility")
        assert [d.name for d in get_top_level_dimensions(db, assessment.id)] == ["Agility", "Vision"]


class TestGenerate360Report:
    def test_aggregates_all_completed_raters(self, db, setup_360):
        s = setup_360
        _refresh(db, s["self_assignment"], s["peer_assignment"], s["boss_assignment"])

        report = generate_360_report(db, s["peer_assignment"].id)

        assert report.target_id == s["target"].id
        assert report.target_name == "Jordan Diaz"
        assert report.group_name == "Jordan's raters"
        assert report.client_name == "Acme Corp"
        assert len(report.dimensions) == 1
        dim = report.dimensions[0]
        assert dim.dimension_name == "Communication"
        assert dim.overall_score == pytest.approx(3.0)
        assert dim.rater_breakdown.self == pytest.approx(4.0)
        assert dim.rater_breakdown.peer == pytest.approx(2.0)
        assert dim.rater_breakdown.supervisor == pytest.approx(3.0)
        assert dim.rater_breakdown.direct_report is None
        assert dim.rater_breakdown.all_raters == pytest.approx(3.0)
        assert dim.industry_benchmark == pytest.approx(3.5)
        assert dim.geonorm == pytest.approx(3.0)
        assert dim.geonorm_participant_count == 3
        assert dim.improvement_needed is True
        assert dim.text_feedback == ["<p>Listens well</p>"]
        assert report.overall_score == pytest.approx(3.0)

    def test_partial_when_raters_pending(self, db, setup_360):
        s = setup_360
        _refresh(db, s["self_assignment"], s["peer_assignment"], s["boss_assignment"])

        report = generate_360_report(db, s["self_assignment"].id)
        assert report.partial is True
        assert report.participant_response_summary.completed == 3
        assert report.participant_response_summary.total == 4

    def test_dimensions_without_scores_are_skipped(self, db, setup_360, factory):
        s = setup_360
        factory.dimension(s["assessment"], "Zeal", code="ZEA")
        _refresh(db, s["self_assignment"])

        report = generate_360_report(db, s["self_assignment"].id)
        assert [d.dimension_name for d in report.dimensions] == ["Communication"]

    def test_no_completed_raters_raises(self, db, factory):
        assessment = factory.assessment(is_360=True)
        factory.dimension(assessment, "Vision")
        target = factory.profile()
        pending = factory.assignment(assessment, factory.profile(), target=target, completed=False)
        with pytest.raises(ReportGenerationError, match="No completed assignments"):
            generate_360_report(db, pending.id)


class TestGenerateLeaderBlockerReport:
    def test_scores_benchmarks_and_geonorms(self, db, leader_setup):
        s = leader_setup
        _refresh(db, s["assignment"], s["peer_assignment"])

        report = generate_leader_blocker_report(db, s["assignment"].id)

        assert report.user_name == "Pat Lee"
        assert report.group_name == "Team Alpha"
        dims = {d.dimension_name: d for d in report.dimensions}
        assert list(dims) == ["Delivery", "Vision"]
        assert dims["Vision"].target_score == pytest.approx(3.0)
        assert dims["Vision"].industry_benchmark == pytest.approx(4.0)
        assert dims["Vision"].geonorm == pytest.approx(4.0)
        assert dims["Vision"].geonorm_participant_count == 2
        assert dims["Vision"].improvement_needed is True
        assert dims["Vision"].definition == "Sets direction"
        assert dims["Delivery"].industry_benchmark is None
        assert dims["Delivery"].improvement_needed is False
        assert report.overall_score == pytest.approx(4.0)

    def test_uses_assigned_feedback(self, db, leader_setup):
        s = leader_setup
        _refresh(db, s["assignment"])
        db.add(
            ReportData(
                assignment_id=s["assignment"].id,
                feedback_assigned=[
                    {"dimension_id": s["vision"].id, "feedback_id": "f1", "feedback_content": "Paint the picture", "type": "specific"},
                    {"dimension_id": None, "feedback_id": "f2", "feedback_content": "Solid overall", "type": "overall"},
                ],
            )
        )
        db.commit()

        report = generate_leader_blocker_report(db, s["assignment"].id)
        vision = next(d for d in report.dimensions if d.dimension_name == "Vision")
        assert vision.specific_feedback == "Paint the picture"
        assert vision.specific_feedback_id == "f1"
        assert report.overall_feedback == "Solid overall"

    def test_rejects_360_assessments(self, db, setup_360):
        with pytest.raises(ReportGenerationError, match="360"):
            generate_leader_blocker_report(db, setup_360["self_assignment"].id)

    def test_no_scores_gives_empty_report(self, db, factory):
        assessment = factory.assessment()
        factory.dimension(assessment, "Vision")
        assignment = factory.assignment(assessment, factory.profile())
        report = generate_leader_blocker_report(db, assignment.id)
        assert report.dimensions == []
        assert report.overall_score == 0.0


class TestAssignFeedback:
    def test_overall_in_range_and_one_specific(self, db, leader_setup, factory):
        s = leader_setup
        _refresh(db, s["assignment"])
        overall = factory.feedback(s["assessment"], "Vision overall", type="overall", dimension=s["vision"], min_score=2, max_score=4)
        factory.feedback(s["assessment"], "Delivery overall", type="overall", dimension=s["delivery"], max_score=4)
        low = factory.feedback(s["assessment"], "Low vision", dimension=s["vision"], max_score=3.5)
        factory.feedback(s["assessment"], "High vision", dimension=s["vision"], min_score=4)
        summary = factory.feedback(s["assessment"], "Summary", type="overall", min_score=3)

        assigned = assign_feedback(db, s["assignment"].id, s["assessment"].id, rng=random.Random(7))
        by_key = {(a.dimension_id, a.type): a.feedback_id for a in assigned}

        assert by_key[(s["vision"].id, "overall")] == overall.id
        assert by_key[(s["vision"].id, "specific")] == low.id
        # Delivery scored 5, above the overall entry's max
        assert (s["delivery"].id, "overall") not in by_key
        assert by_key[(None, "overall")] == summary.id

    def test_no_scores_assigns_nothing(self, db, factory):
        assessment = factory.assessment()
        factory.dimension(assessment, "Vision")
        assignment = factory.assignment(assessment, factory.profile())
        assert assign_feedback(db, assignment.id, assessment.id) == []


class TestTemplates:
    def _report(self):
        return {
            "overall_score": 3.2,
            "overall_feedback": "Well done",
            "dimensions": [
                {
                    "dimension_id": "d1",
                    "target_score": 3.2,
                    "industry_benchmark": 3.0,
                    "geonorm": 3.1,
                    "geonorm_participant_count": 4,
                    "improvement_needed": False,
                    "specific_feedback": "Keep going",
                }
            ],
        }

    def test_no_template_returns_report_unchanged(self):
        report = self._report()
        assert apply_template(report, None) is report

    def test_disabled_components_are_removed(self):
        template = {"components": {"benchmarks": False, "feedback": False, "overall_score": False}}
        result = apply_template(self._report(), template)
        dim = result["dimensions"][0]
        assert "industry_benchmark" not in dim
        assert "specific_feedback" not in dim
        assert dim["geonorm"] == 3.1
        assert "overall_feedback" not in result
        assert result["overall_score"] is None

    def test_dimension_breakdown_off_empties_dimensions(self):
        result = apply_template(self._report(), {"components": {"dimension_breakdown": False}})
        assert result["dimensions"] == []

    def test_labels_merge_over_defaults(self):
        template = {"labels": {"geonorm_label": "Team Average"}, "styling": {"primary_color": "#000000"}}
        result = apply_template(self._report(), template)
        assert result["_templateLabels"]["geonorm_label"] == "Team Average"
        assert result["_templateLabels"]["benchmark_label"] == DEFAULT_LABELS["benchmark_label"]
        assert result["_templateStyling"] == {"primary_color": "#000000"}

    def test_input_not_mutated(self):
        report = self._report()
        apply_template(report, {"components": {"benchmarks": False}})
        assert "industry_benchmark" in report["dimensions"][0]

    def test_default_template_has_everything_on(self):
        template = default_template()
        assert all(template["components"].values())
        assert template["labels"]["overall_score_label"] == "Overall Score"

    def test_default_flag_wins_over_recency(self, db, factory):
        assessment = factory.assessment()
        chosen = factory.template(assessment, name="Chosen", is_default=True)
        factory.template(assessment, name="Newer", is_default=False)
        assert get_report_template(db, assessment.id).id == chosen.id


class TestReportService:
    def test_build_report_persists_and_assigns_feedback(self, db, leader_setup, factory):
        s = leader_setup
        factory.feedback(s["assessment"], "Focus on vision", dimension=s["vision"])

        report = build_report(db, s["assignment"])

        row = db.query(ReportData).filter_by(assignment_id=s["assignment"].id).one()
        assert row.dimension_scores["assessment_title"] == "Leadership Assessment"
        assert row.overall_score == pytest.approx(report["overall_score"])
        assert row.feedback_assigned[0]["feedback_content"] == "Focus on vision"
        assert row.calculated_at is not None

    def test_incomplete_assignment_is_400(self, db, factory):
        assessment = factory.assessment()
        factory.dimension(assessment, "Vision")
        assignment = factory.assignment(assessment, factory.profile(), completed=False)
        with pytest.raises(HTTPException) as exc:
            build_report(db, assignment)
        assert exc.value.status_code == 400

    def test_missing_dimensions_is_400(self, db, factory):
        assessment = factory.assessment()
        assignment = factory.assignment(assessment, factory.profile())
        with pytest.raises(HTTPException) as exc:
            build_report(db, assignment)
        assert exc.value.status_code == 400
        assert "dimensions" in exc.value.detail

    def test_get_report_uses_cache_until_recompleted(self, db, leader_setup):
        s = leader_setup
        first = get_report(db, s["assignment"])
        second = get_report(db, s["assignment"])
        assert first["cached"] is False
        assert second["cached"] is True

        s["assignment"].completed_at = utcnow() + timedelta(minutes=5)
        db.commit()
        assert get_report(db, s["assignment"])["cached"] is False

    def test_regeneration_invalidates_ready_pdf(self, db, leader_setup):
        s = leader_setup
        build_report(db, s["assignment"])
        row = db.query(ReportData).filter_by(assignment_id=s["assignment"].id).one()
        row.pdf_status = PdfStatus.READY
        db.commit()

        build_report(db, s["assignment"])
        db.refresh(row)
        assert row.pdf_status == PdfStatus.NOT_REQUESTED
        assert row.pdf_version == 2

    def test_mark_pdf_stale_ignores_unrendered_rows(self):
        row = ReportData(pdf_status=PdfStatus.FAILED, pdf_version=3)
        mark_pdf_stale(row)
        assert row.pdf_status == PdfStatus.FAILED
        assert row.pdf_version == 3
