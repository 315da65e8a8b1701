"""initial report schema: clients, profiles, assessments, assignments, scores and report data

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

access_level = sa.Enum("member", "client_admin", "super_admin", name="access_level")
pdf_status = sa.Enum("not_requested", "queued", "generating", "ready", "failed", name="pdf_status")


def _id() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _fk(name: str, target: str, ondelete: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.String(length=36), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def _timestamps(updated: bool = True) -> list:
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True)))
    return cols


def upgrade() -> None:
    op.create_table(
        "industries",
        _id(),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        *_timestamps(updated=False),
    )
    op.create_table(
        "clients",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        _fk("industry_id", "industries.id", "SET NULL"),
        *_timestamps(),
    )
    op.create_table(
        "profiles",
        _id(),
        _fk("client_id", "clients.id", "CASCADE"),
        _fk("industry_id", "industries.id", "SET NULL"),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("username", sa.String(), nullable=True, unique=True),
        sa.Column("access_level", access_level, nullable=False, server_default="member"),
        *_timestamps(),
    )
    op.create_index(op.f("ix_profiles_email"), "profiles", ["email"], unique=True)
    op.create_table(
        "groups",
        _id(),
        _fk("client_id", "clients.id", "CASCADE"),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text()),
        _fk("target_id", "profiles.id", "SET NULL"),
        *_timestamps(),
    )
    op.create_table(
        "group_members",
        _id(),
        _fk("group_id", "groups.id", "CASCADE", nullable=False),
        _fk("profile_id", "profiles.id", "CASCADE", nullable=False),
        sa.Column("role", sa.String(), server_default="member"),
        *_timestamps(updated=False),
        sa.UniqueConstraint("group_id", "profile_id", name="uq_group_members_group_profile"),
    )
    op.create_table(
        "assessments",
        _id(),
        _fk("client_id", "clients.id", "SET NULL"),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("is_360", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_table(
        "dimensions",
        _id(),
        _fk("assessment_id", "assessments.id", "CASCADE", nullable=False),
        _fk("parent_id", "dimensions.id", "SET NULL"),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("definition", sa.Text()),
        *_timestamps(updated=False),
        sa.UniqueConstraint("assessment_id", "name", name="uq_dimensions_assessment_name"),
    )
    op.create_table(
        "fields",
        _id(),
        _fk("assessment_id", "assessments.id", "CASCADE", nullable=False),
        _fk("dimension_id", "dimensions.id", "SET NULL"),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("anchors", sa.JSON()),
    )
    op.create_table(
        "assignments",
        _id(),
        _fk("assessment_id", "assessments.id", "CASCADE", nullable=False),
        _fk("user_id", "profiles.id", "CASCADE", nullable=False),
        _fk("target_id", "profiles.id", "SET NULL"),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("started_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_table(
        "answers",
        _id(),
        _fk("assignment_id", "assignments.id", "CASCADE", nullable=False),
        _fk("field_id", "fields.id", "CASCADE", nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_table(
        "benchmarks",
        _id(),
        _fk("dimension_id", "dimensions.id", "CASCADE", nullable=False),
        _fk("industry_id", "industries.id", "CASCADE", nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("dimension_id", "industry_id", name="uq_benchmarks_dimension_industry"),
    )
    op.create_table(
        "feedback_library",
        _id(),
        _fk("assessment_id", "assessments.id", "CASCADE", nullable=False),
        _fk("dimension_id", "dimensions.id", "CASCADE"),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("feedback", sa.Text(), nullable=False),
        sa.Column("min_score", sa.Float()),
        sa.Column("max_score", sa.Float()),
        *_timestamps(updated=False),
    )
    op.create_table(
        "assignment_dimension_scores",
        _id(),
        _fk("assignment_id", "assignments.id", "CASCADE", nullable=False),
        _fk("dimension_id", "dimensions.id", "CASCADE", nullable=False),
        sa.Column("avg_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("answer_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("calculated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("assignment_id", "dimension_id", name="uq_assignment_dimension_scores"),
    )
    op.create_table(
        "report_data",
        _id(),
        _fk("assignment_id", "assignments.id", "CASCADE", nullable=False),
        sa.Column("overall_score", sa.Float()),
        sa.Column("dimension_scores", sa.JSON()),
        sa.Column("feedback_assigned", sa.JSON()),
        sa.Column("geonorm_data", sa.JSON()),
        sa.Column("calculated_at", sa.DateTime(timezone=True)),
        sa.Column("pdf_status", pdf_status, nullable=False, server_default="not_requested"),
        sa.Column("pdf_storage_path", sa.String()),
        sa.Column("pdf_generated_at", sa.DateTime(timezone=True)),
        sa.Column("pdf_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("pdf_last_error", sa.Text()),
        sa.Column("pdf_job_id", sa.String()),
        *_timestamps(),
        sa.UniqueConstraint("assignment_id", name="uq_report_data_assignment"),
    )
    op.create_index("ix_report_data_pdf_status", "report_data", ["pdf_status"])
    op.create_table(
        "report_templates",
        _id(),
        _fk("assessment_id", "assessments.id", "CASCADE", nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("components", sa.JSON()),
        sa.Column("labels", sa.JSON()),
        sa.Column("styling", sa.JSON()),
        *_timestamps(),
    )

    for table, column in (
        ("clients", "industry_id"),
        ("profiles", "client_id"),
        ("profiles", "industry_id"),
        ("groups", "client_id"),
        ("groups", "target_id"),
        ("group_members", "group_id"),
        ("group_members", "profile_id"),
        ("assessments", "client_id"),
        ("dimensions", "assessment_id"),
        ("dimensions", "parent_id"),
        ("fields", "assessment_id"),
        ("fields", "dimension_id"),
        ("assignments", "assessment_id"),
        ("assignments", "user_id"),
        ("assignments", "target_id"),
        ("assignments", "completed"),
        ("answers", "assignment_id"),
        ("answers", "field_id"),
        ("benchmarks", "dimension_id"),
        ("benchmarks", "industry_id"),
        ("feedback_library", "assessment_id"),
        ("feedback_library", "dimension_id"),
        ("assignment_dimension_scores", "assignment_id"),
        ("assignment_dimension_scores", "dimension_id"),
        ("report_templates", "assessment_id"),
    ):
        op.create_index(op.f(f"ix_{table}_{column}"), table, [column], unique=False)


def downgrade() -> None:
    for table in (
        "report_templates",
        "report_data",
        "assignment_dimension_scores",
        "feedback_library",
        "benchmarks",
        "answers",
        "assignments",
        "fields",
        "dimensions",
        "assessments",
        "group_members",
        "groups",
        "profiles",
        "clients",
        "industries",
    ):
        op.drop_table(table)
    pdf_status.drop(op.get_bind(), checkfirst=True)
    access_level.drop(op.get_bind(), checkfirst=True)
