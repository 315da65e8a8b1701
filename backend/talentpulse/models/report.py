import enum

from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, ForeignKey, JSON, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..platform.database import Base
from ..shared.utils import new_uuid, utcnow


class PdfStatus(str, enum.Enum):
    NOT_REQUESTED = "not_requested"
    QUEUED = "queued"
    GENERATING = "generating"
    READY = "ready"
    FAILED = "failed"


class AssignmentDimensionScore(Base):
    __tablename__ = "assignment_dimension_scores"
    __table_args__ = (
        UniqueConstraint("assignment_id", "dimension_id", name="uq_assignment_dimension_scores"),
    )

    id = Column(String(36), primary_key=True, default=new_uuid)
    assignment_id = Column(String(36), ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    dimension_id = Column(String(36), ForeignKey("dimensions.id", ondelete="CASCADE"), nullable=False, index=True)
    avg_score = Column(Float, nullable=False, default=0.0)
    answer_count = Column(Integer, nullable=False, default=0)
    calculated_at = Column(DateTime(timezone=True), default=utcnow)

    assignment = relationship("Assignment")
    dimension = relationship("Dimension")


class ReportData(Base):
    __tablename__ = "report_data"

    id = Column(String(36), primary_key=True, default=new_uuid)
    assignment_id = Column(String(36), ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, unique=True)
    overall_score = Column(Float)
    # Full generated report payload (after template application)
    dimension_scores = Column(JSON)
    feedback_assigned = Column(JSON)
    geonorm_data = Column(JSON)
    calculated_at = Column(DateTime(timezone=True))
    pdf_status = Column(
        Enum(PdfStatus, values_callable=lambda e: [m.value for m in e], name="pdf_status"),
        nullable=False,
        default=PdfStatus.NOT_REQUESTED,
    )
    pdf_storage_path = Column(String)
    pdf_generated_at = Column(DateTime(timezone=True))
    pdf_version = Column(Integer, nullable=False, default=1)
    pdf_last_error = Column(Text)
    pdf_job_id = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    assignment = relationship("Assignment")


class ReportTemplate(Base):
    __tablename__ = "report_templates"

    id = Column(String(36), primary_key=True, default=new_uuid)
    assessment_id = Column(String(36), ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    components = Column(JSON, default=dict)
    labels = Column(JSON, default=dict)
    styling = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    assessment = relationship("Assessment")
