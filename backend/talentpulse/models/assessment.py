from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..platform.database import Base
from ..shared.utils import new_uuid


class FieldType:
    MULTIPLE_CHOICE = "multiple_choice"
    SLIDER = "slider"
    TEXT_INPUT = "text_input"
    RICH_TEXT = "rich_text"


class Assessment(Base):
    __tablename__ = "assessments"

    id = Column(String(36), primary_key=True, default=new_uuid)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text)
    is_360 = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    client = relationship("Client")
    dimensions = relationship("Dimension", back_populates="assessment", cascade="all, delete-orphan")
    fields = relationship("Field", back_populates="assessment", cascade="all, delete-orphan")


class Dimension(Base):
    __tablename__ = "dimensions"
    __table_args__ = (UniqueConstraint("assessment_id", "name", name="uq_dimensions_assessment_name"),)

    id = Column(String(36), primary_key=True, default=new_uuid)
    assessment_id = Column(String(36), ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_id = Column(String(36), ForeignKey("dimensions.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String, nullable=False)
    code = Column(String, nullable=False)
    definition = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    assessment = relationship("Assessment", back_populates="dimensions")
    parent = relationship("Dimension", remote_side=[id], back_populates="children")
    children = relationship("Dimension", back_populates="parent")


class Field(Base):
    __tablename__ = "fields"

    id = Column(String(36), primary_key=True, default=new_uuid)
    assessment_id = Column(String(36), ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True)
    dimension_id = Column(String(36), ForeignKey("dimensions.id", ondelete="SET NULL"), nullable=True, index=True)
    type = Column(String, nullable=False)
    content = Column(Text, nullable=False, default="")
    order = Column(Integer, nullable=False, default=0)
    # [{"label": "Never", "value": 1}, ...]
    anchors = Column(JSON, default=list)

    assessment = relationship("Assessment", back_populates="fields")
    dimension = relationship("Dimension")
