from sqlalchemy import Column, String, Text, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..platform.database import Base
from ..shared.utils import new_uuid


class FeedbackType:
    OVERALL = "overall"
    SPECIFIC = "specific"


class FeedbackLibrary(Base):
    __tablename__ = "feedback_library"

    id = Column(String(36), primary_key=True, default=new_uuid)
    assessment_id = Column(String(36), ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True)
    # NULL dimension marks assessment-level overall feedback
    dimension_id = Column(String(36), ForeignKey("dimensions.id", ondelete="CASCADE"), nullable=True, index=True)
    type = Column(String, nullable=False)
    feedback = Column(Text, nullable=False)
    min_score = Column(Float, nullable=True)
    max_score = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    dimension = relationship("Dimension")

    def accepts(self, score: float) -> bool:
        if self.min_score is not None and score < self.min_score:
            return False
        if self.max_score is not None and score > self.max_score:
            return False
        return True
