from sqlalchemy import Column, String, Float, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..platform.database import Base
from ..shared.utils import new_uuid


class Benchmark(Base):
    __tablename__ = "benchmarks"
    __table_args__ = (UniqueConstraint("dimension_id", "industry_id", name="uq_benchmarks_dimension_industry"),)

    id = Column(String(36), primary_key=True, default=new_uuid)
    dimension_id = Column(String(36), ForeignKey("dimensions.id", ondelete="CASCADE"), nullable=False, index=True)
    industry_id = Column(String(36), ForeignKey("industries.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    dimension = relationship("Dimension")
    industry = relationship("Industry")
