from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..platform.database import Base
from ..shared.utils import new_uuid


class Industry(Base):
    __tablename__ = "industries"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String, nullable=False)
    industry_id = Column(String(36), ForeignKey("industries.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    industry = relationship("Industry")
    profiles = relationship("Profile", back_populates="client")
    groups = relationship("Group", back_populates="client")
