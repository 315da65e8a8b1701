import enum

from sqlalchemy import Column, String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..platform.database import Base
from ..shared.utils import new_uuid


class AccessLevel(str, enum.Enum):
    MEMBER = "member"
    CLIENT_ADMIN = "client_admin"
    SUPER_ADMIN = "super_admin"


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=new_uuid)
    client_id = Column(String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=True, index=True)
    industry_id = Column(String(36), ForeignKey("industries.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    username = Column(String, nullable=True, unique=True)
    access_level = Column(
        Enum(AccessLevel, values_callable=lambda e: [m.value for m in e], name="access_level"),
        nullable=False,
        default=AccessLevel.MEMBER,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    client = relationship("Client", back_populates="profiles")
    industry = relationship("Industry")
    memberships = relationship("GroupMember", back_populates="profile", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.access_level in (AccessLevel.CLIENT_ADMIN, AccessLevel.SUPER_ADMIN)
