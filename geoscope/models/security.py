from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from geoscope.db.base import Base, new_id
from geoscope.geo_authz.types import Polarity


class UserRole(str, enum.Enum):
    ADMINISTRATOR = "ADMINISTRATOR"
    EDITOR = "EDITOR"
    READ_ONLY = "READ_ONLY"
    PII_RESTRICTED = "PII_RESTRICTED"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(200), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole, native_enum=False), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    geographic_authorizations: Mapped[list[UserGeographicAuthorization]] = relationship(
        back_populates="user",
        foreign_keys="UserGeographicAuthorization.user_id",
    )


class UserGeographicAuthorization(Base):
    """ALLOW/DENY rule binding a user to a geographic area (one per user and area)."""

    __tablename__ = "user_geographic_authorizations"
    __table_args__ = (UniqueConstraint("user_id", "geographic_area_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    geographic_area_id: Mapped[str] = mapped_column(ForeignKey("geographic_areas.id"), nullable=False, index=True)
    rule_type: Mapped[Polarity] = mapped_column(Enum(Polarity, native_enum=False), nullable=False)
    created_by: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    user: Mapped[User] = relationship(back_populates="geographic_authorizations", foreign_keys=[user_id])


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
