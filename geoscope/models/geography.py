from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from geoscope.db.base import Base, new_id


class AreaType(str, enum.Enum):
    NEIGHBOURHOOD = "NEIGHBOURHOOD"
    COMMUNITY = "COMMUNITY"
    CITY = "CITY"
    CLUSTER = "CLUSTER"
    COUNTY = "COUNTY"
    PROVINCE = "PROVINCE"
    STATE = "STATE"
    COUNTRY = "COUNTRY"
    CONTINENT = "CONTINENT"
    HEMISPHERE = "HEMISPHERE"
    WORLD = "WORLD"


class GeographicArea(Base):
    """Node of the area forest. Only the parent pointer is stored."""

    __tablename__ = "geographic_areas"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    area_type: Mapped[AreaType] = mapped_column(Enum(AreaType, native_enum=False), nullable=False)

    # NULL for top-level areas.
    parent_geographic_area_id: Mapped[str | None] = mapped_column(
        ForeignKey("geographic_areas.id"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    parent: Mapped[GeographicArea | None] = relationship(remote_side="GeographicArea.id", back_populates="children")
    children: Mapped[list[GeographicArea]] = relationship(back_populates="parent")
    venues: Mapped[list["Venue"]] = relationship(back_populates="geographic_area")


class Venue(Base):
    __tablename__ = "venues"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    geographic_area_id: Mapped[str] = mapped_column(ForeignKey("geographic_areas.id"), nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    geographic_area: Mapped[GeographicArea] = relationship(back_populates="venues")
