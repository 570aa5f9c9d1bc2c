from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from geoscope.db.base import Base, new_id


class ActivityCategory(Base):
    __tablename__ = "activity_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class ActivityType(Base):
    __tablename__ = "activity_types"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    activity_category_id: Mapped[str] = mapped_column(
        ForeignKey("activity_categories.id"),
        nullable=False,
        index=True,
    )


class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    activity_type_id: Mapped[str] = mapped_column(ForeignKey("activity_types.id"), nullable=False, index=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    venue_history: Mapped[list[ActivityVenueHistory]] = relationship(back_populates="activity")
    assignments: Mapped[list[Assignment]] = relationship(back_populates="activity")


class ActivityVenueHistory(Base):
    """
    Where an activity is held over time.

    The current venue is the row with the latest ``effective_from``; a NULL
    ``effective_from`` marks the initial venue.
    """

    __tablename__ = "activity_venue_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    activity_id: Mapped[str] = mapped_column(ForeignKey("activities.id"), nullable=False, index=True)
    venue_id: Mapped[str] = mapped_column(ForeignKey("venues.id"), nullable=False, index=True)
    effective_from: Mapped[date | None] = mapped_column(Date, nullable=True)

    activity: Mapped[Activity] = relationship(back_populates="venue_history")


participant_populations = Table(
    "participant_populations",
    Base.metadata,
    Column("participant_id", ForeignKey("participants.id"), primary_key=True),
    Column("population_id", ForeignKey("populations.id"), primary_key=True),
)


class Population(Base):
    __tablename__ = "populations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class Participant(Base):
    __tablename__ = "participants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    address_history: Mapped[list[ParticipantAddressHistory]] = relationship(back_populates="participant")
    populations: Mapped[list[Population]] = relationship(secondary=participant_populations)


class ParticipantAddressHistory(Base):
    """Home venue of a participant over time (same "latest effective_from" rule as activities)."""

    __tablename__ = "participant_address_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    participant_id: Mapped[str] = mapped_column(ForeignKey("participants.id"), nullable=False, index=True)
    venue_id: Mapped[str] = mapped_column(ForeignKey("venues.id"), nullable=False, index=True)
    effective_from: Mapped[date | None] = mapped_column(Date, nullable=True)

    participant: Mapped[Participant] = relationship(back_populates="address_history")


class Assignment(Base):
    """A participant taking part in an activity (one participation row)."""

    __tablename__ = "assignments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    activity_id: Mapped[str] = mapped_column(ForeignKey("activities.id"), nullable=False, index=True)
    participant_id: Mapped[str] = mapped_column(ForeignKey("participants.id"), nullable=False, index=True)

    activity: Mapped[Activity] = relationship(back_populates="assignments")
