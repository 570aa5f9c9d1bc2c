from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict

from geoscope.models.geography import AreaType


class GeographicAreaOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    area_type: AreaType
    parent_geographic_area_id: str | None


class VenueOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    address: str | None
    geographic_area_id: str
    created_at: datetime


class ActivityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    activity_type_id: str
    start_date: date
    end_date: date | None


class ParticipantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
