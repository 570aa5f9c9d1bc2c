from __future__ import annotations

from pydantic import BaseModel


class BreakdownRowOut(BaseModel):
    geographic_area_id: str
    geographic_area_name: str | None
    area_type: str | None
    activity_count: int
    participant_count: int
    participation_count: int


class PaginationOut(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class BreakdownOut(BaseModel):
    data: list[BreakdownRowOut]
    pagination: PaginationOut
