from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from geoscope.db.loaders import load_hierarchy
from geoscope.db.session import get_db
from geoscope.geo_authz.breakdown import BreakdownFilters, Pagination
from geoscope.schemas.analytics import BreakdownOut
from geoscope.security.context import GeoAuthzContext
from geoscope.security.dependencies import get_authz, get_guard
from geoscope.security.guards import GeographicGuard
from geoscope.services.analytics import GeographicBreakdownService
from geoscope.settings import get_settings

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/geographic-breakdown", response_model=BreakdownOut)
def geographic_breakdown(
    parent_geographic_area_id: str | None = Query(default=None, alias="parentGeographicAreaId"),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    activity_category_ids: list[str] | None = Query(default=None, alias="activityCategoryIds"),
    activity_type_ids: list[str] | None = Query(default=None, alias="activityTypeIds"),
    venue_ids: list[str] | None = Query(default=None, alias="venueIds"),
    population_ids: list[str] | None = Query(default=None, alias="populationIds"),
    page: int = Query(default=1),
    page_size: int = Query(default=100, alias="pageSize"),
    db: Session = Depends(get_db),
    authz: GeoAuthzContext = Depends(get_authz),
    guard: GeographicGuard = Depends(get_guard),
) -> BreakdownOut:
    filters = BreakdownFilters(
        start_date=start_date,
        end_date=end_date,
        activity_category_ids=activity_category_ids,
        activity_type_ids=activity_type_ids,
        venue_ids=venue_ids,
        population_ids=population_ids,
    )
    pagination = Pagination(page=page, page_size=page_size)

    area_set = authz.area_set.unrestricted() if authz.is_admin else authz.area_set
    service = GeographicBreakdownService(db, dialect=get_settings().resolved_sql_dialect())
    with guard.audit_denials(authz):
        result = service.get_breakdown(load_hierarchy(db), area_set, parent_geographic_area_id, filters, pagination)
    return BreakdownOut(data=result.rows, pagination=result.pagination())
