from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from geoscope.db.loaders import activity_ids_in_areas, load_hierarchy
from geoscope.db.session import get_db
from geoscope.models.activity import Activity, Participant
from geoscope.schemas.geography import ActivityOut, ParticipantOut
from geoscope.security.context import GeoAuthzContext
from geoscope.security.decorators import filter_by_geography
from geoscope.security.dependencies import get_authz, get_guard
from geoscope.security.guards import GeographicGuard
from geoscope.services.area_filter import effective_area_ids

router = APIRouter(tags=["activities"])


@router.get("/activities", response_model=list[ActivityOut])
def list_activities(
    geographic_area_id: list[str] | None = Query(default=None, alias="geographicAreaId"),
    db: Session = Depends(get_db),
    authz: GeoAuthzContext = Depends(get_authz),
    guard: GeographicGuard = Depends(get_guard),
) -> list[Activity]:
    """
    Activities in the caller's full-access areas, optionally narrowed to the
    subtrees of ``geographicAreaId``.
    """

    area_set = authz.area_set
    if authz.is_admin:
        area_set = area_set.unrestricted()

    stmt = select(Activity).order_by(Activity.id)
    if geographic_area_id or area_set.has_restrictions:
        with guard.audit_denials(authz):
            area_ids = effective_area_ids(load_hierarchy(db), area_set, geographic_area_id)
        if area_ids is not None:
            stmt = stmt.where(Activity.id.in_(activity_ids_in_areas(area_ids)))
    return list(db.scalars(stmt).all())


@router.get("/activities/{id}", response_model=ActivityOut)
def get_activity(
    id: str,
    db: Session = Depends(get_db),
    authz: GeoAuthzContext = Depends(get_authz),
    guard: GeographicGuard = Depends(get_guard),
) -> Activity:
    guard.authorize_activity(authz, id)
    activity = db.get(Activity, id)
    if activity is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found")
    return activity


@router.get("/participants", response_model=list[ParticipantOut])
@filter_by_geography()
def list_participants(db: Session = Depends(get_db)) -> list[Participant]:
    # No YAML entry: the decorator turns on transparent scoping for this route.
    return list(db.scalars(select(Participant).order_by(Participant.id)).all())


@router.get("/participants/{id}", response_model=ParticipantOut)
def get_participant(
    id: str,
    db: Session = Depends(get_db),
    authz: GeoAuthzContext = Depends(get_authz),
    guard: GeographicGuard = Depends(get_guard),
) -> Participant:
    guard.authorize_participant(authz, id)
    participant = db.get(Participant, id)
    if participant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Participant not found")
    return participant
