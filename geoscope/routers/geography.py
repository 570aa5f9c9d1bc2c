from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from geoscope.db.session import get_db
from geoscope.models.geography import GeographicArea, Venue
from geoscope.schemas.geography import GeographicAreaOut, VenueOut
from geoscope.security.context import GeoAuthzContext
from geoscope.security.dependencies import get_authz, get_guard
from geoscope.security.guards import GeographicGuard

router = APIRouter(tags=["geography"])


@router.get("/geographic-areas", response_model=list[GeographicAreaOut])
def list_geographic_areas(db: Session = Depends(get_db)) -> list[GeographicArea]:
    # Scoped transparently via geoscope/db/filters.py (full + read-only areas).
    return list(db.scalars(select(GeographicArea).order_by(GeographicArea.id)).all())


@router.get("/geographic-areas/{id}", response_model=GeographicAreaOut)
def get_geographic_area(
    id: str,
    db: Session = Depends(get_db),
    authz: GeoAuthzContext = Depends(get_authz),
    guard: GeographicGuard = Depends(get_guard),
) -> GeographicArea:
    area = db.get(GeographicArea, id)
    if area is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Geographic area not found")
    guard.authorize_area(authz, id)
    return area


@router.get("/venues", response_model=list[VenueOut])
def list_venues(db: Session = Depends(get_db)) -> list[Venue]:
    return list(db.scalars(select(Venue).order_by(Venue.id)).all())


@router.get("/venues/{id}", response_model=VenueOut)
def get_venue(
    id: str,
    db: Session = Depends(get_db),
    authz: GeoAuthzContext = Depends(get_authz),
    guard: GeographicGuard = Depends(get_guard),
) -> Venue:
    guard.authorize_venue(authz, id)
    venue = db.get(Venue, id)
    if venue is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Venue not found")
    return venue
