"""
Read-only queries the engine needs from storage.

- ``load_area_tree``   -> every area as ``(id, parent_id)`` for AreaHierarchy
- ``load_rules``       -> one user's ALLOW/DENY rules
- current-venue lookups used by the resource guards and bulk filters
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import Select, and_, exists, or_, select
from sqlalchemy.orm import Session, aliased

from geoscope.db.filters import SKIP_GEOGRAPHIC_FILTER
from geoscope.geo_authz.hierarchy import AreaHierarchy
from geoscope.geo_authz.types import AuthorizationRule, Polarity
from geoscope.models.activity import ActivityVenueHistory, ParticipantAddressHistory
from geoscope.models.geography import GeographicArea, Venue
from geoscope.models.security import UserGeographicAuthorization

# Engine inputs must see the whole tree and the true current venue, never a
# request-scoped view of them.
UNSCOPED = {SKIP_GEOGRAPHIC_FILTER: True}


def load_area_tree(db: Session) -> list[tuple[str, str | None]]:
    rows = db.execute(
        select(GeographicArea.id, GeographicArea.parent_geographic_area_id),
        execution_options=UNSCOPED,
    ).all()
    return [(row[0], row[1]) for row in rows]


def load_hierarchy(db: Session) -> AreaHierarchy:
    return AreaHierarchy.from_rows(load_area_tree(db))


def load_rules(db: Session, user_id: str) -> list[AuthorizationRule]:
    stmt = (
        select(UserGeographicAuthorization.geographic_area_id, UserGeographicAuthorization.rule_type)
        .where(UserGeographicAuthorization.user_id == user_id)
        .order_by(UserGeographicAuthorization.created_at, UserGeographicAuthorization.id)
    )
    rows = db.execute(stmt, execution_options=UNSCOPED).all()
    return [AuthorizationRule(geographic_area_id=row[0], polarity=Polarity(row[1])) for row in rows]


def load_area_details(db: Session, area_ids: Iterable[str] | None = None) -> dict[str, tuple[str, str]]:
    """``area_id -> (name, area_type)`` for the given ids (all areas when None)."""
    stmt = select(GeographicArea.id, GeographicArea.name, GeographicArea.area_type)
    if area_ids is not None:
        stmt = stmt.where(GeographicArea.id.in_(list(area_ids)))
    return {row[0]: (row[1], row[2].value) for row in db.execute(stmt, execution_options=UNSCOPED).all()}


def _current_venue_select(
    history: type[ActivityVenueHistory] | type[ParticipantAddressHistory],
    owner: str,
    with_area: bool = True,
) -> Select:
    """
    ``SELECT <owner id>[, venue area]`` restricted to each owner's current history row.

    Latest non-null ``effective_from`` wins; a NULL ``effective_from`` is the
    initial row and only current when nothing dated exists. Ties break on id.
    """

    newer = aliased(history)
    owner_col = getattr(history, owner)
    superseded = exists().where(
        getattr(newer, owner) == owner_col,
        or_(
            and_(
                newer.effective_from.is_not(None),
                history.effective_from.is_not(None),
                newer.effective_from > history.effective_from,
            ),
            and_(newer.effective_from.is_not(None), history.effective_from.is_(None)),
            and_(newer.effective_from.is_(None), history.effective_from.is_(None), newer.id > history.id),
            and_(newer.effective_from == history.effective_from, newer.id > history.id),
        ),
    )
    columns = [owner_col, Venue.geographic_area_id] if with_area else [owner_col]
    return (
        select(*columns)
        .select_from(history)
        .join(Venue, Venue.id == history.venue_id)
        .where(~superseded)
    )


def activity_ids_in_areas(area_ids: Iterable[str]) -> Select:
    stmt = _current_venue_select(ActivityVenueHistory, "activity_id", with_area=False)
    return stmt.where(Venue.geographic_area_id.in_(list(area_ids)))


def participant_ids_in_areas(area_ids: Iterable[str]) -> Select:
    stmt = _current_venue_select(ParticipantAddressHistory, "participant_id", with_area=False)
    return stmt.where(Venue.geographic_area_id.in_(list(area_ids)))


def current_activity_area_id(db: Session, activity_id: str) -> str | None:
    """Area of the activity's current venue, or None when it has no venue yet."""
    stmt = _current_venue_select(ActivityVenueHistory, "activity_id").where(
        ActivityVenueHistory.activity_id == activity_id
    )
    row = db.execute(stmt, execution_options=UNSCOPED).first()
    return row[1] if row else None


def current_participant_area_id(db: Session, participant_id: str) -> str | None:
    """Area of the participant's current home venue, or None without address history."""
    stmt = _current_venue_select(ParticipantAddressHistory, "participant_id").where(
        ParticipantAddressHistory.participant_id == participant_id
    )
    row = db.execute(stmt, execution_options=UNSCOPED).first()
    return row[1] if row else None


def venue_area_id(db: Session, venue_id: str) -> str | None:
    stmt = select(Venue.geographic_area_id).where(Venue.id == venue_id)
    return db.execute(stmt, execution_options=UNSCOPED).scalar_one_or_none()
