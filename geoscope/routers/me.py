from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from geoscope.db.loaders import load_area_details, load_hierarchy, load_rules
from geoscope.db.session import get_db
from geoscope.geo_authz.evaluator import GeoAuthorizationEngine
from geoscope.geo_authz.types import AuthorizedArea
from geoscope.models.security import User, UserRole
from geoscope.schemas.security import AreaSetOut, AuthorizedAreaOut, MeOut, UserOut
from geoscope.security.context import GeoAuthzContext
from geoscope.security.dependencies import get_authz, get_current_user

router = APIRouter(tags=["me"])


def authorized_areas_for(db: Session, user_id: str, role: UserRole) -> list[AuthorizedArea]:
    hierarchy = load_hierarchy(db)
    # Administrators bypass rules entirely, so their listing is every area.
    rules = [] if role is UserRole.ADMINISTRATOR else load_rules(db, user_id)
    engine = GeoAuthorizationEngine(hierarchy, rules)
    return engine.authorized_areas(load_area_details(db))


@router.get("/me", response_model=MeOut)
def me(user: User = Depends(get_current_user), authz: GeoAuthzContext = Depends(get_authz)) -> MeOut:
    area_set = authz.area_set
    return MeOut(
        user=UserOut.model_validate(user),
        area_set=AreaSetOut(
            full_area_ids=sorted(area_set.full_area_ids),
            read_only_area_ids=sorted(area_set.read_only_area_ids),
            has_restrictions=area_set.has_restrictions,
        ),
    )


@router.get("/me/authorized-areas", response_model=list[AuthorizedAreaOut])
def my_authorized_areas(
    db: Session = Depends(get_db),
    authz: GeoAuthzContext = Depends(get_authz),
) -> list[AuthorizedArea]:
    return authorized_areas_for(db, authz.user_id, authz.role)
