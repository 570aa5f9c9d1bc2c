from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from geoscope.db.session import get_db
from geoscope.geo_authz.types import AuthorizedArea
from geoscope.models.security import User
from geoscope.routers.me import authorized_areas_for
from geoscope.schemas.security import AuthorizedAreaOut, UserOut
from geoscope.security.decorators import require_roles

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db)) -> list[User]:
    return list(db.scalars(select(User).order_by(User.email)).all())


@router.get("/users/{user_id}/authorized-areas", response_model=list[AuthorizedAreaOut])
@require_roles(["ADMINISTRATOR"])
def user_authorized_areas(user_id: str, db: Session = Depends(get_db)) -> list[AuthorizedArea]:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return authorized_areas_for(db, user.id, user.role)
