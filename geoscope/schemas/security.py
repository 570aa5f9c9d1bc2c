from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from geoscope.geo_authz.types import AccessLevel
from geoscope.models.security import UserRole


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    display_name: str | None
    role: UserRole
    is_active: bool


class AreaSetOut(BaseModel):
    full_area_ids: list[str]
    read_only_area_ids: list[str]
    has_restrictions: bool


class MeOut(BaseModel):
    user: UserOut
    area_set: AreaSetOut


class AuthorizedAreaOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    geographic_area_id: str
    geographic_area_name: str | None
    area_type: str | None
    access_level: AccessLevel
    is_ancestor: bool
    is_descendant: bool
