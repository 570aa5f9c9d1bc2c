from __future__ import annotations

from dataclasses import dataclass

from geoscope.geo_authz.types import AuthorizedAreaSet
from geoscope.models.security import UserRole


@dataclass(frozen=True)
class GeoAuthzContext:
    """
    Per-request geographic authorization context.

    Small and immutable so it can be attached to:
    - request.state (FastAPI request lifetime)
    - Session.info (SQLAlchemy session lifetime)
    """

    user_id: str
    role: UserRole
    area_set: AuthorizedAreaSet

    # Scope decision driven by the route's security rule.
    filter_by_geography: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMINISTRATOR

    @property
    def is_restricted(self) -> bool:
        """True when list queries must be narrowed to the caller's area sets."""
        return not self.is_admin and self.area_set.has_restrictions
