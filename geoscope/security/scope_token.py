"""
Signed bearer tokens that carry a user's geographic scope.

Claims:

* **sub**  - user id (str).
* **role** - one of :class:`~geoscope.models.security.UserRole`.
* **geo**  - optional :meth:`AuthorizedAreaSet.to_dict` snapshot. When present
  the request uses it as-is, so the snapshot can be stale for up to one token
  lifetime after rules change. When absent the set is resolved server-side.
* **iat** / **exp** - issued-at and expiry (verified on decode).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from geoscope.geo_authz.types import AuthorizedAreaSet
from geoscope.models.security import UserRole
from geoscope.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class ScopeTokenError(Exception):
    """Raised when a scope token cannot be trusted. Do not log the token."""

    pass


@dataclass(frozen=True)
class ScopeClaims:
    user_id: str
    role: UserRole
    area_set: AuthorizedAreaSet | None = None


def issue_scope_token(
    user_id: str,
    role: UserRole,
    area_set: AuthorizedAreaSet | None = None,
    settings: Settings | None = None,
) -> str:
    settings = settings or get_settings()
    now = datetime.now(tz=timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "role": UserRole(role).value,
        "iat": now,
        "exp": now + timedelta(seconds=settings.scope_token_ttl_seconds),
    }
    if area_set is not None:
        payload["geo"] = area_set.to_dict()
    return jwt.encode(payload, settings.scope_token_secret, algorithm=settings.scope_token_algorithm)


def decode_scope_token(token: str, settings: Settings | None = None) -> ScopeClaims:
    """Verify signature and expiry, then map claims. Raises ScopeTokenError."""
    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.scope_token_secret,
            algorithms=[settings.scope_token_algorithm],
            options={"require": ["sub", "exp"], "verify_exp": True},
        )
    except jwt.ExpiredSignatureError as e:
        logger.info("Scope token expired")
        raise ScopeTokenError("Token expired") from e
    except jwt.InvalidTokenError as e:
        logger.info("Scope token invalid: %s", type(e).__name__)
        raise ScopeTokenError("Invalid token") from e

    try:
        role = UserRole(payload.get("role"))
    except ValueError as e:
        raise ScopeTokenError("Invalid token: role") from e

    area_set = None
    geo = payload.get("geo")
    if geo is not None:
        if not isinstance(geo, dict):
            raise ScopeTokenError("Invalid token: geo")
        area_set = AuthorizedAreaSet.from_dict(geo)

    return ScopeClaims(user_id=str(payload["sub"]), role=role, area_set=area_set)
