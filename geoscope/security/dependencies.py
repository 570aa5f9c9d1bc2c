from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from geoscope.db.loaders import load_hierarchy, load_rules
from geoscope.db.session import SessionLocal, get_db
from geoscope.geo_authz.cache import AreaSetCache
from geoscope.geo_authz.evaluator import resolve_authorized_areas
from geoscope.geo_authz.types import AuthorizedAreaSet
from geoscope.models.security import User
from geoscope.security.audit import SqlDenialAuditor
from geoscope.security.auth import authenticate, load_user
from geoscope.security.config import SecurityConfig
from geoscope.security.context import GeoAuthzContext
from geoscope.security.guards import GeographicGuard

logger = logging.getLogger(__name__)


def get_security_config(request: Request) -> SecurityConfig:
    config = getattr(request.app.state, "security_config", None)
    if config is None:
        raise RuntimeError("Security config not loaded. Did app startup run?")
    return config


def get_area_set_cache(request: Request) -> AreaSetCache:
    cache = getattr(request.app.state, "area_set_cache", None)
    if cache is None:
        raise RuntimeError("Area set cache not configured. Did app startup run?")
    return cache


def get_current_user(request: Request) -> User:
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


def get_authz(request: Request) -> GeoAuthzContext:
    authz = getattr(request.state, "authz", None)
    if authz is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return authz


def get_audit_session_factory() -> Callable[[], Session]:
    """Sessions for audit rows; kept apart from the request session."""
    return SessionLocal


def get_guard(
    db: Session = Depends(get_db),
    audit_sessions: Callable[[], Session] = Depends(get_audit_session_factory),
) -> GeographicGuard:
    return GeographicGuard(db, auditor=SqlDenialAuditor(audit_sessions))


def resolve_area_set(db: Session, user_id: str) -> AuthorizedAreaSet:
    """Recompute one user's area set from the current tree and rules."""
    return resolve_authorized_areas(load_hierarchy(db), load_rules(db, user_id))


def enforce_security(
    request: Request,
    config: SecurityConfig = Depends(get_security_config),
    cache: AreaSetCache = Depends(get_area_set_cache),
    db: Session = Depends(get_db, use_cache=False),
) -> None:
    """
    Global security dependency (configuration-driven).

    Resolves the caller, their role and their AuthorizedAreaSet once per
    request and attaches a GeoAuthzContext to ``request.state``; route
    handlers never evaluate rules themselves.
    """

    path = request.url.path
    method = request.method.upper()

    rule = config.match(path, method)

    # Optional decorator metadata.
    endpoint = request.scope.get("endpoint")
    decorator_roles = set(getattr(endpoint, "__security_required_roles__", set())) if endpoint else set()
    decorator_filter_geo = bool(getattr(endpoint, "__security_filter_by_geography__", False)) if endpoint else False

    auth_required = rule.auth_required or bool(decorator_roles) or decorator_filter_geo
    if not auth_required:
        return

    claims = authenticate(request, config)
    if claims is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    user = load_user(db, claims.user_id)
    request.state.user = user

    required_roles = set(rule.required_roles) | decorator_roles
    if required_roles and user.role.value not in required_roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient role. Required one of: {sorted(required_roles)}",
        )

    if claims.area_set is not None:
        area_set = claims.area_set
    else:
        area_set = cache.get_or_resolve(user.id, lambda: resolve_area_set(db, user.id))

    request.state.authz = GeoAuthzContext(
        user_id=user.id,
        # Role from storage wins over the token claim.
        role=user.role,
        area_set=area_set,
        filter_by_geography=rule.filter_by_geography or decorator_filter_geo,
    )
    logger.debug(
        "Request authz user=%s role=%s restricted=%s filter_by_geography=%s path=%s",
        user.id,
        user.role.value,
        area_set.has_restrictions,
        request.state.authz.filter_by_geography,
        path,
    )
