"""
Per-resource geographic guards.

Every resource maps to at most one area:

* participant -> area of the current home venue
* activity    -> area of the current venue
* venue       -> its own area
* area        -> itself

Rules of the contract, in order:

1. ADMINISTRATOR bypasses all checks.
2. A record with no geographic association is allowed.
3. Reads need READ_ONLY or FULL; create/update/delete/associate need FULL.
4. Anything else is audited and raised as ``AuthorizationDenied``.

Bulk checks (explicit area filters, breakdown parents) raise from the
services; routes run them inside ``GeographicGuard.audit_denials`` so those
denials reach the auditor too. A failing auditor never replaces the denial.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from geoscope.db.loaders import current_activity_area_id, current_participant_area_id, venue_area_id
from geoscope.geo_authz.errors import CANNOT_CREATE_TOP_LEVEL_AREA, GEOGRAPHIC_AUTHORIZATION_DENIED, AuthorizationDenied
from geoscope.geo_authz.types import RequiredAccess, check_access
from geoscope.security.audit import DenialAuditor, DenialRecord, LoggingDenialAuditor
from geoscope.security.context import GeoAuthzContext

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    READ = "READ"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ASSOCIATE = "ASSOCIATE"

    @property
    def required_access(self) -> RequiredAccess:
        return RequiredAccess.READ if self is Action.READ else RequiredAccess.WRITE


class GeographicGuard:
    def __init__(self, db: Session, auditor: DenialAuditor | None = None) -> None:
        self._db = db
        self._auditor = auditor or LoggingDenialAuditor()

    def _record(self, ctx: GeoAuthzContext, entity_type: str, entity_id: str | None, action: str, reason: str) -> None:
        record = DenialRecord(
            user_id=ctx.user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            reason=reason,
        )
        try:
            self._auditor.record_denial(record)
        except Exception:
            # The deny is already decided; an audit failure is only logged.
            logger.warning(
                "Denial auditor failed user=%s entity=%s:%s",
                ctx.user_id,
                entity_type,
                entity_id,
                exc_info=True,
            )

    def _deny(self, ctx: GeoAuthzContext, entity_type: str, entity_id: str | None, action: Action, reason: str) -> None:
        self._record(ctx, entity_type, entity_id, action.value, reason)
        raise AuthorizationDenied(entity_type, entity_id, action.value, reason=reason)

    @contextmanager
    def audit_denials(self, ctx: GeoAuthzContext) -> Iterator[None]:
        """Audit any ``AuthorizationDenied`` raised in the block, then let it propagate."""
        try:
            yield
        except AuthorizationDenied as exc:
            self._record(ctx, exc.entity_type, exc.entity_id, exc.action, exc.reason)
            raise

    def check(
        self,
        ctx: GeoAuthzContext,
        entity_type: str,
        entity_id: str | None,
        area_id: str | None,
        action: Action = Action.READ,
    ) -> None:
        if ctx.is_admin:
            return
        if area_id is None:
            return

        level = ctx.area_set.access_level(area_id)
        if check_access(level, action.required_access):
            return

        logger.debug(
            "Guard denied user=%s entity=%s:%s area=%s level=%s action=%s",
            ctx.user_id,
            entity_type,
            entity_id,
            area_id,
            level.value,
            action.value,
        )
        self._deny(ctx, entity_type, entity_id, action, GEOGRAPHIC_AUTHORIZATION_DENIED)

    def authorize_participant(self, ctx: GeoAuthzContext, participant_id: str, action: Action = Action.READ) -> None:
        if ctx.is_admin:
            return
        self.check(ctx, "PARTICIPANT", participant_id, current_participant_area_id(self._db, participant_id), action)

    def authorize_activity(self, ctx: GeoAuthzContext, activity_id: str, action: Action = Action.READ) -> None:
        if ctx.is_admin:
            return
        self.check(ctx, "ACTIVITY", activity_id, current_activity_area_id(self._db, activity_id), action)

    def authorize_venue(self, ctx: GeoAuthzContext, venue_id: str, action: Action = Action.READ) -> None:
        if ctx.is_admin:
            return
        self.check(ctx, "VENUE", venue_id, venue_area_id(self._db, venue_id), action)

    def authorize_area(self, ctx: GeoAuthzContext, area_id: str, action: Action = Action.READ) -> None:
        self.check(ctx, "GEOGRAPHIC_AREA", area_id, area_id, action)

    def validate_create_area(self, ctx: GeoAuthzContext, parent_area_id: str | None) -> None:
        """
        Restricted users may only create areas under a parent they fully control.
        """
        if ctx.is_admin or not ctx.area_set.has_restrictions:
            return
        if parent_area_id is None:
            self._deny(ctx, "GEOGRAPHIC_AREA", None, Action.CREATE, CANNOT_CREATE_TOP_LEVEL_AREA)
        self.check(ctx, "GEOGRAPHIC_AREA", parent_area_id, parent_area_id, Action.CREATE)
