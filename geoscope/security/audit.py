"""
Denial auditing.

``record_denial`` is fire-and-forget: the caller is about to raise
``AuthorizationDenied`` and must do so whether or not the audit write works.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from geoscope.models.security import AuditLog

logger = logging.getLogger(__name__)

AUTHORIZATION_DENIED = "AUTHORIZATION_DENIED"


@dataclass(frozen=True)
class DenialRecord:
    user_id: str
    entity_type: str
    entity_id: str | None
    action: str
    reason: str


class DenialAuditor(Protocol):
    def record_denial(self, record: DenialRecord) -> None: ...


class LoggingDenialAuditor:
    """Writes denials to the log only (no storage)."""

    def record_denial(self, record: DenialRecord) -> None:
        logger.info(
            "Authorization denied user=%s entity=%s:%s action=%s reason=%s",
            record.user_id,
            record.entity_type,
            record.entity_id,
            record.action,
            record.reason,
        )


class SqlDenialAuditor(LoggingDenialAuditor):
    """
    Persists denials to ``audit_logs``.

    Each row is written and committed through its own session from
    ``session_factory``, never the request's session, so pending request work
    is neither committed nor rolled back by an audit. A failed write is only
    logged.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def record_denial(self, record: DenialRecord) -> None:
        super().record_denial(record)
        with self._session_factory() as db:
            try:
                db.add(
                    AuditLog(
                        user_id=record.user_id,
                        action_type=AUTHORIZATION_DENIED,
                        entity_type=record.entity_type,
                        entity_id=record.entity_id,
                        details={"action": record.action, "reason": record.reason},
                    )
                )
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                logger.warning(
                    "Failed to audit denial user=%s entity=%s:%s",
                    record.user_id,
                    record.entity_type,
                    record.entity_id,
                    exc_info=True,
                )
