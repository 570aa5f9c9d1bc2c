"""Domain errors raised by the geographic authorization engine."""

from __future__ import annotations

from typing import Any

GEOGRAPHIC_AUTHORIZATION_DENIED = "GEOGRAPHIC_AUTHORIZATION_DENIED"
CANNOT_CREATE_TOP_LEVEL_AREA = "CANNOT_CREATE_TOP_LEVEL_AREA"


class GeoAuthzError(Exception):
    """
    Base class for engine errors.

    Carries an error ``code``, a human readable ``message``, the HTTP status the
    API layer should answer with, and free-form ``details``.
    """

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class AuthorizationDenied(GeoAuthzError):
    """Evaluation yielded less than the access level the action requires."""

    code = GEOGRAPHIC_AUTHORIZATION_DENIED
    status_code = 403

    def __init__(
        self,
        entity_type: str,
        entity_id: str | None,
        action: str,
        reason: str = GEOGRAPHIC_AUTHORIZATION_DENIED,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message or f"You do not have permission to {action.lower()} this {entity_type.lower()}",
            details={"entityType": entity_type, "entityId": entity_id, "action": action, "reason": reason},
        )
        self.code = reason
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.action = action
        self.reason = reason


class InvalidAreaReference(GeoAuthzError):
    """An area id (usually from an explicit filter) is not part of the hierarchy."""

    code = "INVALID_AREA_REFERENCE"
    status_code = 400

    def __init__(self, area_id: str) -> None:
        super().__init__(f"Geographic area {area_id!r} does not exist", details={"geographicAreaId": area_id})
        self.area_id = area_id


class HierarchyIntegrityFault(GeoAuthzError):
    """The area tree contains a cycle. Indicates corrupted data, not a user error."""

    code = "HIERARCHY_INTEGRITY_FAULT"
    status_code = 500

    def __init__(self, area_id: str) -> None:
        super().__init__(
            f"Cycle detected in geographic area hierarchy at {area_id!r}",
            details={"geographicAreaId": area_id},
        )
        self.area_id = area_id


class BreakdownQueryError(GeoAuthzError):
    """Invalid pagination or filter input for the breakdown query."""

    code = "VALIDATION_ERROR"
    status_code = 400
