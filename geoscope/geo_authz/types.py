"""Value types shared by the hierarchy, evaluator, and query builder."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


class AccessLevel(str, enum.Enum):
    NONE = "NONE"
    READ_ONLY = "READ_ONLY"
    FULL = "FULL"


class Polarity(str, enum.Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


class RequiredAccess(str, enum.Enum):
    """What an operation needs: reads accept READ_ONLY, writes need FULL."""

    READ = "READ"
    WRITE = "WRITE"


def check_access(level: AccessLevel, required: RequiredAccess) -> bool:
    if required is RequiredAccess.WRITE:
        return level is AccessLevel.FULL
    return level is not AccessLevel.NONE


@dataclass(frozen=True)
class AuthorizationRule:
    """One user's rule binding an area to a polarity."""

    geographic_area_id: str
    polarity: Polarity


def rules_to_mapping(rules: Iterable[AuthorizationRule]) -> dict[str, Polarity]:
    """Collapse rules into ``area_id -> polarity`` (later entries overwrite earlier ones)."""
    mapping: dict[str, Polarity] = {}
    for rule in rules:
        mapping[rule.geographic_area_id] = Polarity(rule.polarity)
    return mapping


@dataclass(frozen=True)
class AuthorizedAreaSet:
    """
    Flattened result of resolving a user's rules against the area tree.

    This is what travels with a request (and inside the scope token) so bulk
    queries can filter by set membership instead of walking the tree per row.

    When ``has_restrictions`` is False the id sets are meaningless and the user
    must be treated as globally authorized.
    """

    full_area_ids: frozenset[str] = field(default_factory=frozenset)
    read_only_area_ids: frozenset[str] = field(default_factory=frozenset)
    has_restrictions: bool = False

    @classmethod
    def unrestricted(cls) -> AuthorizedAreaSet:
        return cls()

    @property
    def visible_area_ids(self) -> frozenset[str]:
        """Areas the user may at least navigate to (full + read-only)."""
        return self.full_area_ids | self.read_only_area_ids

    def access_level(self, area_id: str) -> AccessLevel:
        if not self.has_restrictions:
            return AccessLevel.FULL
        if area_id in self.full_area_ids:
            return AccessLevel.FULL
        if area_id in self.read_only_area_ids:
            return AccessLevel.READ_ONLY
        return AccessLevel.NONE

    def allows(self, area_id: str, required: RequiredAccess = RequiredAccess.READ) -> bool:
        return check_access(self.access_level(area_id), required)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict (sorted for stable token payloads)."""
        return {
            "full": sorted(self.full_area_ids),
            "read_only": sorted(self.read_only_area_ids),
            "restricted": self.has_restrictions,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AuthorizedAreaSet:
        return cls(
            full_area_ids=frozenset(str(a) for a in data.get("full") or []),
            read_only_area_ids=frozenset(str(a) for a in data.get("read_only") or []),
            has_restrictions=bool(data.get("restricted", False)),
        )


@dataclass(frozen=True)
class AuthorizedArea:
    """One row of the per-user "authorized areas" listing shown to administrators."""

    geographic_area_id: str
    geographic_area_name: str | None
    area_type: str | None
    access_level: AccessLevel
    is_ancestor: bool = False
    is_descendant: bool = False
