"""
Geographic access evaluation.

Rules attach ALLOW or DENY to nodes of the area tree and propagate:

1. A user with no rules at all is unrestricted (FULL everywhere).
2. For an area, the nearest explicit rule on the area itself or its ancestors
   decides: ALLOW -> FULL, DENY -> NONE. A rule directly on the area always
   beats anything inherited.
3. An area without a rule of its own that is not covered by an inherited ALLOW
   is READ_ONLY when it is a strict ancestor of an ALLOW area
   (navigation/breadcrumbs), else NONE. This also holds below an inherited
   DENY, so the path down to a deeper re-grant stays navigable.

The flattened :class:`AuthorizedAreaSet` gives the same answer as
:meth:`GeoAuthorizationEngine.evaluate_access` for every area in the tree.

Everything here is pure: callers load the tree and rules, and audit denials.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging

from .hierarchy import AreaHierarchy
from .types import AccessLevel, AuthorizationRule, AuthorizedArea, AuthorizedAreaSet, Polarity, rules_to_mapping

logger = logging.getLogger(__name__)


def _as_mapping(rules: Mapping[str, Polarity] | Iterable[AuthorizationRule]) -> dict[str, Polarity]:
    if isinstance(rules, Mapping):
        return {str(k): Polarity(v) for k, v in rules.items()}
    return rules_to_mapping(rules)


class GeoAuthorizationEngine:
    """
    Evaluator + resolver bound to one user's rule snapshot and one tree snapshot.

    Usage:
        engine = GeoAuthorizationEngine(hierarchy, {"city-1": Polarity.ALLOW})
        engine.evaluate_access("neighbourhood-7")   # AccessLevel.FULL
        engine.resolve()                            # AuthorizedAreaSet
    """

    def __init__(
        self,
        hierarchy: AreaHierarchy,
        rules: Mapping[str, Polarity] | Iterable[AuthorizationRule],
    ) -> None:
        self._hierarchy = hierarchy
        all_rules = _as_mapping(rules)
        self._has_restrictions = bool(all_rules)

        known: dict[str, Polarity] = {}
        for area_id, polarity in all_rules.items():
            if area_id not in hierarchy:
                logger.warning("Ignoring authorization rule for unknown area=%s polarity=%s", area_id, polarity.value)
                continue
            known[area_id] = polarity
        self._rules = known

    @property
    def hierarchy(self) -> AreaHierarchy:
        return self._hierarchy

    @property
    def has_restrictions(self) -> bool:
        return self._has_restrictions

    def _allow_ids(self) -> list[str]:
        return sorted(a for a, p in self._rules.items() if p is Polarity.ALLOW)

    def _deny_ids(self) -> list[str]:
        return sorted(a for a, p in self._rules.items() if p is Polarity.DENY)

    def nearest_rule(self, area_id: str) -> Polarity | None:
        """Polarity of the closest rule on ``area_id`` or its ancestors, if any."""
        if area_id in self._rules:
            return self._rules[area_id]
        for ancestor in self._hierarchy.ancestors(area_id):
            if ancestor in self._rules:
                return self._rules[ancestor]
        return None

    def evaluate_access(self, area_id: str) -> AccessLevel:
        if not self._has_restrictions:
            return AccessLevel.FULL

        polarity = self.nearest_rule(area_id)
        if polarity is Polarity.ALLOW:
            return AccessLevel.FULL
        if self._rules.get(area_id) is Polarity.DENY:
            return AccessLevel.NONE

        # Every ALLOW area resolves to FULL, so being above any of them is
        # enough for navigation access.
        for allow_id in self._allow_ids():
            if area_id in self._hierarchy.ancestors(allow_id):
                return AccessLevel.READ_ONLY
        return AccessLevel.NONE

    def resolve(self) -> AuthorizedAreaSet:
        if not self._has_restrictions:
            return AuthorizedAreaSet.unrestricted()

        deny_ids = self._deny_ids()
        full: set[str] = set()
        ancestors: set[str] = set()
        for allow_id in self._allow_ids():
            # DENY nodes cut the subtree; deeper ALLOW nodes are expanded as
            # their own roots in this same loop.
            full.update(self._hierarchy.descendants_pruned(allow_id, stop_at=deny_ids))
            ancestors.update(self._hierarchy.ancestors(allow_id))

        # An area denied by its own rule is never navigable.
        read_only = ancestors - full - set(deny_ids)
        logger.debug(
            "Resolved authorized areas rules=%d full=%d read_only=%d",
            len(self._rules),
            len(full),
            len(read_only),
        )
        return AuthorizedAreaSet(
            full_area_ids=frozenset(full),
            read_only_area_ids=frozenset(read_only),
            has_restrictions=True,
        )

    def authorized_areas(
        self,
        details: Mapping[str, tuple[str | None, str | None]] | None = None,
    ) -> list[AuthorizedArea]:
        """
        Per-area listing for the administrator view.

        ``details`` maps area id to ``(name, area_type)``. An unrestricted user
        gets every area in the snapshot at FULL. Explicitly denied subtrees are
        listed at NONE so administrators can see what a DENY removed.
        """
        details = details or {}

        def row(area_id: str, level: AccessLevel, **flags: bool) -> AuthorizedArea:
            name, area_type = details.get(area_id, (None, None))
            return AuthorizedArea(
                geographic_area_id=area_id,
                geographic_area_name=name,
                area_type=area_type,
                access_level=level,
                **flags,
            )

        if not self._has_restrictions:
            return [row(a, AccessLevel.FULL) for a in sorted(self._hierarchy.area_ids())]

        area_set = self.resolve()
        allow_ids = set(self._allow_ids())
        listed: dict[str, AuthorizedArea] = {}

        for area_id in sorted(area_set.full_area_ids):
            listed[area_id] = row(
                area_id,
                AccessLevel.FULL,
                is_descendant=area_id not in allow_ids,
            )
        for allow_id in sorted(allow_ids):
            for ancestor in self._hierarchy.ancestors(allow_id):
                if ancestor not in area_set.visible_area_ids:
                    continue
                existing = listed.get(ancestor)
                if existing is None:
                    listed[ancestor] = row(ancestor, AccessLevel.READ_ONLY, is_ancestor=True)
                elif not existing.is_ancestor:
                    listed[ancestor] = row(
                        ancestor,
                        existing.access_level,
                        is_ancestor=True,
                        is_descendant=existing.is_descendant,
                    )
        for deny_id in self._deny_ids():
            for area_id in sorted(self._hierarchy.descendants(deny_id)):
                if area_id in area_set.visible_area_ids:
                    continue
                listed.setdefault(area_id, row(area_id, AccessLevel.NONE))

        return [listed[a] for a in sorted(listed)]


def evaluate_access(
    hierarchy: AreaHierarchy,
    rules: Mapping[str, Polarity] | Iterable[AuthorizationRule],
    area_id: str,
) -> AccessLevel:
    """Convenience: evaluate one (user rules, area) pair."""
    return GeoAuthorizationEngine(hierarchy, rules).evaluate_access(area_id)


def resolve_authorized_areas(
    hierarchy: AreaHierarchy,
    rules: Mapping[str, Polarity] | Iterable[AuthorizationRule],
) -> AuthorizedAreaSet:
    """Convenience: flatten one user's rules into an :class:`AuthorizedAreaSet`."""
    return GeoAuthorizationEngine(hierarchy, rules).resolve()
