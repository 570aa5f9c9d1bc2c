from __future__ import annotations

from collections.abc import Iterable

from geoscope.geo_authz.errors import AuthorizationDenied
from geoscope.geo_authz.hierarchy import AreaHierarchy
from geoscope.geo_authz.types import AuthorizedAreaSet


def effective_area_ids(
    hierarchy: AreaHierarchy,
    area_set: AuthorizedAreaSet,
    explicit_area_ids: Iterable[str] | None = None,
) -> frozenset[str] | None:
    """
    Area ids a bulk query must be limited to, or None for "no area filter".

    - An explicit filter expands to each area's descendants.
    - A restricted caller naming an area outside ``full_area_ids`` is rejected
      before any query runs (never silently emptied).
    - A restricted caller without an explicit filter gets ``full_area_ids``.
    - The result for a restricted caller is always a subset of
      ``full_area_ids``; it may be empty, which must mean "match nothing".
    """

    explicit = sorted(set(explicit_area_ids or []))

    if not explicit:
        return area_set.full_area_ids if area_set.has_restrictions else None

    expanded: set[str] = set()
    for area_id in explicit:
        # Raises InvalidAreaReference for unknown ids.
        descendants = hierarchy.descendants(area_id)
        if area_set.has_restrictions and area_id not in area_set.full_area_ids:
            raise AuthorizationDenied("GEOGRAPHIC_AREA", area_id, "READ")
        expanded.update(descendants)

    if area_set.has_restrictions:
        return frozenset(expanded & area_set.full_area_ids)
    return frozenset(expanded)
