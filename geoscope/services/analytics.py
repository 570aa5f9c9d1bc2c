from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from geoscope.db.loaders import load_area_details
from geoscope.geo_authz.breakdown import BreakdownFilters, GeographicBreakdownQueryBuilder, Pagination
from geoscope.geo_authz.errors import AuthorizationDenied
from geoscope.geo_authz.hierarchy import AreaHierarchy
from geoscope.geo_authz.types import AuthorizedAreaSet

logger = logging.getLogger(__name__)


@dataclass
class BreakdownPage:
    rows: list[dict[str, Any]] = field(default_factory=list)
    page: int = 1
    page_size: int = 100
    total: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0

    def pagination(self) -> dict[str, int]:
        return {
            "page": self.page,
            "page_size": self.page_size,
            "total": self.total,
            "total_pages": self.total_pages,
        }


class GeographicBreakdownService:
    """
    Per-area activity / participant / participation counts for one level of
    the tree.

    Roots are the children of ``parent_area_id`` or, without one, the
    top-level areas. Each root's metrics cover its whole subtree.
    """

    def __init__(self, db: Session, dialect: str = "sqlite") -> None:
        self._db = db
        self._builder = GeographicBreakdownQueryBuilder(dialect)

    def _roots_and_closures(
        self,
        hierarchy: AreaHierarchy,
        area_set: AuthorizedAreaSet,
        parent_area_id: str | None,
    ) -> tuple[list[str], dict[str, list[str]]]:
        if parent_area_id is not None:
            # Raises InvalidAreaReference for unknown ids.
            roots = hierarchy.children_of(parent_area_id)
            if not area_set.allows(parent_area_id):
                raise AuthorizationDenied("GEOGRAPHIC_AREA", parent_area_id, "READ")
        else:
            roots = hierarchy.roots()

        closures = hierarchy.descendants_map(roots)
        if not area_set.has_restrictions:
            return roots, closures

        visible = area_set.visible_area_ids
        scoped: dict[str, list[str]] = {}
        for root in roots:
            if root not in visible:
                continue
            # Counts only ever include areas the caller fully controls.
            closure = [a for a in closures[root] if a in area_set.full_area_ids]
            if closure:
                scoped[root] = closure
        return sorted(scoped), scoped

    def get_breakdown(
        self,
        hierarchy: AreaHierarchy,
        area_set: AuthorizedAreaSet,
        parent_area_id: str | None = None,
        filters: BreakdownFilters | None = None,
        pagination: Pagination | None = None,
    ) -> BreakdownPage:
        pagination = pagination or Pagination()
        roots, closures = self._roots_and_closures(hierarchy, area_set, parent_area_id)

        query = self._builder.build_breakdown_query(roots, closures, filters, pagination)
        count_query = self._builder.build_count_query(roots, closures, filters)

        rows = self._db.execute(query.to_statement(), query.params).mappings().all()
        total = self._db.execute(count_query.to_statement(), count_query.params).scalar_one()

        details = load_area_details(self._db, [row["geographic_area_id"] for row in rows])
        result = []
        for row in rows:
            name, area_type = details.get(row["geographic_area_id"], (None, None))
            result.append(
                {
                    "geographic_area_id": row["geographic_area_id"],
                    "geographic_area_name": name,
                    "area_type": area_type,
                    "activity_count": int(row["activity_count"]),
                    "participant_count": int(row["participant_count"]),
                    "participation_count": int(row["participation_count"]),
                }
            )

        logger.debug(
            "Geographic breakdown parent=%s roots=%d rows=%d total=%d",
            parent_area_id,
            len(roots),
            len(result),
            total,
        )
        return BreakdownPage(rows=result, page=pagination.page, page_size=pagination.page_size, total=int(total))
