"""
Geographic breakdown query builder.

Produces one aggregate SQL statement (plus a matching COUNT statement) that
computes, for each requested root area, metrics over the root's whole
descendant closure:

    area_descendants     root id -> descendant closure (from AreaHierarchy)
    filtered_activities  activity -> area of its current venue, filters applied
    area_metrics         per-root COUNT(DISTINCT activity), COUNT(DISTINCT
                         participant), COUNT(participation rows), with roots
                         whose three counts are all zero dropped by HAVING

Every caller-controlled value (area ids, filter values, page bounds) is
appended as a named bind parameter; nothing user supplied is formatted into
the SQL text.

Two renderings of ``area_descendants`` exist. PostgreSQL gets one row per root
with the closure bound as a ``text[]`` and facts join with ``= ANY(...)``.
Other engines (SQLite, used by the tests) get one ``(root, descendant)`` row per
closure member and join on equality. Each closure is de-duplicated, so either
form matches a fact at most once per root.

The SQLite form binds one parameter per closure member. SQLite caps bound
variables per statement (999 before 3.32, 32766 after), so very large
subtrees need PostgreSQL or a narrower parent.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.sql.elements import TextClause

from .errors import BreakdownQueryError

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 1000

SUPPORTED_DIALECTS = frozenset({"postgresql", "sqlite"})


@dataclass(frozen=True)
class BreakdownFilters:
    start_date: date | None = None
    end_date: date | None = None
    activity_category_ids: tuple[str, ...] | None = None
    activity_type_ids: tuple[str, ...] | None = None
    venue_ids: tuple[str, ...] | None = None
    population_ids: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        for name in ("activity_category_ids", "activity_type_ids", "venue_ids", "population_ids"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, str):
                value = (value,)
            value = tuple(str(v) for v in value)
            if not value:
                raise BreakdownQueryError(f"{name} filter cannot be an empty list")
            object.__setattr__(self, name, value)

        start, end = _as_date(self.start_date), _as_date(self.end_date)
        object.__setattr__(self, "start_date", start)
        object.__setattr__(self, "end_date", end)
        if start is not None and end is not None and start > end:
            raise BreakdownQueryError("Invalid date range: start_date must be on or before end_date")


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.page < 1:
            raise BreakdownQueryError("Invalid pagination: page must be a positive integer")
        if self.page_size < 1 or self.page_size > MAX_PAGE_SIZE:
            raise BreakdownQueryError(f"Invalid pagination: page_size must be between 1 and {MAX_PAGE_SIZE}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class BuiltQuery:
    """SQL text plus its named parameters; ``expanding`` names list-valued IN parameters."""

    sql: str
    params: dict[str, Any]
    expanding: frozenset[str] = field(default_factory=frozenset)

    def to_statement(self) -> TextClause:
        stmt = text(self.sql)
        if self.expanding:
            stmt = stmt.bindparams(*(bindparam(name, expanding=True) for name in sorted(self.expanding)))
        return stmt


def _as_date(value: date | datetime | str | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


class _Params:
    """Collects bind parameters and hands back placeholders."""

    def __init__(self) -> None:
        self.values: dict[str, Any] = {}
        self.expanding: set[str] = set()

    def add(self, name: str, value: Any) -> str:
        if name in self.values:
            raise ValueError(f"duplicate bind parameter {name!r}")
        self.values[name] = value
        return f":{name}"

    def add_list(self, name: str, values: Sequence[Any]) -> str:
        placeholder = self.add(name, list(values))
        self.expanding.add(name)
        return placeholder


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for v in values:
        v = str(v)
        if v not in seen:
            seen.add(v)
            result.append(v)
    return result


class GeographicBreakdownQueryBuilder:
    """
    Builds the breakdown and count statements for one SQL dialect.

    Usage:
        builder = GeographicBreakdownQueryBuilder("sqlite")
        roots = ["city-1", "city-2"]
        query = builder.build_breakdown_query(roots, hierarchy.descendants_map(roots))
        rows = session.execute(query.to_statement(), query.params).mappings().all()
    """

    def __init__(self, dialect: str = "postgresql") -> None:
        if dialect not in SUPPORTED_DIALECTS:
            raise ValueError(f"Unsupported dialect {dialect!r}; expected one of {sorted(SUPPORTED_DIALECTS)}")
        self.dialect = dialect

    # ---- Public API -----------------------------------------------------------------

    def build_breakdown_query(
        self,
        root_area_ids: Sequence[str],
        descendants_map: Mapping[str, Sequence[str]],
        filters: BreakdownFilters | None = None,
        pagination: Pagination | None = None,
    ) -> BuiltQuery:
        params = _Params()
        body = self._build_body(root_area_ids, descendants_map, filters or BreakdownFilters(), params)

        sql = f"{body}\nSELECT * FROM area_metrics\nORDER BY geographic_area_id"
        if pagination is not None:
            limit = params.add("limit", pagination.page_size)
            offset = params.add("offset", pagination.offset)
            sql += f"\nLIMIT {limit} OFFSET {offset}"
        return BuiltQuery(sql=sql, params=params.values, expanding=frozenset(params.expanding))

    def build_count_query(
        self,
        root_area_ids: Sequence[str],
        descendants_map: Mapping[str, Sequence[str]],
        filters: BreakdownFilters | None = None,
    ) -> BuiltQuery:
        params = _Params()
        body = self._build_body(root_area_ids, descendants_map, filters or BreakdownFilters(), params)
        sql = f"{body}\nSELECT COUNT(*) AS total FROM area_metrics"
        return BuiltQuery(sql=sql, params=params.values, expanding=frozenset(params.expanding))

    # ---- CTE assembly ---------------------------------------------------------------

    def _build_body(
        self,
        root_area_ids: Sequence[str],
        descendants_map: Mapping[str, Sequence[str]],
        filters: BreakdownFilters,
        params: _Params,
    ) -> str:
        area_descendants = self._area_descendants_cte(root_area_ids, descendants_map, params)
        filtered_activities = self._filtered_activities_cte(filters, params)
        area_metrics = self._area_metrics_cte()
        return f"WITH\n  {area_descendants},\n  {filtered_activities},\n  {area_metrics}"

    def _area_descendants_cte(
        self,
        root_area_ids: Sequence[str],
        descendants_map: Mapping[str, Sequence[str]],
        params: _Params,
    ) -> str:
        roots = _unique(root_area_ids)

        if self.dialect == "postgresql":
            if not roots:
                return (
                    "area_descendants(area_id, descendant_ids) AS (\n"
                    "    SELECT CAST(NULL AS text), CAST(NULL AS text[]) WHERE false\n"
                    "  )"
                )
            values = []
            for i, root in enumerate(roots):
                closure = _unique(descendants_map.get(root) or [root])
                root_ph = params.add(f"root_{i}", root)
                closure_ph = params.add(f"closure_{i}", closure)
                values.append(f"    ({root_ph}, CAST({closure_ph} AS text[]))")
            return "area_descendants(area_id, descendant_ids) AS (\n    VALUES\n" + ",\n".join(values) + "\n  )"

        if not roots:
            return (
                "area_descendants(area_id, descendant_id) AS (\n"
                "    SELECT NULL, NULL WHERE 1 = 0\n"
                "  )"
            )
        selects = []
        for i, root in enumerate(roots):
            root_ph = params.add(f"root_{i}", root)
            for j, descendant in enumerate(_unique(descendants_map.get(root) or [root])):
                descendant_ph = params.add(f"closure_{i}_{j}", descendant)
                selects.append(f"SELECT {root_ph}, {descendant_ph}")
        return "area_descendants(area_id, descendant_id) AS (\n    " + "\n    UNION ALL ".join(selects) + "\n  )"

    def _date(self, expr: str) -> str:
        if self.dialect == "postgresql":
            return f"CAST({expr} AS DATE)"
        return f"DATE({expr})"

    def _date_param(self, params: _Params, name: str, value: date) -> str:
        # SQLite has no date type; ISO strings compare correctly under DATE().
        return params.add(name, value if self.dialect == "postgresql" else value.isoformat())

    def _filtered_activities_cte(self, filters: BreakdownFilters, params: _Params) -> str:
        joins: list[str] = []
        conditions: list[str] = []

        if filters.activity_type_ids:
            ph = params.add_list("activity_type_ids", filters.activity_type_ids)
            conditions.append(f"a.activity_type_id IN {ph}")

        if filters.activity_category_ids:
            joins.append("JOIN activity_types aty ON aty.id = a.activity_type_id")
            ph = params.add_list("activity_category_ids", filters.activity_category_ids)
            conditions.append(f"aty.activity_category_id IN {ph}")

        if filters.venue_ids:
            ph = params.add_list("venue_ids", filters.venue_ids)
            conditions.append(f"avh.venue_id IN {ph}")

        start, end = filters.start_date, filters.end_date
        if start is not None and end is not None:
            # Activities overlapping the window; open-ended activities are ongoing.
            end_ph = self._date_param(params, "end_date", end)
            start_ph = self._date_param(params, "start_date", start)
            conditions.append(f"{self._date('a.start_date')} <= {self._date(end_ph)}")
            conditions.append(f"(a.end_date IS NULL OR {self._date('a.end_date')} >= {self._date(start_ph)})")
        elif start is not None:
            start_ph = self._date_param(params, "start_date", start)
            conditions.append(f"{self._date('a.start_date')} >= {self._date(start_ph)}")
        elif end is not None:
            end_ph = self._date_param(params, "end_date", end)
            conditions.append(f"{self._date('a.start_date')} <= {self._date(end_ph)}")

        if filters.population_ids:
            ph = params.add_list("population_ids", filters.population_ids)
            conditions.append(
                "EXISTS (\n"
                "        SELECT 1 FROM assignments pasn\n"
                "        JOIN participant_populations pp ON pp.participant_id = pasn.participant_id\n"
                "        WHERE pasn.activity_id = a.id\n"
                f"          AND pp.population_id IN {ph}\n"
                "      )"
            )

        sql = (
            "filtered_activities AS (\n"
            "    SELECT a.id, v.geographic_area_id\n"
            "    FROM activities a\n"
            "    JOIN activity_venue_history avh ON avh.activity_id = a.id\n"
            "      AND NOT EXISTS (\n"
            "        SELECT 1 FROM activity_venue_history avh2\n"
            "        WHERE avh2.activity_id = a.id\n"
            "          AND (\n"
            "            (avh2.effective_from IS NOT NULL AND avh.effective_from IS NOT NULL\n"
            "              AND avh2.effective_from > avh.effective_from)\n"
            "            OR (avh2.effective_from IS NOT NULL AND avh.effective_from IS NULL)\n"
            "            OR (avh2.effective_from IS NULL AND avh.effective_from IS NULL AND avh2.id > avh.id)\n"
            "            OR (avh2.effective_from = avh.effective_from AND avh2.id > avh.id)\n"
            "          )\n"
            "      )\n"
            "    JOIN venues v ON v.id = avh.venue_id"
        )
        for join in joins:
            sql += f"\n    {join}"
        if conditions:
            sql += "\n    WHERE " + "\n      AND ".join(conditions)
        return sql + "\n  )"

    def _area_metrics_cte(self) -> str:
        if self.dialect == "postgresql":
            join_on = "fa.geographic_area_id = ANY(ad.descendant_ids)"
        else:
            join_on = "fa.geographic_area_id = ad.descendant_id"
        return (
            "area_metrics AS (\n"
            "    SELECT\n"
            "      ad.area_id AS geographic_area_id,\n"
            "      COUNT(DISTINCT fa.id) AS activity_count,\n"
            "      COUNT(DISTINCT asn.participant_id) AS participant_count,\n"
            "      COUNT(asn.id) AS participation_count\n"
            "    FROM area_descendants ad\n"
            f"    LEFT JOIN filtered_activities fa ON {join_on}\n"
            "    LEFT JOIN assignments asn ON asn.activity_id = fa.id\n"
            "    GROUP BY ad.area_id\n"
            "    HAVING COUNT(DISTINCT fa.id) > 0\n"
            "      OR COUNT(DISTINCT asn.participant_id) > 0\n"
            "      OR COUNT(asn.id) > 0\n"
            "  )"
        )
