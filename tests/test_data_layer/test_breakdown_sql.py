"""
Runs the breakdown query (SQLite rendering) against the seeded demo data.

Seed (see geoscope/db/init_db.py):
    Kits Circle     -> Kitsilano (moved from Victoria), Ana + Ben
    Downtown Circle -> Downtown (ends 2025-06-30),      Ben
    Toronto Circle  -> Toronto,                         Cy
"""
from __future__ import annotations

from datetime import date

from geoscope.db.loaders import load_hierarchy
from geoscope.geo_authz import BreakdownFilters, GeographicBreakdownQueryBuilder, Pagination
from geoscope.models.activity import Activity, ActivityVenueHistory


def _run(db, roots, closures, filters=None, pagination=None):
    builder = GeographicBreakdownQueryBuilder("sqlite")
    listing = builder.build_breakdown_query(roots, closures, filters, pagination)
    count = builder.build_count_query(roots, closures, filters)
    rows = db.execute(listing.to_statement(), listing.params).mappings().all()
    total = db.execute(count.to_statement(), count.params).scalar_one()
    return {row["geographic_area_id"]: dict(row) for row in rows}, total


def _province_roots(db, seeded):
    hierarchy = load_hierarchy(db)
    roots = hierarchy.children_of(seeded["canada"])
    return roots, hierarchy.descendants_map(roots)


def test_metrics_roll_up_over_descendant_closure(db_session, seeded):
    roots, closures = _province_roots(db_session, seeded)

    rows, total = _run(db_session, roots, closures)

    assert total == 2
    bc = rows[seeded["bc"]]
    assert (bc["activity_count"], bc["participant_count"], bc["participation_count"]) == (2, 2, 3)
    ontario = rows[seeded["ontario"]]
    assert (ontario["activity_count"], ontario["participant_count"], ontario["participation_count"]) == (1, 1, 1)


def test_roots_without_any_facts_return_zero_rows(db_session, seeded):
    rows, total = _run(db_session, ["A", "B"], {"A": ["A", "A1"], "B": ["B"]})
    assert rows == {}
    assert total == 0


def test_empty_root_list_returns_nothing(db_session, seeded):
    rows, total = _run(db_session, [], {})
    assert rows == {}
    assert total == 0


def test_only_current_venue_counts(db_session, seeded):
    hierarchy = load_hierarchy(db_session)
    roots = hierarchy.children_of(seeded["bc"])

    rows, _ = _run(db_session, roots, hierarchy.descendants_map(roots))

    # Kits Circle's initial venue was in Victoria; it now counts for Vancouver only.
    assert seeded["victoria"] not in rows
    assert rows[seeded["vancouver"]]["activity_count"] == 2


def test_area_with_activity_but_no_participants_is_kept(db_session, seeded):
    solo = Activity(name="Victoria Devotional", activity_type_id=seeded["study"], start_date=date(2025, 5, 1))
    db_session.add(solo)
    db_session.flush()
    db_session.add(ActivityVenueHistory(activity_id=solo.id, venue_id=seeded["vic_hall"], effective_from=None))
    db_session.commit()

    hierarchy = load_hierarchy(db_session)
    roots = hierarchy.children_of(seeded["bc"])
    rows, _ = _run(db_session, roots, hierarchy.descendants_map(roots))

    victoria = rows[seeded["victoria"]]
    assert victoria["activity_count"] == 1
    assert victoria["participant_count"] == 0
    assert victoria["participation_count"] == 0


def test_date_range_uses_overlap(db_session, seeded):
    roots, closures = _province_roots(db_session, seeded)
    filters = BreakdownFilters(start_date=date(2025, 7, 1), end_date=date(2025, 12, 31))

    rows, _ = _run(db_session, roots, closures, filters)

    # Downtown Circle ended before the window.
    bc = rows[seeded["bc"]]
    assert (bc["activity_count"], bc["participant_count"], bc["participation_count"]) == (1, 2, 2)
    assert rows[seeded["ontario"]]["activity_count"] == 1


def test_population_and_venue_filters(db_session, seeded):
    roots, closures = _province_roots(db_session, seeded)

    rows, total = _run(db_session, roots, closures, BreakdownFilters(population_ids=[seeded["youth"]]))
    assert total == 1
    assert rows[seeded["bc"]]["activity_count"] == 1

    rows, total = _run(db_session, roots, closures, BreakdownFilters(venue_ids=[seeded["tor_hall"]]))
    assert list(rows) == [seeded["ontario"]]
    assert total == 1


def test_category_filter_and_pagination(db_session, seeded):
    roots, closures = _province_roots(db_session, seeded)
    filters = BreakdownFilters(activity_category_ids=[seeded["category"]])

    first, total = _run(db_session, roots, closures, filters, Pagination(page=1, page_size=1))
    second, _ = _run(db_session, roots, closures, filters, Pagination(page=2, page_size=1))

    assert total == 2
    assert len(first) == 1
    assert len(second) == 1
    assert sorted([*first, *second]) == sorted(roots)
    # Ordered by area id.
    assert list(first)[0] < list(second)[0]
