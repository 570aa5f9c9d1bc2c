from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import Session, with_loader_criteria

# Execution option for queries that must see unscoped rows (tree, rules,
# current-venue lookups done by the guards).
SKIP_GEOGRAPHIC_FILTER = "skip_geographic_filter"


@event.listens_for(Session, "do_orm_execute")
def _apply_geographic_filters(execute_state) -> None:
    """
    Transparent geographic scoping.

    Existing list code such as
        db.scalars(select(Venue)).all()
    only returns rows in the caller's authorized areas when the route asks
    for geographic filtering and the caller has rules:

    - areas:         full + read-only ids (read-only ancestors stay navigable)
    - venues:        venue area in full ids
    - activities:    current venue's area in full ids
    - participants:  current home venue's area in full ids

    An empty full set becomes an always-false IN, never "no filter".
    """

    if not execute_state.is_select:
        return
    if execute_state.execution_options.get(SKIP_GEOGRAPHIC_FILTER, False):
        return
    # Raw text() statements (the breakdown query) scope themselves.
    if not hasattr(execute_state.statement, "options"):
        return

    authz = execute_state.session.info.get("authz")
    if authz is None or not authz.filter_by_geography or not authz.is_restricted:
        return

    # Local import to avoid cycles.
    from geoscope.db.loaders import activity_ids_in_areas, participant_ids_in_areas  # noqa: WPS433
    from geoscope.models.activity import Activity, Participant  # noqa: WPS433
    from geoscope.models.geography import GeographicArea, Venue  # noqa: WPS433

    full_ids = sorted(authz.area_set.full_area_ids)
    visible_ids = sorted(authz.area_set.visible_area_ids)

    execute_state.statement = execute_state.statement.options(
        with_loader_criteria(GeographicArea, GeographicArea.id.in_(visible_ids), include_aliases=True),
        with_loader_criteria(Venue, Venue.geographic_area_id.in_(full_ids), include_aliases=True),
        with_loader_criteria(Activity, Activity.id.in_(activity_ids_in_areas(full_ids)), include_aliases=True),
        with_loader_criteria(
            Participant,
            Participant.id.in_(participant_ids_in_areas(full_ids)),
            include_aliases=True,
        ),
    )
