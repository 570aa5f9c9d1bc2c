from __future__ import annotations

import pytest

from geoscope.geo_authz import (
    AreaHierarchy,
    AuthorizationDenied,
    AuthorizedAreaSet,
    InvalidAreaReference,
    Polarity,
    resolve_authorized_areas,
)
from geoscope.services.area_filter import effective_area_ids


@pytest.fixture
def tree() -> AreaHierarchy:
    return AreaHierarchy.from_rows(
        [
            ("country", None),
            ("city", "country"),
            ("hood-a", "city"),
            ("hood-b", "city"),
            ("town", "country"),
        ]
    )


@pytest.fixture
def city_editor(tree) -> AuthorizedAreaSet:
    return resolve_authorized_areas(tree, {"city": Polarity.ALLOW, "hood-b": Polarity.DENY})


def test_unrestricted_without_filter_means_no_filter(tree):
    assert effective_area_ids(tree, AuthorizedAreaSet.unrestricted()) is None


def test_unrestricted_explicit_filter_expands_descendants(tree):
    assert effective_area_ids(tree, AuthorizedAreaSet.unrestricted(), ["city"]) == {"city", "hood-a", "hood-b"}


def test_restricted_without_filter_uses_full_set(tree, city_editor):
    assert effective_area_ids(tree, city_editor) == {"city", "hood-a"}


def test_restricted_explicit_filter_is_intersected(tree, city_editor):
    # hood-b is denied, so it drops out of the expanded city subtree.
    assert effective_area_ids(tree, city_editor, ["city"]) == {"city", "hood-a"}
    assert effective_area_ids(tree, city_editor, ["hood-a"]) == {"hood-a"}


def test_restricted_filter_outside_full_set_is_rejected(tree, city_editor):
    with pytest.raises(AuthorizationDenied):
        effective_area_ids(tree, city_editor, ["town"])
    # Read-only ancestors cannot be used to widen a bulk query either.
    with pytest.raises(AuthorizationDenied):
        effective_area_ids(tree, city_editor, ["country"])


def test_unknown_area_is_invalid_reference(tree, city_editor):
    with pytest.raises(InvalidAreaReference):
        effective_area_ids(tree, city_editor, ["atlantis"])


def test_deny_only_user_gets_empty_not_unfiltered(tree):
    area_set = resolve_authorized_areas(tree, {"town": Polarity.DENY})
    assert effective_area_ids(tree, area_set) == frozenset()
