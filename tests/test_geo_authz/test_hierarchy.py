"""
Tests for the in-memory area tree (pure Python, no database).
"""
from __future__ import annotations

import pytest

from geoscope.geo_authz import AreaHierarchy, HierarchyIntegrityFault, InvalidAreaReference


@pytest.fixture
def tree() -> AreaHierarchy:
    #   country
    #   ├── city
    #   │   ├── hood-a
    #   │   └── hood-b
    #   └── town
    #   island (second top-level area)
    return AreaHierarchy.from_rows(
        [
            ("country", None),
            ("city", "country"),
            ("town", "country"),
            ("hood-a", "city"),
            ("hood-b", "city"),
            ("island", None),
        ]
    )


def test_descendants_is_inclusive_closure(tree):
    assert tree.descendants("city") == {"city", "hood-a", "hood-b"}
    assert tree.descendants("country") == {"country", "city", "town", "hood-a", "hood-b"}
    assert tree.descendants("hood-a") == {"hood-a"}


def test_ancestors_are_nearest_first(tree):
    assert tree.ancestors("hood-b") == ["city", "country"]
    assert tree.ancestors("country") == []


def test_roots_and_children(tree):
    assert tree.roots() == ["country", "island"]
    assert tree.children_of("country") == ["city", "town"]
    assert tree.children_of("hood-a") == []
    assert tree.parent_of("town") == "country"


def test_is_strict_ancestor(tree):
    assert tree.is_strict_ancestor("country", "hood-a")
    assert not tree.is_strict_ancestor("city", "city")
    assert not tree.is_strict_ancestor("town", "hood-a")


def test_descendants_pruned_stops_at_nodes(tree):
    assert tree.descendants_pruned("country", stop_at=["city"]) == {"country", "town"}
    # The start node itself is never pruned.
    assert tree.descendants_pruned("city", stop_at=["city"]) == {"city", "hood-a", "hood-b"}


def test_descendants_map_for_breakdown_roots(tree):
    assert tree.descendants_map(["city", "town"]) == {
        "city": ["city", "hood-a", "hood-b"],
        "town": ["town"],
    }


def test_unknown_area_raises_invalid_reference(tree):
    with pytest.raises(InvalidAreaReference) as exc_info:
        tree.descendants("atlantis")
    assert exc_info.value.area_id == "atlantis"
    assert exc_info.value.status_code == 400


def test_from_rows_accepts_mappings_and_objects():
    class Row:
        def __init__(self, id, parent_geographic_area_id):
            self.id = id
            self.parent_geographic_area_id = parent_geographic_area_id

    tree = AreaHierarchy.from_rows(
        [
            {"id": "a", "parent_id": None},
            {"id": "b", "parent_geographic_area_id": "a"},
            Row("c", "b"),
        ]
    )
    assert tree.ancestors("c") == ["b", "a"]


def test_parent_outside_snapshot_is_treated_as_top_level():
    tree = AreaHierarchy.from_rows([("a", "missing"), ("b", "a")])
    assert tree.roots() == ["a"]
    assert tree.ancestors("b") == ["a"]


def test_cycle_in_ancestor_walk_faults():
    tree = AreaHierarchy.from_rows([("a", "c"), ("b", "a"), ("c", "b")])
    with pytest.raises(HierarchyIntegrityFault):
        tree.ancestors("a")


def test_cycle_in_descendant_walk_terminates(caplog):
    # a -> b -> c -> a, hanging off nothing: every node is a child of another.
    tree = AreaHierarchy.from_rows([("a", "c"), ("b", "a"), ("c", "b")])
    assert tree.descendants("a") == {"a", "b", "c"}
    assert "Area a revisited" in caplog.text
