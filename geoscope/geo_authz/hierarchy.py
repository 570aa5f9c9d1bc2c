"""
In-memory geographic area tree.

Areas are stored with a parent pointer only. This module turns a flat
``{id, parent_id}`` load into an explicit parent -> children adjacency map so
both directions can be walked iteratively (no recursion depth limits) with a
per-traversal visited set acting as the cycle guard.

A hierarchy instance is an immutable snapshot: build a new one after areas are
re-parented rather than mutating it.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Mapping
import logging
from typing import Any

from .errors import HierarchyIntegrityFault, InvalidAreaReference

logger = logging.getLogger(__name__)


def _row_pair(row: Any) -> tuple[str, str | None]:
    """Accept ORM rows, mappings, or ``(id, parent_id)`` tuples."""
    if isinstance(row, Mapping):
        area_id = row.get("id")
        parent_id = row.get("parent_id", row.get("parent_geographic_area_id"))
    elif isinstance(row, tuple):
        area_id, parent_id = row[0], row[1]
    else:
        area_id = getattr(row, "id")
        parent_id = getattr(row, "parent_id", None)
        if parent_id is None:
            parent_id = getattr(row, "parent_geographic_area_id", None)
    return str(area_id), (str(parent_id) if parent_id is not None else None)


class _RevisitTracker:
    """
    Cycle guard for a single traversal.

    A node reached again is a frontier: it is logged and not expanded. The same
    node reached yet again means the walk is circling, so it aborts.
    """

    def __init__(self, origin: str) -> None:
        self._origin = origin
        self._seen: set[str] = set()
        self._revisits: dict[str, int] = {}

    def first_visit(self, node: str) -> bool:
        if node not in self._seen:
            self._seen.add(node)
            return True
        count = self._revisits.get(node, 0) + 1
        self._revisits[node] = count
        if count > 1:
            logger.error("Hierarchy cycle confirmed at area=%s (traversal from %s)", node, self._origin)
            raise HierarchyIntegrityFault(node)
        logger.warning("Area %s revisited while traversing from %s; treating as frontier", node, self._origin)
        return False


class AreaHierarchy:
    """Snapshot of the area forest with ancestor/descendant queries."""

    def __init__(self, parents: Mapping[str, str | None]) -> None:
        self._parents: dict[str, str | None] = dict(parents)
        children: dict[str, list[str]] = {}
        for area_id, parent_id in self._parents.items():
            if parent_id is not None:
                children.setdefault(parent_id, []).append(area_id)
        for child_ids in children.values():
            child_ids.sort()
        self._children = children

    @classmethod
    def from_rows(cls, rows: Iterable[Any]) -> AreaHierarchy:
        parents: dict[str, str | None] = {}
        for row in rows:
            area_id, parent_id = _row_pair(row)
            parents[area_id] = parent_id
        return cls(parents)

    def __len__(self) -> int:
        return len(self._parents)

    def __contains__(self, area_id: object) -> bool:
        return area_id in self._parents

    def contains(self, area_id: str) -> bool:
        return area_id in self._parents

    def area_ids(self) -> frozenset[str]:
        return frozenset(self._parents)

    def _require(self, area_id: str) -> None:
        if area_id not in self._parents:
            raise InvalidAreaReference(area_id)

    def parent_of(self, area_id: str) -> str | None:
        self._require(area_id)
        return self._parents[area_id]

    def children_of(self, area_id: str) -> list[str]:
        self._require(area_id)
        return list(self._children.get(area_id, []))

    def roots(self) -> list[str]:
        """Top-level areas. A parent id pointing outside the snapshot counts as top-level."""
        return sorted(a for a, p in self._parents.items() if p is None or p not in self._parents)

    def descendants(self, area_id: str) -> set[str]:
        """
        All areas reachable via child edges, including ``area_id`` itself.

        Every node has a single parent, so a cycle can only be entered through
        the walk's own origin and each node is reached again at most once. A
        cycle therefore shows up as one revisit warning and the walk returns
        the cycle's members; it never faults. Parent walks are the ones that
        raise ``HierarchyIntegrityFault``.
        """
        self._require(area_id)
        tracker = _RevisitTracker(area_id)
        tracker.first_visit(area_id)
        result = {area_id}
        queue: deque[str] = deque([area_id])
        while queue:
            current = queue.popleft()
            for child in self._children.get(current, ()):
                if tracker.first_visit(child):
                    result.add(child)
                    queue.append(child)
        return result

    def descendants_pruned(self, area_id: str, stop_at: Iterable[str]) -> set[str]:
        """
        Like :meth:`descendants` but does not enter subtrees rooted at ``stop_at``
        nodes (other than ``area_id`` itself).
        """
        self._require(area_id)
        stops = set(stop_at)
        tracker = _RevisitTracker(area_id)
        tracker.first_visit(area_id)
        result = {area_id}
        queue: deque[str] = deque([area_id])
        while queue:
            current = queue.popleft()
            for child in self._children.get(current, ()):
                if child in stops:
                    continue
                if tracker.first_visit(child):
                    result.add(child)
                    queue.append(child)
        return result

    def ancestors(self, area_id: str) -> list[str]:
        """Path from the parent of ``area_id`` up to its root, nearest first."""
        self._require(area_id)
        tracker = _RevisitTracker(area_id)
        tracker.first_visit(area_id)
        chain: list[str] = []
        current = self._parents.get(area_id)
        while current is not None and current in self._parents:
            # A parent walk has a single successor, so keep going past the first
            # revisit; a real cycle comes around again and faults.
            if tracker.first_visit(current):
                chain.append(current)
            current = self._parents.get(current)
        return chain

    def is_strict_ancestor(self, ancestor_id: str, area_id: str) -> bool:
        return ancestor_id != area_id and ancestor_id in self.ancestors(area_id)

    def descendants_map(self, root_ids: Iterable[str]) -> dict[str, list[str]]:
        """
        ``root -> sorted descendant closure`` for each root.

        This is the lookup the breakdown query builder turns into its mapping
        table; one traversal per root, never per record.
        """
        return {root: sorted(self.descendants(root)) for root in root_ids}
