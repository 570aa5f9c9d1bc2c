from __future__ import annotations

from geoscope.geo_authz import AreaSetCache, AuthorizedAreaSet


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _restricted(*full: str) -> AuthorizedAreaSet:
    return AuthorizedAreaSet(full_area_ids=frozenset(full), has_restrictions=True)


def test_get_or_resolve_calls_resolver_once_within_ttl():
    clock = FakeClock()
    cache = AreaSetCache(ttl_seconds=30, clock=clock)
    calls = []

    def resolver():
        calls.append(1)
        return _restricted("city")

    first = cache.get_or_resolve("u1", resolver)
    clock.now += 29
    second = cache.get_or_resolve("u1", resolver)

    assert first == second
    assert len(calls) == 1


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = AreaSetCache(ttl_seconds=30, clock=clock)
    cache.put("u1", _restricted("city"))

    clock.now += 30
    assert cache.get("u1") is None
    assert len(cache) == 0


def test_invalidate_and_clear():
    cache = AreaSetCache(ttl_seconds=30)
    cache.put("u1", _restricted("a"))
    cache.put("u2", AuthorizedAreaSet.unrestricted())

    cache.invalidate("u1")
    assert cache.get("u1") is None
    assert cache.get("u2") == AuthorizedAreaSet.unrestricted()

    cache.clear()
    assert len(cache) == 0


def test_area_set_dict_round_trip_keeps_restriction_flag():
    area_set = AuthorizedAreaSet(
        full_area_ids=frozenset({"b", "a"}),
        read_only_area_ids=frozenset({"root"}),
        has_restrictions=True,
    )
    data = area_set.to_dict()
    assert data == {"full": ["a", "b"], "read_only": ["root"], "restricted": True}
    assert AuthorizedAreaSet.from_dict(data) == area_set
