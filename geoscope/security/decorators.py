from __future__ import annotations

from collections.abc import Callable


def require_roles(roles: list[str]) -> Callable:
    """
    Attach required roles to a route handler.

    The decorator does not authenticate anything itself; the global security
    dependency reads the metadata after routing and merges it with the YAML
    rule for the route.
    """

    def decorator(fn: Callable) -> Callable:
        existing = set(getattr(fn, "__security_required_roles__", set()))
        setattr(fn, "__security_required_roles__", existing | set(roles))
        return fn

    return decorator


def filter_by_geography() -> Callable:
    """Enable transparent geographic scoping of list queries for this endpoint."""

    def decorator(fn: Callable) -> Callable:
        setattr(fn, "__security_filter_by_geography__", True)
        return fn

    return decorator
