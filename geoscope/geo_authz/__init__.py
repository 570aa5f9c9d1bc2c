"""
Hierarchical geographic access-control engine.

This package has no dependency on the web or database layers of the app
(geoscope.db, geoscope.security, ...). Feed it an area tree snapshot and a
user's rules; it answers single-area access questions, flattens the answer into
area-id sets for bulk filtering, and builds the geographic breakdown query.
"""

from .breakdown import BreakdownFilters, BuiltQuery, GeographicBreakdownQueryBuilder, Pagination
from .cache import AreaSetCache
from .errors import (
    AuthorizationDenied,
    BreakdownQueryError,
    GeoAuthzError,
    HierarchyIntegrityFault,
    InvalidAreaReference,
)
from .evaluator import GeoAuthorizationEngine, evaluate_access, resolve_authorized_areas
from .hierarchy import AreaHierarchy
from .types import (
    AccessLevel,
    AuthorizationRule,
    AuthorizedArea,
    AuthorizedAreaSet,
    Polarity,
    RequiredAccess,
    check_access,
)

__all__ = [
    "AccessLevel",
    "AreaHierarchy",
    "AreaSetCache",
    "AuthorizationDenied",
    "AuthorizationRule",
    "AuthorizedArea",
    "AuthorizedAreaSet",
    "BreakdownFilters",
    "BreakdownQueryError",
    "BuiltQuery",
    "GeoAuthorizationEngine",
    "GeoAuthzError",
    "GeographicBreakdownQueryBuilder",
    "HierarchyIntegrityFault",
    "InvalidAreaReference",
    "Pagination",
    "Polarity",
    "RequiredAccess",
    "check_access",
    "evaluate_access",
    "resolve_authorized_areas",
]
