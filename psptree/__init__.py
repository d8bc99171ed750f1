"""psptree: an online vantage-point tree for metric-space lookups.

Quick Start
-----------
>>> from psptree import PSPTreeMap, Position
>>>
>>> points = PSPTreeMap(dimension=2, metric="euclidean")
>>> points[Position.of(0.0, 0.0)] = "A"
>>> points[(4.0, 2.0)] = "B"
>>> points.nearest((3.0, 2.0)).value
'B'
>>> [n.value for n in points.k_nearest_neighbor((0.5, 0.0), k=2)]
['A', 'B']

Classes
-------
PSPTreeMap : Mutable mapping keyed by positions, with nearest-neighbour queries.
PSPTree : The tree core (insert, delete, lookup, search, audit).
Position : Immutable coordinate tuple used as the key type.
"""

from importlib.metadata import version as _pkg_version

try:
    __version__ = _pkg_version("psptree")
except Exception:  # pragma: no cover - best effort during local development
    __version__ = "0.1.0"

# Primary user-facing API
from .api import PSPTreeMap
from .core import (
    Entry,
    Metric,
    MetricRegistry,
    Neighbor,
    Position,
    PSPTree,
    TreeAudit,
    as_position,
    available_metrics,
    get_metric,
    register_metric,
)
from .queries import bruteforce_knn, knn, nearest_neighbor

__all__ = [
    "__version__",
    "PSPTreeMap",
    "PSPTree",
    "Position",
    "Entry",
    "Neighbor",
    "TreeAudit",
    "Metric",
    "MetricRegistry",
    "as_position",
    "available_metrics",
    "get_metric",
    "register_metric",
    "bruteforce_knn",
    "knn",
    "nearest_neighbor",
]
