"""Core data structures for the PSP tree."""

from .arena import NULL, NodeArena, Side
from .metrics import (
    Metric,
    MetricRegistry,
    available_metrics,
    get_metric,
    metric_from_callable,
    register_metric,
    resolve_metric,
)
from .position import Position, PositionLike, as_position
from .tree import Entry, Neighbor, Probe, PSPTree, TreeAudit

__all__ = [
    "NULL",
    "NodeArena",
    "Side",
    "Metric",
    "MetricRegistry",
    "available_metrics",
    "get_metric",
    "metric_from_callable",
    "register_metric",
    "resolve_metric",
    "Position",
    "PositionLike",
    "as_position",
    "Entry",
    "Neighbor",
    "Probe",
    "PSPTree",
    "TreeAudit",
]
