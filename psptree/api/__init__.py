"""Public ergonomic façade for psptree."""

from .map import PSPTreeMap

__all__ = ["PSPTreeMap"]
