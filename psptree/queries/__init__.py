"""Query helpers layered on the tree core."""

from .knn import bruteforce_knn, knn, nearest_neighbor

__all__ = ["bruteforce_knn", "knn", "nearest_neighbor"]
