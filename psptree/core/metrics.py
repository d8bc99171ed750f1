from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Protocol, Tuple

import numpy as np

ArrayLike = Any


class PairwiseKernel(Protocol):
    def __call__(self, lhs: np.ndarray, rhs: np.ndarray) -> np.ndarray:
        ...


class PointwiseKernel(Protocol):
    def __call__(self, lhs: np.ndarray, rhs: np.ndarray) -> float:
        ...


def _ensure_2d(array: ArrayLike) -> np.ndarray:
    arr = np.asarray(array, dtype=np.float64)
    if arr.ndim == 1:
        arr = arr[None, :]
    return arr


def _check_operands(lhs: np.ndarray, rhs: np.ndarray) -> None:
    if lhs.shape[-1] != rhs.shape[-1]:
        raise ValueError(
            "Metric operands must have identical dimension; "
            f"got {lhs.shape[-1]} and {rhs.shape[-1]}."
        )


@dataclass(frozen=True)
class Metric:
    """Container for the distance kernels used by the tree.

    ``satisfies_triangle_inequality`` is informational: the tree accepts any
    symmetric non-negative kernel, but its pruning logic assumes a true metric.
    """

    name: str
    pointwise_kernel: PointwiseKernel
    pairwise_kernel: PairwiseKernel
    satisfies_triangle_inequality: bool = True

    def distance(self, lhs: ArrayLike, rhs: ArrayLike) -> float:
        lhs_arr = np.asarray(lhs, dtype=np.float64)
        rhs_arr = np.asarray(rhs, dtype=np.float64)
        if lhs_arr.shape != rhs_arr.shape:
            raise ValueError(
                "Metric operands must have identical dimension; "
                f"got shapes {lhs_arr.shape} and {rhs_arr.shape}."
            )
        return float(self.pointwise_kernel(lhs_arr, rhs_arr))

    def pairwise(self, lhs: ArrayLike, rhs: ArrayLike) -> np.ndarray:
        lhs_arr = _ensure_2d(lhs)
        rhs_arr = _ensure_2d(rhs)
        if lhs_arr.size == 0 or rhs_arr.size == 0:
            return np.zeros((lhs_arr.shape[0], rhs_arr.shape[0]), dtype=np.float64)
        _check_operands(lhs_arr, rhs_arr)
        return self.pairwise_kernel(lhs_arr, rhs_arr)


class MetricRegistry:
    """Minimal registry for runtime-selectable metrics."""

    def __init__(self) -> None:
        self._metrics: Dict[str, Metric] = {}

    def register(self, metric: Metric, *, overwrite: bool = False) -> None:
        name = metric.name.lower()
        if not overwrite and name in self._metrics:
            raise ValueError(f"Metric '{metric.name}' already registered.")
        self._metrics[name] = metric

    def get(self, name: str) -> Metric:
        key = name.lower()
        if key not in self._metrics:
            raise KeyError(f"Metric '{name}' not registered.")
        return self._metrics[key]

    def names(self) -> Tuple[str, ...]:
        return tuple(sorted(self._metrics.keys()))


def _euclidean_pointwise(lhs: np.ndarray, rhs: np.ndarray) -> float:
    diff = lhs - rhs
    return float(np.sqrt(np.dot(diff, diff)))


def _euclidean_pairwise(lhs: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    diff = lhs[:, None, :] - rhs[None, :, :]
    return np.sqrt(np.sum(diff * diff, axis=-1))


def _sqeuclidean_pointwise(lhs: np.ndarray, rhs: np.ndarray) -> float:
    diff = lhs - rhs
    return float(np.dot(diff, diff))


def _sqeuclidean_pairwise(lhs: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    diff = lhs[:, None, :] - rhs[None, :, :]
    return np.sum(diff * diff, axis=-1)


def _manhattan_pointwise(lhs: np.ndarray, rhs: np.ndarray) -> float:
    return float(np.sum(np.abs(lhs - rhs)))


def _manhattan_pairwise(lhs: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    return np.sum(np.abs(lhs[:, None, :] - rhs[None, :, :]), axis=-1)


def _load_registry() -> MetricRegistry:
    registry = MetricRegistry()
    registry.register(
        Metric(
            name="euclidean",
            pointwise_kernel=_euclidean_pointwise,
            pairwise_kernel=_euclidean_pairwise,
        )
    )
    # Squared distances break the triangle inequality.
    registry.register(
        Metric(
            name="sqeuclidean",
            pointwise_kernel=_sqeuclidean_pointwise,
            pairwise_kernel=_sqeuclidean_pairwise,
            satisfies_triangle_inequality=False,
        )
    )
    registry.register(
        Metric(
            name="manhattan",
            pointwise_kernel=_manhattan_pointwise,
            pairwise_kernel=_manhattan_pairwise,
        )
    )
    return registry


_REGISTRY = _load_registry()


def get_metric(name: str | None = None) -> Metric:
    """Return a registered metric, defaulting to the runtime-selected metric."""

    if name is None:
        from psptree import config as px_config

        name = px_config.runtime_config().metric
    return _REGISTRY.get(name)


def register_metric(metric: Metric, *, overwrite: bool = False) -> None:
    _REGISTRY.register(metric, overwrite=overwrite)


def available_metrics() -> Tuple[str, ...]:
    return _REGISTRY.names()


def metric_from_callable(
    func: Callable[[np.ndarray, np.ndarray], float],
    *,
    name: str | None = None,
    satisfies_triangle_inequality: bool = True,
) -> Metric:
    """Wrap a plain ``f(a, b) -> float`` as a `Metric`.

    The pairwise kernel falls back to evaluating ``func`` per row pair.
    """

    def _pairwise(lhs: np.ndarray, rhs: np.ndarray) -> np.ndarray:
        out = np.empty((lhs.shape[0], rhs.shape[0]), dtype=np.float64)
        for i, row in enumerate(lhs):
            for j, col in enumerate(rhs):
                out[i, j] = float(func(row, col))
        return out

    return Metric(
        name=name or getattr(func, "__name__", "custom"),
        pointwise_kernel=func,
        pairwise_kernel=_pairwise,
        satisfies_triangle_inequality=satisfies_triangle_inequality,
    )


def resolve_metric(metric: Metric | str | Callable[..., float] | None) -> Metric:
    """Normalise the accepted metric spellings into a `Metric`."""

    if metric is None or isinstance(metric, str):
        return get_metric(metric)
    if isinstance(metric, Metric):
        return metric
    if callable(metric):
        return metric_from_callable(metric)
    raise TypeError(f"Cannot interpret {metric!r} as a distance metric.")


__all__ = [
    "Metric",
    "MetricRegistry",
    "available_metrics",
    "get_metric",
    "metric_from_callable",
    "register_metric",
    "resolve_metric",
]
