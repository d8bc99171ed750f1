from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Sequence, Tuple, Union

import numpy as np


@dataclass(frozen=True)
class Position:
    """Immutable point used as the tree's key.

    Equality and hashing are element-wise over the coordinate tuple, so two
    positions built from the same numbers are the same key.
    """

    coords: Tuple[float, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "coords", tuple(float(c) for c in self.coords))

    @classmethod
    def of(cls, *coords: float) -> "Position":
        return cls(coords)

    @property
    def dimension(self) -> int:
        return len(self.coords)

    def as_array(self) -> np.ndarray:
        return np.asarray(self.coords, dtype=np.float64)

    def __iter__(self) -> Iterator[float]:
        return iter(self.coords)

    def __len__(self) -> int:
        return len(self.coords)

    def __getitem__(self, index: int) -> float:
        return self.coords[index]

    def __repr__(self) -> str:
        return "(" + ", ".join(repr(c) for c in self.coords) + ")"


PositionLike = Union[Position, Sequence[float], np.ndarray]


def as_position(value: PositionLike | Any) -> Position:
    """Coerce a position, coordinate sequence or 1-D array into a `Position`."""

    if isinstance(value, Position):
        return value
    arr = np.asarray(value, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(
            f"Positions must be one-dimensional coordinate vectors; got shape {arr.shape}."
        )
    return Position(tuple(arr.tolist()))


__all__ = ["Position", "PositionLike", "as_position"]
