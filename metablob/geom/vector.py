"""Fixed-size numeric tuple used to interpret point coordinates."""
from __future__ import annotations

from typing import Iterable

import numpy as np

from ..errors import InvalidArgument


class CovariantVector:
    """
    n-dimensional vector holding its values in a private numpy array.

    Arithmetic is exposed as named methods that return new vectors; the
    receiver is never modified. Values are kept in ``dtype`` (float64 unless
    told otherwise).
    """

    __slots__ = ("_values",)

    def __init__(self, values: Iterable[float] | np.ndarray, dtype=np.float64):
        arr = np.array(values, dtype=dtype).reshape(-1)
        if arr.size == 0:
            raise InvalidArgument("CovariantVector needs at least one component.")
        self._values = arr

    @classmethod
    def zeros(cls, dimension: int, dtype=np.float64) -> "CovariantVector":
        if dimension < 1:
            raise InvalidArgument(f"Vector dimension must be >= 1, got {dimension}.")
        return cls(np.zeros(int(dimension), dtype=dtype), dtype=dtype)

    @property
    def dimension(self) -> int:
        return int(self._values.size)

    def __len__(self) -> int:
        return self.dimension

    def __getitem__(self, index: int):
        return self._values[index]

    def __iter__(self):
        return iter(self._values.tolist())

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self._values.copy()
        return self._values.astype(dtype)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CovariantVector):
            return NotImplemented
        return bool(np.array_equal(self._values, other._values))

    def __repr__(self) -> str:
        return f"CovariantVector({self._values.tolist()!r})"

    def as_array(self) -> np.ndarray:
        """Return a copy of the components."""
        return self._values.copy()

    def _check_same_dimension(self, other: "CovariantVector") -> None:
        if other.dimension != self.dimension:
            raise InvalidArgument(
                f"Vector dimension mismatch: {self.dimension} vs {other.dimension}."
            )

    def add(self, other: "CovariantVector") -> "CovariantVector":
        self._check_same_dimension(other)
        return CovariantVector(self._values + other._values, dtype=self._values.dtype)

    def subtract(self, other: "CovariantVector") -> "CovariantVector":
        self._check_same_dimension(other)
        return CovariantVector(self._values - other._values, dtype=self._values.dtype)

    def negate(self) -> "CovariantVector":
        return CovariantVector(-self._values, dtype=self._values.dtype)

    def scale_by(self, factor: float) -> "CovariantVector":
        return CovariantVector(self._values * factor, dtype=self._values.dtype)

    def divide_by(self, divisor: float) -> "CovariantVector":
        if divisor == 0:
            raise InvalidArgument("Cannot divide a vector by zero.")
        return CovariantVector(self._values / divisor, dtype=self._values.dtype)

    def squared_norm(self) -> float:
        v = self._values.astype(np.float64)
        return float(v @ v)

    def norm(self) -> float:
        return float(np.sqrt(self.squared_norm()))


__all__ = ["CovariantVector"]
