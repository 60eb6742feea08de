from __future__ import annotations

import enum
import warnings
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Sequence

import numpy as np

from .errors import FormatError, InvalidArgument, InvalidState
from .geom.vector import CovariantVector


class ElementType(enum.Enum):
    """
    Closed set of numeric kinds a blob can store; the value is the on-disk tag.
    """
    MET_CHAR = "MET_CHAR"
    MET_UCHAR = "MET_UCHAR"
    MET_SHORT = "MET_SHORT"
    MET_USHORT = "MET_USHORT"
    MET_INT = "MET_INT"
    MET_UINT = "MET_UINT"
    MET_LONG = "MET_LONG"
    MET_ULONG = "MET_ULONG"
    MET_LONG_LONG = "MET_LONG_LONG"
    MET_ULONG_LONG = "MET_ULONG_LONG"
    MET_FLOAT = "MET_FLOAT"
    MET_DOUBLE = "MET_DOUBLE"

    @classmethod
    def from_tag(cls, tag: "str | ElementType") -> "ElementType":
        if isinstance(tag, ElementType):
            return tag
        try:
            return cls(str(tag).strip().upper())
        except ValueError:
            raise FormatError(f"Unknown element type tag: {tag!r}") from None

    @property
    def tag(self) -> str:
        return self.value

    @property
    def dtype(self) -> np.dtype:
        """Native-order numpy dtype for this element type."""
        return np.dtype(_DTYPES[self])

    @property
    def width(self) -> int:
        return int(self.dtype.itemsize)

    @property
    def is_integer(self) -> bool:
        return self.dtype.kind in ("i", "u")

    def format_value(self, value) -> str:
        """Shortest text that parses back to the same value of this dtype."""
        scalar = self.dtype.type(value)
        if self.is_integer:
            return str(int(scalar))
        # numpy prints the shortest round-tripping repr for the scalar's own precision
        return str(scalar)

    def cast(self, values) -> np.ndarray:
        """
        Convert ``values`` to a 1-D array of this dtype.
        Integer kinds refuse non-finite or out-of-range values instead of wrapping,
        and warn when fractional parts are truncated.
        """
        arr = np.asarray(values).reshape(-1)
        if self.is_integer and arr.size and arr.dtype.kind != "b":
            info = np.iinfo(self.dtype)
            if arr.dtype.kind == "f":
                if not np.all(np.isfinite(arr)):
                    raise InvalidArgument(f"Non-finite value cannot be stored as {self.tag}.")
                lo, hi = float(arr.min()), float(arr.max())
                if not np.array_equal(arr, np.trunc(arr)):
                    warnings.warn(
                        f"Storing as {self.tag} truncates non-integer values.",
                        RuntimeWarning,
                        stacklevel=3,
                    )
            else:
                lo, hi = int(arr.min()), int(arr.max())
            if lo < info.min or hi > info.max:
                raise InvalidArgument(f"Values [{lo}, {hi}] out of range for {self.tag}.")
        return arr.astype(self.dtype)

    def parse_value(self, token: str):
        try:
            if self.is_integer:
                v = int(token, 10)
                info = np.iinfo(self.dtype)
                if v < info.min or v > info.max:
                    raise ValueError(f"{v} out of range for {self.tag}")
                return self.dtype.type(v)
            return self.dtype.type(float(token))
        except ValueError as e:
            raise FormatError(f"Malformed {self.tag} value {token!r}: {e}") from e


# MET_LONG / MET_ULONG are 4 bytes on disk whatever the platform's C long is
_DTYPES = {
    ElementType.MET_CHAR: "int8",
    ElementType.MET_UCHAR: "uint8",
    ElementType.MET_SHORT: "int16",
    ElementType.MET_USHORT: "uint16",
    ElementType.MET_INT: "int32",
    ElementType.MET_UINT: "uint32",
    ElementType.MET_LONG: "int32",
    ElementType.MET_ULONG: "uint32",
    ElementType.MET_LONG_LONG: "int64",
    ElementType.MET_ULONG_LONG: "uint64",
    ElementType.MET_FLOAT: "float32",
    ElementType.MET_DOUBLE: "float64",
}

DEFAULT_ELEMENT_TYPE = ElementType.MET_FLOAT


@dataclass(eq=False)
class PointRecord:
    """
    One point of a blob.
    - coordinates: (D,) array
    - aux:         (A,) array of auxiliary per-point values (e.g. RGBA), may be empty
    """
    coordinates: np.ndarray
    aux: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float64))

    def __post_init__(self) -> None:
        self.coordinates = np.array(self.coordinates, copy=True).reshape(-1)
        self.aux = np.array(self.aux, copy=True).reshape(-1)

    @property
    def dimension(self) -> int:
        return int(self.coordinates.size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PointRecord):
            return NotImplemented
        return bool(
            np.array_equal(self.coordinates, other.coordinates)
            and np.array_equal(self.aux, other.aux)
        )

    def copy(self) -> "PointRecord":
        return PointRecord(coordinates=self.coordinates.copy(), aux=self.aux.copy())

    def position(self) -> CovariantVector:
        return CovariantVector(self.coordinates)

    def values(self) -> np.ndarray:
        """Coordinates followed by auxiliary values, as stored in one record."""
        return np.concatenate([self.coordinates, self.aux])


class PointList:
    """
    Ordered collection of PointRecords owned by a single blob.

    Insertion order is the on-disk record order. Every record must have
    ``dimension`` coordinates and ``aux_count`` auxiliary values.
    """

    def __init__(self, dimension: int, aux_count: int = 0, records: Iterable[PointRecord] = ()):
        self._dimension = int(dimension)
        self._aux_count = int(aux_count)
        self._records: List[PointRecord] = []
        self.extend(records)

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def aux_count(self) -> int:
        return self._aux_count

    def _reshape(self, dimension: int, aux_count: int) -> None:
        """Change the record shape; only an empty list can be reshaped."""
        if self._records and (dimension != self._dimension or aux_count != self._aux_count):
            raise InvalidState(f"Cannot reshape a PointList holding {len(self._records)} points.")
        self._dimension = int(dimension)
        self._aux_count = int(aux_count)

    def _check(self, record: PointRecord) -> None:
        if not isinstance(record, PointRecord):
            raise InvalidArgument(f"PointList holds PointRecord, got {type(record).__name__}.")
        if record.coordinates.size != self.dimension:
            raise InvalidArgument(
                f"Point has {record.coordinates.size} coordinates, blob dimension is {self.dimension}."
            )
        if record.aux.size != self.aux_count:
            raise InvalidArgument(
                f"Point has {record.aux.size} auxiliary values, blob expects {self.aux_count}."
            )

    def append(self, record: PointRecord) -> None:
        self._check(record)
        self._records.append(record)

    def extend(self, records: Iterable[PointRecord]) -> None:
        for r in records:
            self.append(r)

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PointRecord]:
        return iter(self._records)

    def __getitem__(self, index: int) -> PointRecord:
        return self._records[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PointList):
            return NotImplemented
        return (
            self.dimension == other.dimension
            and self.aux_count == other.aux_count
            and self._records == other._records
        )

    def __repr__(self) -> str:
        return f"PointList(dimension={self.dimension}, aux_count={self.aux_count}, size={len(self)})"

    def copy(self) -> "PointList":
        return PointList(self.dimension, self.aux_count, (r.copy() for r in self._records))

    def as_array(self, dtype=np.float64) -> np.ndarray:
        """(N, D + A) array with one row per record."""
        out = np.empty((len(self._records), self.dimension + self.aux_count), dtype=dtype)
        for i, r in enumerate(self._records):
            out[i] = r.values()
        return out


def make_record(
    coordinates: Sequence[float] | np.ndarray,
    aux: Sequence[float] | np.ndarray | None,
    default_aux: Sequence[float],
    element_type: ElementType = DEFAULT_ELEMENT_TYPE,
) -> PointRecord:
    """Build a PointRecord in ``element_type``, filling aux values from ``default_aux`` when not given."""
    if aux is None:
        aux = default_aux
    return PointRecord(coordinates=element_type.cast(coordinates), aux=element_type.cast(aux))


__all__ = ["ElementType", "DEFAULT_ELEMENT_TYPE", "PointRecord", "PointList", "make_record"]
