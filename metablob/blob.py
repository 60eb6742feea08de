from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from .errors import BlobIOError, FormatError, InvalidArgument, InvalidState
from .io.header import BlobHeader, decode_header, encode_header, host_is_msb
from .io.records import RecordCodec
from .models import DEFAULT_ELEMENT_TYPE, ElementType, PointList, PointRecord, make_record

DEFAULT_DIMENSION = 3
COLOR_FIELDS: Tuple[str, ...] = ("red", "green", "blue", "alpha")
DEFAULT_COLOR: Tuple[float, ...] = (1.0, 0.0, 0.0, 1.0)


def coordinate_names(dimension: int) -> Tuple[str, ...]:
    """Field names used for coordinates in the PointDim header line."""
    if dimension <= 3:
        return ("x", "y", "z")[:dimension]
    return tuple(f"x{i}" for i in range(dimension))


def _default_aux(aux_fields: Sequence[str]) -> Tuple[float, ...]:
    if tuple(aux_fields) == COLOR_FIELDS:
        return DEFAULT_COLOR
    return (0.0,) * len(aux_fields)


def _check_dimension(dimension) -> int:
    if isinstance(dimension, bool) or not isinstance(dimension, (int, np.integer)):
        raise InvalidArgument(f"Blob dimension must be an integer, got {dimension!r}.")
    if dimension < 1:
        raise InvalidArgument(f"Blob dimension must be >= 1, got {dimension}.")
    return int(dimension)


def _check_field_names(names: Iterable[str]) -> Tuple[str, ...]:
    """Aux field names are single ASCII tokens on the PointDim line."""
    names = tuple(names)
    for n in names:
        if not isinstance(n, str) or not n.isascii() or "=" in n or n.split() != [n]:
            raise InvalidArgument(f"Auxiliary field name must be a non-empty ASCII token without '=', got {n!r}.")
    return names


class Blob:
    """
    Point set persisted as a blob file: a text header followed by ASCII or
    binary records.

    The blob owns its :class:`PointList`. While the list holds points the
    dimension, element type and auxiliary fields are fixed; clear the list to
    change them.
    """

    def __init__(self, dimension: int = DEFAULT_DIMENSION, aux_fields: Iterable[str] = COLOR_FIELDS):
        dim = _check_dimension(dimension)
        self._aux_fields: Tuple[str, ...] = _check_field_names(aux_fields)
        self._points = PointList(dim, len(self._aux_fields))
        self._element_type = DEFAULT_ELEMENT_TYPE
        self.identifier = 0
        self.binary = False
        self.parent_id: Optional[int] = None
        self.name: Optional[str] = None
        self.comment: Optional[str] = None
        self.color: Optional[Tuple[float, float, float, float]] = None

    # ---------- Construction ----------

    @classmethod
    def from_file(cls, path: str | Path) -> "Blob":
        blob = cls()
        blob.read(path)
        return blob

    @classmethod
    def from_blob(cls, other: "Blob") -> "Blob":
        """Deep copy of ``other``; the new blob shares no records with it."""
        blob = cls(other.dimension, other.aux_fields)
        blob._element_type = other._element_type
        blob.identifier = other.identifier
        blob.binary = other.binary
        blob.parent_id = other.parent_id
        blob.name = other.name
        blob.comment = other.comment
        blob.color = other.color
        blob._points = other._points.copy()
        return blob

    def copy(self) -> "Blob":
        return Blob.from_blob(self)

    # ---------- Metadata ----------

    @property
    def identifier(self) -> int:
        return self._identifier

    @identifier.setter
    def identifier(self, value: int) -> None:
        self._identifier = int(value)

    @property
    def binary(self) -> bool:
        """Encoding used by :meth:`write`; :meth:`read` takes it from the header."""
        return self._binary

    @binary.setter
    def binary(self, flag: bool) -> None:
        self._binary = bool(flag)

    def _require_empty(self, what: str) -> None:
        if len(self._points):
            raise InvalidState(f"Cannot change {what} while the blob holds {len(self._points)} points; clear it first.")

    @property
    def element_type(self) -> ElementType:
        return self._element_type

    @element_type.setter
    def element_type(self, value: ElementType | str) -> None:
        new = ElementType.from_tag(value)
        if new is not self._element_type:
            self._require_empty("the element type")
        self._element_type = new

    @property
    def dimension(self) -> int:
        return self._points.dimension

    @dimension.setter
    def dimension(self, value: int) -> None:
        dim = _check_dimension(value)
        if dim != self._points.dimension:
            self._require_empty("the dimension")
        self._points._reshape(dim, self._points.aux_count)

    @property
    def aux_fields(self) -> Tuple[str, ...]:
        return self._aux_fields

    @aux_fields.setter
    def aux_fields(self, names: Iterable[str]) -> None:
        names = _check_field_names(names)
        if names != self._aux_fields:
            self._require_empty("the auxiliary fields")
        self._points._reshape(self._points.dimension, len(names))
        self._aux_fields = names

    @property
    def point_dim(self) -> Tuple[str, ...]:
        return coordinate_names(self.dimension) + self._aux_fields

    # ---------- Points ----------

    @property
    def points(self) -> PointList:
        """The owned point list; callers may append to, iterate or clear it."""
        return self._points

    @property
    def point_count(self) -> int:
        return len(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def add_point(self, coordinates: Sequence[float] | np.ndarray, aux: Sequence[float] | None = None) -> PointRecord:
        """Append a point stored in the blob's element type; aux defaults to the field defaults."""
        record = make_record(coordinates, aux, _default_aux(self._aux_fields), self._element_type)
        self._points.append(record)
        return record

    def clear(self) -> None:
        self._points.clear()

    def _codec(self, msb: bool | None = None) -> RecordCodec:
        return RecordCodec(self._element_type, self.dimension, len(self._aux_fields), msb=msb)

    def _header(self) -> BlobHeader:
        return BlobHeader(
            ndims=self.dimension,
            npoints=len(self._points),
            element_type=self._element_type,
            identifier=self.identifier,
            binary=self.binary,
            msb=host_is_msb(),
            point_dim=self.point_dim,
            parent_id=self.parent_id,
            name=self.name,
            comment=self.comment,
            color=self.color,
        )

    # ---------- I/O ----------

    def encode(self) -> bytes:
        """Full file contents: header followed by all records in list order."""
        codec = self._codec()
        parts = [encode_header(self._header())]
        if self.binary:
            parts.extend(codec.encode_binary(r) for r in self._points)
        else:
            parts.extend((codec.encode_ascii(r) + "\n").encode("ascii") for r in self._points)
        return b"".join(parts)

    def write(self, path: str | Path) -> None:
        """Write the blob to ``path``, creating parent directories and overwriting any existing file."""
        payload = self.encode()
        path = Path(path)
        try:
            if path.parent and path.parent != Path("."):
                path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("wb") as fh:
                fh.write(payload)
        except OSError as e:
            raise BlobIOError(e.errno, f"Cannot write blob file {path}: {e.strerror or e}", str(path)) from e

    def read(self, path: str | Path) -> None:
        """
        Replace this blob's points and metadata with the contents of ``path``.
        Nothing is changed unless the whole file parses.
        """
        path = Path(path)
        try:
            with path.open("rb") as fh:
                data = fh.read()
        except OSError as e:
            raise BlobIOError(e.errno, f"Cannot read blob file {path}: {e.strerror or e}", str(path)) from e
        self.decode(data)

    def decode(self, data: bytes) -> None:
        """Parse complete file contents and commit them to this blob."""
        header, offset = decode_header(data)
        aux_fields = header.aux_fields
        codec = RecordCodec(header.element_type, header.ndims, len(aux_fields), msb=header.msb)
        body = memoryview(data)[offset:]
        if header.binary:
            records = codec.decode_binary_body(body, header.npoints)
        else:
            try:
                text = bytes(body).decode("ascii")
            except UnicodeDecodeError:
                raise FormatError("ASCII record data contains non-ASCII bytes.") from None
            records = codec.decode_ascii_body(text, header.npoints)

        points = PointList(header.ndims, len(aux_fields), records)
        self._aux_fields = aux_fields
        self._element_type = header.element_type
        self.identifier = header.identifier
        self.binary = header.binary
        self.parent_id = header.parent_id
        self.name = header.name
        self.comment = header.comment
        self.color = header.color
        self._points = points

    # ---------- Reporting ----------

    def info_lines(self) -> list[str]:
        lines = [
            "ObjectType = Blob",
            f"ID = {self.identifier}",
        ]
        if self.parent_id is not None:
            lines.append(f"ParentID = {self.parent_id}")
        if self.name:
            lines.append(f"Name = {self.name}")
        if self.comment:
            lines.append(f"Comment = {self.comment}")
        lines += [
            f"NDims = {self.dimension}",
            f"NPoints = {self.point_count}",
            f"ElementType = {self._element_type.tag}",
            f"PointDim = {' '.join(self.point_dim)}",
            f"BinaryData = {'True' if self.binary else 'False'}",
        ]
        return lines

    def print_info(self) -> None:
        for line in self.info_lines():
            print(line)

    def __repr__(self) -> str:
        mode = "binary" if self.binary else "ascii"
        return (
            f"Blob(id={self.identifier}, dimension={self.dimension}, points={self.point_count}, "
            f"element_type={self._element_type.tag}, {mode})"
        )


__all__ = ["Blob", "DEFAULT_DIMENSION", "COLOR_FIELDS", "DEFAULT_COLOR", "coordinate_names"]
