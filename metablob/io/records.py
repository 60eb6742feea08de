"""
Encoding of single point records, as ASCII lines or fixed-width binary.

A record is the point's D coordinates followed by its auxiliary values, all in
the blob's element type.
"""
from __future__ import annotations

from typing import List

import numpy as np

from ..errors import FormatError, InvalidArgument
from ..models import ElementType, PointRecord
from .header import host_is_msb


class RecordCodec:
    """
    Record encoder/decoder for a given element type, dimension and aux count.

    ``msb`` is the byte order of binary data being decoded; encoding always
    uses the host order, which is what the header records on write.
    """

    def __init__(self, element_type: ElementType, dimension: int, aux_count: int = 0, msb: bool | None = None):
        if dimension < 1:
            raise InvalidArgument(f"Record dimension must be >= 1, got {dimension}.")
        if aux_count < 0:
            raise InvalidArgument(f"Auxiliary value count must be >= 0, got {aux_count}.")
        self.element_type = ElementType.from_tag(element_type)
        self.dimension = int(dimension)
        self.aux_count = int(aux_count)
        self.msb = host_is_msb() if msb is None else bool(msb)

    @property
    def width(self) -> int:
        """Values per record."""
        return self.dimension + self.aux_count

    @property
    def record_bytes(self) -> int:
        return self.width * self.element_type.width

    @property
    def file_dtype(self) -> np.dtype:
        """Element dtype with the byte order of the data being decoded."""
        return self.element_type.dtype.newbyteorder(">" if self.msb else "<")

    def _values(self, record: PointRecord) -> np.ndarray:
        if record.coordinates.size != self.dimension or record.aux.size != self.aux_count:
            raise InvalidArgument(
                f"Record shape ({record.coordinates.size}+{record.aux.size}) does not match "
                f"codec ({self.dimension}+{self.aux_count})."
            )
        return self.element_type.cast(record.values())

    def _record(self, values: np.ndarray) -> PointRecord:
        native = np.asarray(values, dtype=self.element_type.dtype)
        return PointRecord(coordinates=native[: self.dimension], aux=native[self.dimension :])

    # ---------- ASCII ----------

    def encode_ascii(self, record: PointRecord) -> str:
        """One line of whitespace-separated values, without the trailing newline."""
        fmt = self.element_type.format_value
        return " ".join(fmt(v) for v in self._values(record))

    def decode_ascii(self, line: str) -> PointRecord:
        tokens = line.split()
        if len(tokens) != self.width:
            raise FormatError(f"ASCII record has {len(tokens)} values, expected {self.width}: {line.strip()!r}")
        parse = self.element_type.parse_value
        return self._record(np.array([parse(t) for t in tokens], dtype=self.element_type.dtype))

    def decode_ascii_body(self, text: str, npoints: int) -> List[PointRecord]:
        """Decode exactly ``npoints`` non-blank lines; any other count is a FormatError."""
        records: List[PointRecord] = []
        for line in text.splitlines():
            if not line.strip():
                continue
            if len(records) == npoints:
                raise FormatError(f"File holds more than the {npoints} records declared by NPoints.")
            records.append(self.decode_ascii(line))
        if len(records) != npoints:
            raise FormatError(f"Read {len(records)} records, header declares NPoints = {npoints}.")
        return records

    # ---------- Binary ----------

    def encode_binary(self, record: PointRecord) -> bytes:
        return self._values(record).tobytes()

    def decode_binary(self, buffer: bytes | memoryview, index: int) -> PointRecord:
        """Decode the record at position ``index`` (offset ``index * record_bytes``) of ``buffer``."""
        start = index * self.record_bytes
        if start + self.record_bytes > len(buffer):
            raise FormatError(f"Binary data truncated: record {index} ends past {len(buffer)} bytes.")
        values = np.frombuffer(buffer, dtype=self.file_dtype, count=self.width, offset=start)
        return self._record(values.astype(self.element_type.dtype))

    def decode_binary_body(self, buffer: bytes | memoryview, npoints: int) -> List[PointRecord]:
        """Decode ``npoints`` back-to-back records; bytes past the last record are ignored."""
        need = npoints * self.record_bytes
        if len(buffer) < need:
            raise FormatError(
                f"Binary data truncated: {len(buffer)} bytes after header, "
                f"{npoints} records of {self.record_bytes} bytes need {need}."
            )
        return [self.decode_binary(buffer, i) for i in range(npoints)]


__all__ = ["RecordCodec"]
