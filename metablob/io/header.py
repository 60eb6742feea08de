"""
Textual ``Key = Value`` header of a blob file.

The header ends with the ``ElementDataFile`` line; record data starts at the
first byte after that line's newline.
"""
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..errors import FormatError, InvalidArgument
from ..models import DEFAULT_ELEMENT_TYPE, ElementType

OBJECT_TYPE = "Blob"
DATA_MARKER_KEY = "ElementDataFile"
LOCAL_DATA = "LOCAL"
MANDATORY_KEYS = ("NDims", "ElementType", "NPoints")

# Accepted spellings for the byte-order flag; the first is what we write.
_BYTE_ORDER_KEYS = ("ByteOrderMSB", "BinaryDataByteOrderMSB", "ElementByteOrderMSB")


def host_is_msb() -> bool:
    return sys.byteorder == "big"


@dataclass
class BlobHeader:
    """
    Metadata block of a blob file.
    - point_dim: names of all per-record fields, coordinates first
    """
    ndims: int
    npoints: int
    element_type: ElementType = DEFAULT_ELEMENT_TYPE
    identifier: int = 0
    binary: bool = False
    msb: bool = field(default_factory=host_is_msb)
    point_dim: Tuple[str, ...] = ()
    parent_id: Optional[int] = None
    name: Optional[str] = None
    comment: Optional[str] = None
    color: Optional[Tuple[float, float, float, float]] = None

    @property
    def aux_fields(self) -> Tuple[str, ...]:
        return tuple(self.point_dim[self.ndims:])


def _format_bool(flag: bool) -> str:
    return "True" if flag else "False"


def _parse_bool(key: str, text: str) -> bool:
    lowered = text.strip().lower()
    if lowered in ("true", "1"):
        return True
    if lowered in ("false", "0"):
        return False
    raise FormatError(f"Header key {key} expects True/False, got {text!r}.")


def _parse_int(key: str, text: str) -> int:
    try:
        return int(text.strip(), 10)
    except ValueError:
        raise FormatError(f"Header key {key} expects an integer, got {text!r}.") from None


def _parse_color(text: str) -> Tuple[float, float, float, float]:
    parts = text.split()
    try:
        values = tuple(float(p) for p in parts)
    except ValueError:
        raise FormatError(f"Header key Color expects 4 numbers, got {text!r}.") from None
    if len(values) != 4:
        raise FormatError(f"Header key Color expects 4 numbers, got {len(values)}.")
    return values  # type: ignore[return-value]


def _check_text(key: str, text: Optional[str]) -> None:
    """Free-text values must stay on one ASCII header line."""
    if text is None:
        return
    if not text.isascii() or "\n" in text or "\r" in text:
        raise InvalidArgument(f"Header key {key} must be single-line ASCII text, got {text!r}.")


def encode_header(header: BlobHeader) -> bytes:
    """Serialize ``header`` in the fixed emission order, ending with the data marker line."""
    for key, text in (("Name", header.name), ("Comment", header.comment)):
        _check_text(key, text)
    lines: List[str] = [
        f"ObjectType = {OBJECT_TYPE}",
        f"ID = {int(header.identifier)}",
    ]
    if header.parent_id is not None:
        lines.append(f"ParentID = {int(header.parent_id)}")
    if header.name:
        lines.append(f"Name = {header.name}")
    if header.comment:
        lines.append(f"Comment = {header.comment}")
    if header.color is not None:
        lines.append("Color = " + " ".join(repr(float(c)) for c in header.color))
    lines.append(f"NDims = {int(header.ndims)}")
    lines.append(f"BinaryData = {_format_bool(header.binary)}")
    if header.binary:
        lines.append(f"{_BYTE_ORDER_KEYS[0]} = {_format_bool(header.msb)}")
    lines.append(f"ElementType = {header.element_type.tag}")
    if header.point_dim:
        lines.append("PointDim = " + " ".join(header.point_dim))
    lines.append(f"NPoints = {int(header.npoints)}")
    lines.append(f"{DATA_MARKER_KEY} = {LOCAL_DATA}")
    return ("\n".join(lines) + "\n").encode("ascii")


def _split_header(data: bytes) -> Tuple[Dict[str, str], int]:
    """Collect raw key/value pairs up to and including the data marker line."""
    values: Dict[str, str] = {}
    pos = 0
    n = len(data)
    while pos < n:
        end = data.find(b"\n", pos)
        next_pos = n if end < 0 else end + 1
        raw = data[pos:next_pos]
        pos = next_pos
        try:
            line = raw.decode("ascii").strip()
        except UnicodeDecodeError:
            raise FormatError("Header contains non-ASCII bytes before the data marker.") from None
        if not line:
            continue
        key, sep, value = line.partition("=")
        if not sep:
            raise FormatError(f"Malformed header line (no '='): {line!r}")
        key = key.strip()
        values[key] = value.strip()
        if key == DATA_MARKER_KEY:
            return values, pos
    raise FormatError(f"Header has no '{DATA_MARKER_KEY}' line.")


def decode_header(data: bytes) -> Tuple[BlobHeader, int]:
    """
    Parse the header at the start of ``data``.

    Returns the header and the byte offset at which record data begins.
    Key order is free apart from the data marker, which ends the header.
    Unknown keys are ignored.
    """
    raw, offset = _split_header(data)

    object_type = raw.get("ObjectType")
    if object_type is not None and object_type != OBJECT_TYPE:
        raise FormatError(f"ObjectType is {object_type!r}, expected {OBJECT_TYPE!r}.")

    missing = [k for k in MANDATORY_KEYS if k not in raw]
    if missing:
        raise FormatError(f"Header is missing mandatory key(s): {', '.join(missing)}.")

    if raw[DATA_MARKER_KEY] != LOCAL_DATA:
        raise FormatError(f"Only {DATA_MARKER_KEY} = {LOCAL_DATA} is supported, got {raw[DATA_MARKER_KEY]!r}.")

    ndims = _parse_int("NDims", raw["NDims"])
    if ndims <= 0:
        raise FormatError(f"NDims must be positive, got {ndims}.")
    npoints = _parse_int("NPoints", raw["NPoints"])
    if npoints < 0:
        raise FormatError(f"NPoints must be non-negative, got {npoints}.")
    element_type = ElementType.from_tag(raw["ElementType"])

    binary = _parse_bool("BinaryData", raw["BinaryData"]) if "BinaryData" in raw else False
    msb = host_is_msb()
    for key in _BYTE_ORDER_KEYS:
        if key in raw:
            msb = _parse_bool(key, raw[key])
            break

    point_dim: Tuple[str, ...] = ()
    if "PointDim" in raw:
        point_dim = tuple(raw["PointDim"].split())
        if len(point_dim) < ndims:
            raise FormatError(f"PointDim names {len(point_dim)} fields, fewer than NDims = {ndims}.")

    header = BlobHeader(
        ndims=ndims,
        npoints=npoints,
        element_type=element_type,
        identifier=_parse_int("ID", raw["ID"]) if "ID" in raw else 0,
        binary=binary,
        msb=msb,
        point_dim=point_dim,
        parent_id=_parse_int("ParentID", raw["ParentID"]) if "ParentID" in raw else None,
        name=raw.get("Name") or None,
        comment=raw.get("Comment") or None,
        color=_parse_color(raw["Color"]) if "Color" in raw else None,
    )
    return header, offset


__all__ = ["BlobHeader", "encode_header", "decode_header", "host_is_msb", "OBJECT_TYPE"]
