"""
metablob: point-set ("Blob") persistence in a self-describing header + records file.

This package exposes:
- Blob, the point-set object with read/write
- Core data types (ElementType, PointRecord, PointList, CovariantVector)
- The error taxonomy (InvalidArgument, InvalidState, FormatError, BlobIOError)
"""

from .errors import BlobError, BlobIOError, FormatError, InvalidArgument, InvalidState
from .geom.vector import CovariantVector
from .models import ElementType, PointList, PointRecord
from .blob import Blob, COLOR_FIELDS, DEFAULT_COLOR, DEFAULT_DIMENSION

__all__ = [
    "Blob",
    "ElementType",
    "PointRecord",
    "PointList",
    "CovariantVector",
    "BlobError",
    "InvalidArgument",
    "InvalidState",
    "FormatError",
    "BlobIOError",
    "COLOR_FIELDS",
    "DEFAULT_COLOR",
    "DEFAULT_DIMENSION",
]

__version__ = "0.1.0"
