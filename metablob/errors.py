"""Error taxonomy for blob persistence.

Every error derives from :class:`BlobError` and from the builtin exception a
caller would naturally catch for it, so ``except ValueError`` and
``except OSError`` keep working.
"""
from __future__ import annotations


class BlobError(Exception):
    """Base class for all metablob errors."""


class InvalidArgument(BlobError, ValueError):
    """Bad constructor or method parameter (e.g. dimension < 1)."""


class InvalidState(BlobError, RuntimeError):
    """Metadata change that is not allowed while points exist."""


class FormatError(BlobError, ValueError):
    """File content is inconsistent with the blob format or with its own header."""


class BlobIOError(BlobError, OSError):
    """The file could not be opened, read or written."""


__all__ = ["BlobError", "InvalidArgument", "InvalidState", "FormatError", "BlobIOError"]
