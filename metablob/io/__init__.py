"""Header and record codecs for blob files. PLY interchange lives in :mod:`metablob.io.ply`."""
from .header import BlobHeader, decode_header, encode_header, host_is_msb
from .records import RecordCodec

__all__ = ["BlobHeader", "decode_header", "encode_header", "host_is_msb", "RecordCodec"]
