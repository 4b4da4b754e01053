"""
PLY interchange format: header parsing, vertex decoding and writing.
"""

from .header import PlyEncoding, PlyHeader, PlyProperty, parse_header
from .decoder import decode, decode_file
from .writer import encode, write_file

__all__ = [
    "PlyEncoding",
    "PlyHeader",
    "PlyProperty",
    "parse_header",
    "decode",
    "decode_file",
    "encode",
    "write_file",
]
