"""
PLY header parsing.

Only the pieces of the PLY grammar needed for splat vertices are accepted:
a ``ply`` marker, an ``ascii`` or ``binary_little_endian`` format line, a
``vertex`` element with scalar properties, and the ``end_header`` terminator.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import numpy as np

from ..errors import FormatError, InvalidInput

PLY_MAGIC = b"ply"

# end_header followed by a line break (or the end of the data)
_HEADER_END = re.compile(rb"(?m)^end_header[ \t]*(?:\r?\n|\r|\Z)")

# PLY scalar type name -> little-endian numpy dtype
PLY_TYPES: Dict[str, str] = {
    "char": "<i1",
    "int8": "<i1",
    "uchar": "<u1",
    "uint8": "<u1",
    "short": "<i2",
    "int16": "<i2",
    "ushort": "<u2",
    "uint16": "<u2",
    "int": "<i4",
    "int32": "<i4",
    "uint": "<u4",
    "uint32": "<u4",
    "int64": "<i8",
    "uint64": "<u8",
    "float": "<f4",
    "float32": "<f4",
    "double": "<f8",
    "float64": "<f8",
}

EIGHT_BIT_TYPES = frozenset({"char", "int8", "uchar", "uint8"})


class PlyEncoding(Enum):
    ASCII = "ascii"
    BINARY_LITTLE_ENDIAN = "binary_little_endian"


@dataclass
class PlyProperty:
    """A scalar vertex property declared as ``property <type> <name>``."""
    type: str
    name: str

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(PLY_TYPES[self.type])

    @property
    def is_8bit(self) -> bool:
        return self.type in EIGHT_BIT_TYPES


@dataclass
class PlyHeader:
    """
    Parsed PLY header.

    Attributes:
        encoding: ASCII or binary little-endian body.
        vertex_count: Number of vertex records declared.
        properties: Vertex properties in declaration order.
        data_offset: Byte offset where the vertex records start.
    """
    encoding: PlyEncoding
    vertex_count: int
    properties: List[PlyProperty] = field(default_factory=list)
    data_offset: int = 0

    def index_of(self, *names: str) -> Optional[int]:
        """Index of the first declared property matching one of ``names``, by priority."""
        declared = {prop.name: i for i, prop in reversed(list(enumerate(self.properties)))}
        for name in names:
            if name in declared:
                return declared[name]
        return None

    @property
    def record_dtype(self) -> np.dtype:
        """Packed structured dtype of one binary vertex record."""
        return np.dtype([(f"p{i}", prop.dtype) for i, prop in enumerate(self.properties)])


def _find_header_end(data: bytes) -> int:
    match = _HEADER_END.search(data)
    if match is None:
        raise FormatError("PLY header is missing its end_header terminator")
    return match.end()


def parse_header(data: bytes) -> PlyHeader:
    """
    Parse the header of a PLY payload.

    Args:
        data: The complete PLY payload.

    Returns:
        The parsed PlyHeader, with ``data_offset`` pointing past the
        terminator line.

    Raises:
        InvalidInput: If ``data`` is empty.
        FormatError: On a bad marker, missing terminator, unsupported format
            or property type, or a header without usable vertex data.
    """
    if not data:
        raise InvalidInput("PLY data must be provided")

    first_line = data.split(b"\n", 1)[0].strip().lower()
    if first_line != PLY_MAGIC:
        raise FormatError("Data does not start with the 'ply' marker")

    data_offset = _find_header_end(data)
    lines = data[:data_offset].decode("ascii", errors="replace").splitlines()

    encoding: Optional[PlyEncoding] = None
    vertex_count: Optional[int] = None
    properties: List[PlyProperty] = []
    in_vertex = False

    for line in lines[1:-1]:
        tokens = line.split()
        if not tokens:
            continue
        keyword = tokens[0].lower()

        if keyword in ("comment", "obj_info"):
            continue

        if keyword == "format":
            if len(tokens) < 2:
                raise FormatError(f"Malformed format line: '{line}'")
            try:
                encoding = PlyEncoding(tokens[1].lower())
            except ValueError:
                raise FormatError(f"Unsupported PLY format '{tokens[1]}'") from None

        elif keyword == "element":
            if len(tokens) < 3:
                raise FormatError(f"Malformed element line: '{line}'")
            try:
                count = int(tokens[2])
            except ValueError:
                raise FormatError(f"Invalid element count in '{line}'") from None
            if count < 0:
                raise FormatError(f"Negative element count in '{line}'")
            if tokens[1] == "vertex":
                if vertex_count is not None:
                    raise FormatError("Duplicate vertex element")
                in_vertex = True
                vertex_count = count
            else:
                in_vertex = False
                if vertex_count is None and count > 0:
                    raise FormatError(
                        f"Element '{tokens[1]}' declared before the vertex element is not supported"
                    )

        elif keyword == "property":
            if not in_vertex:
                continue
            if len(tokens) >= 2 and tokens[1].lower() == "list":
                raise FormatError(f"List properties are not supported: '{line}'")
            if len(tokens) < 3:
                raise FormatError(f"Malformed property line: '{line}'")
            prop_type = tokens[1].lower()
            if prop_type not in PLY_TYPES:
                raise FormatError(f"Unsupported property type '{tokens[1]}'")
            properties.append(PlyProperty(type=prop_type, name=tokens[2]))

        else:
            raise FormatError(f"Unexpected header line: '{line}'")

    if encoding is None:
        raise FormatError("PLY header has no format line")
    if vertex_count is None:
        raise FormatError("PLY header declares no vertex element")

    header = PlyHeader(
        encoding=encoding,
        vertex_count=vertex_count,
        properties=properties,
        data_offset=data_offset,
    )
    for axis in ("x", "y", "z"):
        if header.index_of(axis) is None:
            raise FormatError(f"Required vertex property '{axis}' is missing")
    return header
