"""
PLY splat decoder.

Turns an ASCII or binary little-endian PLY payload into a canonical Frame and
its bounding box. Decoding is a pure function of the input bytes.
"""

import os
from typing import Tuple

import numpy as np

from ..errors import ParseError, StorageError
from ..frame import Bounds, DEFAULT_SCALE, Frame, IDENTITY_ROTATION
from .header import PlyEncoding, PlyHeader, parse_header

# Canonical channel -> accepted property names, by priority
SCALE_ALIASES = (
    ("scale_0", "scale_x", "sx"),
    ("scale_1", "scale_y", "sy"),
    ("scale_2", "scale_z", "sz"),
)
ROTATION_ALIASES = (
    ("rot_0", "qx"),
    ("rot_1", "qy"),
    ("rot_2", "qz"),
    ("rot_3", "qw"),
)
COLOR_ALIASES = (
    ("red", "r"),
    ("green", "g"),
    ("blue", "b"),
)
OPACITY_ALIASES = ("alpha", "opacity")


def _read_ascii(data: bytes, header: PlyHeader) -> np.ndarray:
    """Read ASCII vertex lines into a (N, P) float64 array."""
    text = data[header.data_offset:].decode("ascii", errors="replace")
    lines = (line for line in text.splitlines() if line.strip())
    n_props = len(header.properties)
    # Rows grow with the data, not with the declared count
    rows = []

    for record in range(header.vertex_count):
        line = next(lines, None)
        if line is None:
            raise ParseError(
                f"Unexpected end of ASCII data: {header.vertex_count} vertices declared, "
                f"{record} found",
                record=record,
            )
        tokens = line.split()
        if len(tokens) < n_props:
            raise ParseError(
                f"Vertex {record} has {len(tokens)} values but {n_props} properties are declared",
                record=record,
            )
        try:
            rows.append([float(token) for token in tokens[:n_props]])
        except ValueError as e:
            raise ParseError(f"Vertex {record} has a non-numeric value: {e}", record=record) from e

    return np.array(rows, dtype=np.float64).reshape(len(rows), n_props)


def _read_binary(data: bytes, header: PlyHeader) -> np.ndarray:
    """Read packed little-endian vertex records into a (N, P) float64 array."""
    n_props = len(header.properties)
    if header.vertex_count == 0:
        return np.empty((0, n_props), dtype=np.float64)

    dtype = header.record_dtype
    available = len(data) - header.data_offset
    if available < header.vertex_count * dtype.itemsize:
        record = available // dtype.itemsize
        raise ParseError(
            f"Binary data ends inside vertex {record}: {available} bytes available for "
            f"{header.vertex_count} records of {dtype.itemsize} bytes",
            record=record,
        )

    records = np.frombuffer(data, dtype=dtype, count=header.vertex_count, offset=header.data_offset)
    return np.stack([records[name].astype(np.float64) for name in dtype.names], axis=1)


def _channel(values: np.ndarray, header: PlyHeader, aliases, default: float) -> np.ndarray:
    index = header.index_of(*aliases)
    if index is None:
        return np.full(values.shape[0], default, dtype=np.float64)
    return values[:, index]


def _to_frame(values: np.ndarray, header: PlyHeader) -> Frame:
    positions = np.stack([values[:, header.index_of(axis)] for axis in ("x", "y", "z")], axis=1)
    scales = np.stack(
        [_channel(values, header, names, DEFAULT_SCALE) for names in SCALE_ALIASES], axis=1
    )
    rotations = np.stack(
        [
            _channel(values, header, names, default)
            for names, default in zip(ROTATION_ALIASES, IDENTITY_ROTATION)
        ],
        axis=1,
    )

    colors = []
    for names in COLOR_ALIASES:
        channel = _channel(values, header, names, 1.0)
        index = header.index_of(*names)
        # 8-bit channels store 0..255
        if index is not None and header.properties[index].is_8bit:
            channel = channel / 255.0
        colors.append(channel)
    colors = np.stack(colors, axis=1)

    opacities = _channel(values, header, OPACITY_ALIASES, 1.0)

    return Frame.create(
        positions=positions,
        scales=scales,
        rotations=rotations,
        colors=colors,
        opacities=opacities,
    )


def decode(data: bytes) -> Tuple[Frame, Bounds]:
    """
    Decode a PLY payload into a Frame and its bounding box.

    Args:
        data: The complete PLY payload (ASCII or binary little-endian).

    Returns:
        Tuple of (frame, bounds).

    Raises:
        InvalidInput: If ``data`` is empty.
        FormatError: If the container is malformed or unsupported.
        ParseError: If a vertex record is missing or unreadable. The error's
            ``record`` attribute names the failing vertex index.
    """
    header = parse_header(data)
    if header.encoding is PlyEncoding.ASCII:
        values = _read_ascii(data, header)
    else:
        values = _read_binary(data, header)

    frame = _to_frame(values, header)
    return frame, frame.bounds()


def decode_file(path: str | os.PathLike) -> Tuple[Frame, Bounds]:
    """
    Decode a PLY file.

    Raises:
        StorageError: If the file cannot be read.
    """
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise StorageError(f"Cannot read PLY file {path}: {e}") from e
    return decode(data)
