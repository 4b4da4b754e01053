"""
The ``.codec`` byte layout.

All fields are little endian:

    [magic "GSPC"][uint32 version = 1][uint32 count]
    [float32 x 12: position min, position max, scale min, scale max]
    5 x [uint32 word count][uint32 words...]   positions, scales, rotations, colors, opacities
"""

import logging
import os
import struct

import numpy as np

from ..errors import CorruptData, InvalidInput, StorageError
from .interface import CompressedFrame

logger = logging.getLogger(__name__)

CODEC_MAGIC = b"GSPC"
CODEC_VERSION = 1

_HEADER = struct.Struct("<4sII12f")
_LEN = struct.Struct("<I")
_WORD = np.dtype("<u4")

_ARRAYS = ("positions", "scales", "rotations", "colors", "opacities")


def to_bytes(compressed: CompressedFrame) -> bytes:
    """
    Serialize a CompressedFrame to the ``.codec`` layout.

    Raises:
        InvalidInput: If ``compressed`` is None.
        CorruptData: If the frame's arrays disagree with its point count.
    """
    if compressed is None:
        raise InvalidInput("Compressed frame must be provided")
    compressed.validate()

    bounds = np.concatenate([
        compressed.position_min, compressed.position_max,
        compressed.scale_min, compressed.scale_max,
    ]).astype(np.float32)
    parts = [_HEADER.pack(CODEC_MAGIC, CODEC_VERSION, compressed.count, *bounds.tolist())]
    for name in _ARRAYS:
        words = np.asarray(getattr(compressed, name), dtype=_WORD)
        parts.append(_LEN.pack(len(words)))
        parts.append(words.tobytes())
    return b"".join(parts)


def from_bytes(data: bytes) -> CompressedFrame:
    """
    Parse a ``.codec`` payload.

    Raises:
        InvalidInput: If ``data`` is empty.
        CorruptData: On a wrong magic, unsupported version, truncated or
            oversized buffer, or arrays inconsistent with the point count.
    """
    if not data:
        raise InvalidInput("Compressed data must be provided")
    if len(data) < _HEADER.size:
        raise CorruptData(f"Compressed data is truncated: {len(data)} bytes, header needs {_HEADER.size}")

    magic, version, count, *bounds = _HEADER.unpack_from(data, 0)
    if magic != CODEC_MAGIC:
        raise CorruptData(f"Invalid magic {magic!r}, expected {CODEC_MAGIC!r}")
    if version != CODEC_VERSION:
        raise CorruptData(f"Unsupported compressed format version {version}")

    offset = _HEADER.size
    arrays = {}
    for name in _ARRAYS:
        if len(data) < offset + _LEN.size:
            raise CorruptData(f"Compressed data ends before the {name} length")
        (length,) = _LEN.unpack_from(data, offset)
        offset += _LEN.size
        end = offset + length * _WORD.itemsize
        if len(data) < end:
            raise CorruptData(
                f"Compressed {name} declares {length} words but only "
                f"{(len(data) - offset) // _WORD.itemsize} are present"
            )
        arrays[name] = np.frombuffer(data, dtype=_WORD, count=length, offset=offset).astype(np.uint32)
        offset = end

    if offset != len(data):
        raise CorruptData(f"Compressed data has {len(data) - offset} trailing bytes")

    bounds = np.asarray(bounds, dtype=np.float32)
    compressed = CompressedFrame(
        position_min=bounds[0:3],
        position_max=bounds[3:6],
        scale_min=bounds[6:9],
        scale_max=bounds[9:12],
        count=count,
        **arrays,
    )
    compressed.validate()
    return compressed


def save(compressed: CompressedFrame, path: str | os.PathLike) -> None:
    """
    Write a CompressedFrame to a ``.codec`` file, creating parent directories.

    Raises:
        StorageError: If the file cannot be written.
    """
    data = to_bytes(compressed)
    try:
        parent_dir = os.path.dirname(os.fspath(path))
        if parent_dir and not os.path.exists(parent_dir):
            os.makedirs(parent_dir, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
    except OSError as e:
        raise StorageError(f"Cannot write compressed file {path}: {e}") from e
    logger.debug(f"Saved {compressed.count} compressed points to {path}")


def load(path: str | os.PathLike) -> CompressedFrame:
    """
    Read a ``.codec`` file.

    Raises:
        StorageError: If the file cannot be read.
        CorruptData: If its contents are inconsistent.
    """
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise StorageError(f"Cannot read compressed file {path}: {e}") from e
    if not data:
        raise CorruptData(f"Compressed file {path} is empty")
    return from_bytes(data)
