"""
Splat data engine: PLY decoding, quantized compression, level-of-detail
generation and cached sequence playback.
"""

from .errors import (
    SplatError,
    FormatError,
    ParseError,
    CorruptData,
    InvalidInput,
    StorageError,
    EmptySequenceError,
)
from .frame import Bounds, Frame, SplatPoint
from .ply import decode, decode_file
from .codec import CompressedFrame, compress, decompress
from .lod import LODMethod, generate_lod_level, generate_lod_levels
from .cache import FrameCache, FrameState, SequencePlayer
from . import editing, filters

__all__ = [
    "SplatError",
    "FormatError",
    "ParseError",
    "CorruptData",
    "InvalidInput",
    "StorageError",
    "EmptySequenceError",
    "Bounds",
    "Frame",
    "SplatPoint",
    "decode",
    "decode_file",
    "CompressedFrame",
    "compress",
    "decompress",
    "LODMethod",
    "generate_lod_level",
    "generate_lod_levels",
    "FrameCache",
    "FrameState",
    "SequencePlayer",
    "editing",
    "filters",
]
