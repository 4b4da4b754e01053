"""
IO module for frame files, frame sequences and bytes data.
"""

from .sequence import (
    FRAME_SUFFIXES,
    FrameReader,
    FrameSequence,
    FrameWriter,
    list_frame_files,
    load_frame,
    save_frame,
)
from .bytes import BytesReader, BytesWriter
from .config import (
    FrameReaderConfig,
    FrameWriterConfig,
    BytesReaderConfig,
    BytesWriterConfig,
    build_frame_reader,
    build_frame_writer,
    build_bytes_reader,
    build_bytes_writer,
)

__all__ = [
    "FRAME_SUFFIXES",
    "FrameReader",
    "FrameSequence",
    "FrameWriter",
    "list_frame_files",
    "load_frame",
    "save_frame",
    "BytesReader",
    "BytesWriter",
    "FrameReaderConfig",
    "FrameWriterConfig",
    "BytesReaderConfig",
    "BytesWriterConfig",
    "build_frame_reader",
    "build_frame_writer",
    "build_bytes_reader",
    "build_bytes_writer",
]
