from dataclasses import dataclass

from omegaconf import MISSING

from .bytes import BytesReader, BytesWriter
from .sequence import FrameReader, FrameWriter


@dataclass
class FrameReaderConfig:
    """Configuration for reading a directory of frames."""
    directory: str = MISSING


@dataclass
class FrameWriterConfig:
    """Configuration for writing frames to numbered files."""
    directory: str = MISSING
    name_format: str = "frame_{:04d}.ply"
    start_index: int = 0


def build_frame_reader(config: FrameReaderConfig) -> FrameReader:
    """Build a FrameReader from configuration."""
    return FrameReader(directory=config.directory)


def build_frame_writer(config: FrameWriterConfig) -> FrameWriter:
    """Build a FrameWriter from configuration."""
    return FrameWriter(
        directory=config.directory,
        name_format=config.name_format,
        start_index=config.start_index,
    )


@dataclass
class BytesReaderConfig:
    """Configuration for reading bytes data from a file."""
    path: str = MISSING
    chunk_size: int = BytesReader.DEFAULT_CHUNK_SIZE


@dataclass
class BytesWriterConfig:
    """Configuration for writing bytes data to a file."""
    path: str = MISSING


def build_bytes_reader(config: BytesReaderConfig) -> BytesReader:
    """Build a BytesReader from configuration."""
    return BytesReader(
        path=config.path,
        chunk_size=config.chunk_size,
    )


def build_bytes_writer(config: BytesWriterConfig) -> BytesWriter:
    """Build a BytesWriter from configuration."""
    return BytesWriter(
        path=config.path,
    )
