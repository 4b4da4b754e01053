"""
Zstandard-compressed archives of compressed frame sequences.

An archive is one zstd stream whose decompressed content is:

    [magic "GSSA"][uint32 version = 1]
    N x [uint32 length][.codec bytes]
    [uint32 0]                                  end of archive

Frames are framed and compressed incrementally so arbitrarily long sequences
can be written and read without holding them in memory.
"""

import logging
import struct
from typing import Iterator

import zstandard as zstd

from ..deserializer import AbstractDeserializer
from ..errors import CorruptData, InvalidInput
from ..serializer import AbstractSerializer
from .interface import CompressedFrame
from .serialize import from_bytes, to_bytes

logger = logging.getLogger(__name__)

ARCHIVE_MAGIC = b"GSSA"
ARCHIVE_VERSION = 1

_ARCHIVE_HEADER = struct.Struct("<4sI")
# 4-byte little-endian length prefix (max 4GB per frame)
_LEN = struct.Struct("<I")


class ArchiveSerializer(AbstractSerializer):
    """
    Streaming serializer writing CompressedFrames into a zstd archive.

    Each frame is encoded to the ``.codec`` layout, prefixed with its length,
    then compressed incrementally using zstd streaming compression.
    """

    def __init__(self, level: int = 7):
        """
        Initialize the serializer.

        Args:
            level: Zstd compression level (1-22). Default is 7.
        """
        if not 1 <= level <= 22:
            raise InvalidInput(f"zstd level must be in [1, 22], got {level}")
        self._compressor = zstd.ZstdCompressor(level=level).compressobj()
        self._started = False
        self._frames = 0

    def _start(self) -> bytes:
        if self._started:
            return b""
        self._started = True
        return _ARCHIVE_HEADER.pack(ARCHIVE_MAGIC, ARCHIVE_VERSION)

    def serialize_frame(self, payload: CompressedFrame) -> Iterator[bytes]:
        """
        Serialize and compress one CompressedFrame.

        Yields:
            Compressed byte chunks (may yield zero chunks if buffered).
        """
        encoded = to_bytes(payload)
        framed = self._start() + _LEN.pack(len(encoded)) + encoded
        self._frames += 1
        out = self._compressor.compress(framed)
        if out:
            yield out

    def flush(self) -> Iterator[bytes]:
        """
        Write the end marker and flush remaining compressed data.

        Yields:
            Final compressed byte chunks.
        """
        out = self._compressor.compress(self._start() + _LEN.pack(0))
        if out:
            yield out
        tail = self._compressor.flush()
        if tail:
            yield tail
        logger.debug(f"Archive closed after {self._frames} frames")


class ArchiveDeserializer(AbstractDeserializer):
    """
    Streaming deserializer reading CompressedFrames from a zstd archive.

    Decompresses incoming bytes incrementally, buffers until a complete
    length-prefixed frame is available, then parses and yields it.
    """

    def __init__(self):
        self._decompressor = zstd.ZstdDecompressor().decompressobj()
        self._buffer = bytearray()
        self._header_checked = False
        self._finished = False

    def deserialize_frame(self, data: bytes) -> Iterator[CompressedFrame]:
        """
        Decompress and deserialize a chunk of archive bytes.

        Yields:
            Complete CompressedFrames as they become available.

        Raises:
            CorruptData: If the chunk is not valid archive data.
        """
        if not data:
            return
        try:
            decompressed = self._decompressor.decompress(data)
        except zstd.ZstdError as e:
            raise CorruptData(f"Archive is not a valid zstd stream: {e}") from e
        if decompressed:
            self._buffer.extend(decompressed)

        yield from self._extract_payloads()

    def flush(self) -> Iterator[CompressedFrame]:
        """
        Yield any remaining frames and check the archive ended cleanly.

        Raises:
            CorruptData: If the archive is truncated or has trailing data.
        """
        yield from self._extract_payloads()

        if not self._finished:
            raise CorruptData(
                f"Archive is truncated: end marker missing, {len(self._buffer)} bytes buffered"
            )
        if self._buffer:
            raise CorruptData(f"Archive has {len(self._buffer)} bytes after its end marker")

    def _check_header(self) -> bool:
        if self._header_checked:
            return True
        if len(self._buffer) < _ARCHIVE_HEADER.size:
            return False
        magic, version = _ARCHIVE_HEADER.unpack_from(self._buffer, 0)
        if magic != ARCHIVE_MAGIC:
            raise CorruptData(f"Invalid archive magic {magic!r}, expected {ARCHIVE_MAGIC!r}")
        if version != ARCHIVE_VERSION:
            raise CorruptData(f"Unsupported archive version {version}")
        del self._buffer[: _ARCHIVE_HEADER.size]
        self._header_checked = True
        return True

    def _extract_payloads(self) -> Iterator[CompressedFrame]:
        if not self._check_header():
            return
        while not self._finished:
            # Need at least length prefix
            if len(self._buffer) < _LEN.size:
                break

            (length,) = _LEN.unpack_from(self._buffer, 0)
            if length == 0:
                del self._buffer[: _LEN.size]
                self._finished = True
                break

            # Check if we have complete frame
            if len(self._buffer) < _LEN.size + length:
                break

            encoded = bytes(self._buffer[_LEN.size: _LEN.size + length])
            del self._buffer[: _LEN.size + length]

            yield from_bytes(encoded)
