"""
Quantized frame sequence encoder and decoder.

Frames are packed into CompressedFrame payloads and written into a zstd
archive; decoding reverses both steps.
"""

from dataclasses import dataclass
from typing import Iterator

from ..decoder import AbstractDecoder
from ..encoder import AbstractEncoder
from ..frame import Frame
from .archive import ArchiveDeserializer, ArchiveSerializer
from .interface import CompressedFrame, compress, decompress


@dataclass
class QuantizedEncoderConfig:
    """
    Attributes:
        zstd_level: Zstd compression level (1-22).
    """
    zstd_level: int = 7


@dataclass
class QuantizedDecoderConfig:
    """Quantized decoding has no parameters."""


class QuantizedEncoder(AbstractEncoder):
    """Packs each frame into one CompressedFrame; nothing is buffered across frames."""

    def __init__(self, zstd_level: int = 7, payload_device=None):
        super().__init__(serializer=ArchiveSerializer(level=zstd_level), payload_device=payload_device)

    def pack(self, frame: Frame) -> Iterator[CompressedFrame]:
        yield compress(frame)

    def flush_pack(self) -> Iterator[CompressedFrame]:
        return iter(())


class QuantizedDecoder(AbstractDecoder):
    """Unpacks each CompressedFrame into one Frame."""

    def __init__(self, payload_device=None, device=None):
        super().__init__(deserializer=ArchiveDeserializer(), payload_device=payload_device, device=device)

    def unpack(self, payload: CompressedFrame) -> Iterator[Frame]:
        yield decompress(payload)

    def flush_unpack(self) -> Iterator[Frame]:
        return iter(())


def build_quantized_encoder(config: QuantizedEncoderConfig) -> QuantizedEncoder:
    """Build a QuantizedEncoder from configuration."""
    return QuantizedEncoder(zstd_level=config.zstd_level)


def build_quantized_decoder(config: QuantizedDecoderConfig) -> QuantizedDecoder:
    """Build a QuantizedDecoder from configuration."""
    return QuantizedDecoder()
