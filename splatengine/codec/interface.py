"""
Quantized frame compression.

A Frame is compressed into a CompressedFrame holding five arrays of 32-bit
words plus the position and scale ranges needed to dequantize them:

    positions   2 words/point   w0 = x << 16 | y,  w1 = z
    scales      2 words/point   w0 = x << 16 | y,  w1 = z
    rotations   2 words/point   w0 = x << 16 | y,  w1 = z << 16 | w
    colors      1 word/point    r << 24 | g << 16 | b << 8 | a
    opacities   1 word/4 points point i in byte (i % 4) of word i // 4
"""

import logging
from dataclasses import dataclass
from typing import Optional, Self

import numpy as np
import torch

from ..errors import CorruptData, InvalidInput
from ..frame import Bounds, Frame
from ..payload import Payload
from .quant import (
    RangeQuantConfig,
    compute_range_config,
    dequantize_range,
    dequantize_signed_unit,
    dequantize_unorm8,
    quantize_range,
    quantize_signed_unit,
    quantize_unorm8,
)

logger = logging.getLogger(__name__)


def opacity_word_count(count: int) -> int:
    return (count + 3) // 4


@dataclass
class CompressedFrame(Payload):
    """
    Quantized fixed-width encoding of a Frame.

    All word arrays are 1-D numpy uint32 arrays; bounds are float32 arrays of
    shape (3,).

    Attributes:
        positions: 2 words per point.
        scales: 2 words per point.
        rotations: 2 words per point.
        colors: 1 word per point.
        opacities: ceil(count / 4) words.
        position_min, position_max: Position quantization range.
        scale_min, scale_max: Scale quantization range.
        count: Number of points in the source frame.
    """
    positions: np.ndarray
    scales: np.ndarray
    rotations: np.ndarray
    colors: np.ndarray
    opacities: np.ndarray
    position_min: np.ndarray
    position_max: np.ndarray
    scale_min: np.ndarray
    scale_max: np.ndarray
    count: int

    def to(self, device) -> Self:
        """
        CompressedFrame holds numpy arrays (CPU-only), so this is a no-op.
        """
        return self

    @property
    def nbytes(self) -> int:
        """Size of the words, bounds and count, excluding format framing."""
        words = sum(len(a) for a in (self.positions, self.scales, self.rotations, self.colors, self.opacities))
        return words * 4 + 4 * 12 + 4

    def compression_ratio(self, original_size: int) -> float:
        return original_size / self.nbytes

    @property
    def position_bounds(self) -> Bounds:
        return Bounds(torch.from_numpy(self.position_min.copy()), torch.from_numpy(self.position_max.copy()))

    @property
    def scale_bounds(self) -> Bounds:
        return Bounds(torch.from_numpy(self.scale_min.copy()), torch.from_numpy(self.scale_max.copy()))

    def validate(self) -> None:
        """
        Check that every array length agrees with the point count.

        Raises:
            CorruptData: On a zero count or an inconsistent array length.
        """
        if self.count <= 0:
            raise CorruptData(f"Compressed frame has invalid point count {self.count}")
        expected = {
            "positions": 2 * self.count,
            "scales": 2 * self.count,
            "rotations": 2 * self.count,
            "colors": self.count,
            "opacities": opacity_word_count(self.count),
        }
        for name, length in expected.items():
            actual = len(getattr(self, name))
            if actual != length:
                raise CorruptData(
                    f"Compressed {name} has {actual} words, expected {length} for {self.count} points"
                )
        for name in ("position_min", "position_max", "scale_min", "scale_max"):
            if getattr(self, name).shape != (3,):
                raise CorruptData(f"Compressed {name} must have 3 components")


def _pack_range(codes: np.ndarray) -> np.ndarray:
    words = np.empty((codes.shape[0], 2), dtype=np.uint32)
    words[:, 0] = (codes[:, 0] << 16) | codes[:, 1]
    words[:, 1] = codes[:, 2]
    return words.reshape(-1)


def _unpack_range(words: np.ndarray) -> np.ndarray:
    pairs = words.reshape(-1, 2).astype(np.int64)
    return np.stack([pairs[:, 0] >> 16, pairs[:, 0] & 0xFFFF, pairs[:, 1] & 0xFFFF], axis=1)


def _pack_rotations(codes: np.ndarray) -> np.ndarray:
    words = np.empty((codes.shape[0], 2), dtype=np.uint32)
    words[:, 0] = (codes[:, 0] << 16) | codes[:, 1]
    words[:, 1] = (codes[:, 2] << 16) | codes[:, 3]
    return words.reshape(-1)


def _unpack_rotations(words: np.ndarray) -> np.ndarray:
    pairs = words.reshape(-1, 2).astype(np.int64)
    return np.stack(
        [pairs[:, 0] >> 16, pairs[:, 0] & 0xFFFF, pairs[:, 1] >> 16, pairs[:, 1] & 0xFFFF], axis=1
    )


def _pack_colors(codes: np.ndarray) -> np.ndarray:
    return ((codes[:, 0] << 24) | (codes[:, 1] << 16) | (codes[:, 2] << 8) | codes[:, 3]).astype(np.uint32)


def _unpack_colors(words: np.ndarray) -> np.ndarray:
    words = words.astype(np.int64)
    return np.stack([(words >> shift) & 0xFF for shift in (24, 16, 8, 0)], axis=1)


def _pack_opacities(codes: np.ndarray) -> np.ndarray:
    padded = np.zeros(opacity_word_count(codes.shape[0]) * 4, dtype=np.int64)
    padded[: codes.shape[0]] = codes
    lanes = padded.reshape(-1, 4)
    words = lanes[:, 0] | (lanes[:, 1] << 8) | (lanes[:, 2] << 16) | (lanes[:, 3] << 24)
    return words.astype(np.uint32)


def _unpack_opacities(words: np.ndarray, count: int) -> np.ndarray:
    words = words.astype(np.int64)
    lanes = np.stack([(words >> (8 * k)) & 0xFF for k in range(4)], axis=1)
    return lanes.reshape(-1)[:count]


def compress(frame: Optional[Frame]) -> CompressedFrame:
    """
    Compress a frame into its quantized fixed-width form.

    Args:
        frame: A non-empty Frame.

    Returns:
        The CompressedFrame.

    Raises:
        InvalidInput: If ``frame`` is None, empty or inconsistent.
    """
    if frame is None or frame.count == 0:
        raise InvalidInput("Cannot compress an empty frame")
    error = frame.validate()
    if error is not None:
        raise InvalidInput(f"Cannot compress an invalid frame: {error}")

    frame = frame.to("cpu")
    position_config = compute_range_config(frame.positions)
    scale_config = compute_range_config(frame.scales)

    positions = quantize_range(frame.positions, position_config).numpy()
    scales = quantize_range(frame.scales, scale_config).numpy()
    rotations = quantize_signed_unit(frame.rotations).numpy()
    colors = quantize_unorm8(frame.colors).numpy()
    opacities = quantize_unorm8(frame.opacities).numpy()

    return CompressedFrame(
        positions=_pack_range(positions),
        scales=_pack_range(scales),
        rotations=_pack_rotations(rotations),
        colors=_pack_colors(colors),
        opacities=_pack_opacities(opacities),
        position_min=position_config.minimum.numpy().astype(np.float32),
        position_max=position_config.maximum.numpy().astype(np.float32),
        scale_min=scale_config.minimum.numpy().astype(np.float32),
        scale_max=scale_config.maximum.numpy().astype(np.float32),
        count=frame.count,
    )


def decompress(compressed: Optional[CompressedFrame]) -> Frame:
    """
    Rebuild a frame from its quantized form.

    Positions and scales come back within half a quantization step per axis,
    colors and opacities within 1/255. Rotations are renormalized.

    Raises:
        InvalidInput: If ``compressed`` is None.
        CorruptData: If the arrays disagree with the stored point count.
    """
    if compressed is None:
        raise InvalidInput("Compressed frame must be provided")
    compressed.validate()

    position_config = RangeQuantConfig(
        minimum=torch.from_numpy(compressed.position_min.astype(np.float32)),
        maximum=torch.from_numpy(compressed.position_max.astype(np.float32)),
    )
    scale_config = RangeQuantConfig(
        minimum=torch.from_numpy(compressed.scale_min.astype(np.float32)),
        maximum=torch.from_numpy(compressed.scale_max.astype(np.float32)),
    )

    return Frame.create(
        positions=dequantize_range(torch.from_numpy(_unpack_range(compressed.positions)), position_config),
        scales=dequantize_range(torch.from_numpy(_unpack_range(compressed.scales)), scale_config),
        rotations=dequantize_signed_unit(torch.from_numpy(_unpack_rotations(compressed.rotations))),
        colors=dequantize_unorm8(torch.from_numpy(_unpack_colors(compressed.colors))),
        opacities=dequantize_unorm8(
            torch.from_numpy(_unpack_opacities(compressed.opacities, compressed.count))
        ),
    )


def compression_stats(frame: Frame, compressed: CompressedFrame) -> dict:
    """
    Summarize how much a frame shrank.

    Returns:
        Dictionary with:
            - 'original_size': Uncompressed size in bytes.
            - 'compressed_size': Size of the quantized data in bytes.
            - 'ratio': original_size / compressed_size.
            - 'space_saved': Fraction of the original size saved, in [0, 1).
    """
    original_size = frame.nbytes
    compressed_size = compressed.nbytes
    ratio = compressed.compression_ratio(original_size)
    stats = {
        'original_size': original_size,
        'compressed_size': compressed_size,
        'ratio': ratio,
        'space_saved': 1.0 - 1.0 / ratio if ratio > 0 else 0.0,
    }
    logger.debug(
        f"Compressed {frame.count} points: {original_size} -> {compressed_size} bytes "
        f"({ratio:.2f}x, {stats['space_saved'] * 100:.1f}% saved)"
    )
    return stats
