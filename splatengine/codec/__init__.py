"""
Quantization codec: Frame <-> CompressedFrame, the ``.codec`` byte layout and
zstd sequence archives.
"""

from .quant import (
    BOUNDS_EPSILON,
    RangeQuantConfig,
    compute_range_config,
    quantize_range,
    dequantize_range,
    estimate_quantization_error,
)
from .interface import CompressedFrame, compress, decompress, compression_stats
from .serialize import CODEC_MAGIC, CODEC_VERSION, to_bytes, from_bytes, save, load
from .archive import ArchiveSerializer, ArchiveDeserializer
from .pipeline import (
    QuantizedEncoder,
    QuantizedDecoder,
    QuantizedEncoderConfig,
    QuantizedDecoderConfig,
    build_quantized_encoder,
    build_quantized_decoder,
)

__all__ = [
    "BOUNDS_EPSILON",
    "RangeQuantConfig",
    "compute_range_config",
    "quantize_range",
    "dequantize_range",
    "estimate_quantization_error",
    "CompressedFrame",
    "compress",
    "decompress",
    "compression_stats",
    "CODEC_MAGIC",
    "CODEC_VERSION",
    "to_bytes",
    "from_bytes",
    "save",
    "load",
    "ArchiveSerializer",
    "ArchiveDeserializer",
    "QuantizedEncoder",
    "QuantizedDecoder",
    "QuantizedEncoderConfig",
    "QuantizedDecoderConfig",
    "build_quantized_encoder",
    "build_quantized_decoder",
]
