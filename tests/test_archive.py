"""Tests for zstd sequence archives and the quantized encoder/decoder."""

import pytest
import torch
import zstandard as zstd

from splatengine.codec import (
    ArchiveDeserializer,
    ArchiveSerializer,
    QuantizedDecoder,
    QuantizedDecoderConfig,
    QuantizedEncoder,
    QuantizedEncoderConfig,
    build_quantized_decoder,
    build_quantized_encoder,
    compress,
)
from splatengine.errors import CorruptData, InvalidInput

from conftest import make_frame


def _archive(frames, level=3) -> bytes:
    serializer = ArchiveSerializer(level=level)
    chunks = []
    for frame in frames:
        chunks.extend(serializer.serialize_frame(compress(frame)))
    chunks.extend(serializer.flush())
    return b"".join(chunks)


def _read(data: bytes, chunk_size: int = 7):
    deserializer = ArchiveDeserializer()
    payloads = []
    for start in range(0, len(data), chunk_size):
        payloads.extend(deserializer.deserialize_frame(data[start:start + chunk_size]))
    payloads.extend(deserializer.flush())
    return payloads


class TestArchive:

    def test_round_trip_in_small_chunks(self):
        frames = [make_frame(10 + i, seed=i) for i in range(4)]
        payloads = _read(_archive(frames))
        assert [p.count for p in payloads] == [10, 11, 12, 13]

    def test_empty_archive(self):
        assert _read(_archive([])) == []

    def test_invalid_level(self):
        with pytest.raises(InvalidInput):
            ArchiveSerializer(level=0)
        with pytest.raises(InvalidInput):
            ArchiveSerializer(level=23)

    def test_truncated_archive(self):
        data = zstd.ZstdDecompressor().decompressobj().decompress(_archive([make_frame(5)]))
        # Re-compress everything but the end marker
        truncated = zstd.ZstdCompressor().compress(data[:-4])
        with pytest.raises(CorruptData):
            _read(truncated)

    def test_trailing_data_after_end_marker(self):
        data = zstd.ZstdDecompressor().decompressobj().decompress(_archive([make_frame(5)]))
        padded = zstd.ZstdCompressor().compress(data + b"\x01\x02\x03\x04")
        with pytest.raises(CorruptData):
            _read(padded)

    def test_bad_magic(self):
        data = zstd.ZstdCompressor().compress(b"XXXX\x01\x00\x00\x00\x00\x00\x00\x00")
        with pytest.raises(CorruptData):
            _read(data)

    def test_not_zstd(self):
        with pytest.raises(CorruptData):
            list(ArchiveDeserializer().deserialize_frame(b"definitely not a zstd stream"))


class TestQuantizedPipeline:

    def test_encode_decode_stream(self):
        frames = [make_frame(30, seed=i) for i in range(3)]
        data = b"".join(QuantizedEncoder(zstd_level=5).encode_stream(frames))
        chunks = [data[i:i + 64] for i in range(0, len(data), 64)]
        decoded = list(QuantizedDecoder().decode_stream(chunks))

        assert len(decoded) == 3
        for original, restored in zip(frames, decoded):
            assert restored.count == original.count
            assert torch.allclose(restored.positions, original.positions, atol=1e-2)

    def test_decoder_moves_frames_to_device(self):
        data = b"".join(QuantizedEncoder().encode_stream([make_frame(5)]))
        decoded = list(QuantizedDecoder().to("cpu").decode_stream([data]))
        assert decoded[0].positions.device.type == "cpu"

    def test_build_from_config(self):
        encoder = build_quantized_encoder(QuantizedEncoderConfig(zstd_level=1))
        decoder = build_quantized_decoder(QuantizedDecoderConfig())
        data = b"".join(encoder.encode_stream([make_frame(8)]))
        assert [f.count for f in decoder.decode_stream([data])] == [8]
