"""
Command-line interface for splatengine.

Usage:
    python -m splatengine <command> [overrides]

Commands:
    compress    PLY (or .codec) frame -> .codec file
    decompress  .codec file -> PLY frame
    lod         frame -> directory of LOD level PLY files
    pack        directory of frames -> zstd sequence archive
    unpack      sequence archive -> directory of frames
    play        simulate playback of a directory of frames through the cache

Example:
    python -m splatengine compress input=frame.ply output=frame.codec
    python -m splatengine lod input=frame.ply output_dir=lods levels=4 method=spatial
    python -m splatengine pack input.directory=frames output.path=seq.gssa codec.zstd_level=9
    python -m splatengine unpack input.path=seq.gssa output.directory=decoded
    python -m splatengine play player.input_dir=frames player.fps=24 cache.capacity=8 duration=2.0

Hydra options:
    --help              Show configuration schema
    --cfg job           Show resolved configuration
    --info config       Show config search path
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Type

import hydra
from hydra.core.config_store import ConfigStore
from hydra.core.global_hydra import GlobalHydra
from omegaconf import MISSING, DictConfig

from .cache import FrameCacheConfig, PlayerConfig, build_sequence_player
from .codec import (
    QuantizedDecoderConfig,
    QuantizedEncoderConfig,
    build_quantized_decoder,
    build_quantized_encoder,
    compress,
    compression_stats,
    decompress,
    load,
    save,
)
from .errors import StorageError
from .io import (
    BytesReaderConfig,
    BytesWriterConfig,
    FrameReaderConfig,
    FrameWriterConfig,
    build_bytes_reader,
    build_bytes_writer,
    build_frame_reader,
    build_frame_writer,
    load_frame,
)
from .lod import STRATEGIES, generate_lod_levels
from .ply import write_file

logger = logging.getLogger(__name__)


# =============================================================================
# Progress Logging Utilities
# =============================================================================

def iter_with_progress(iterable: Iterator, desc: str) -> Iterator:
    """Wrap an iterable to log progress for each item."""
    for i, item in enumerate(iterable):
        logger.info(f"{desc} {i}")
        yield item
    logger.info(f"{desc} finished")


def iter_with_size_logging(iterable: Iterator[bytes], desc: str) -> Iterator[bytes]:
    """Wrap a bytes iterable to log the size of each item."""
    total_size = 0
    for i, item in enumerate(iterable):
        size = len(item)
        total_size += size
        logger.info(f"{desc} {i}: {size} bytes (total: {total_size} bytes)")
        yield item
    logger.info(f"{desc} finished, total size: {total_size} bytes")


def _refuse_existing(path: str) -> None:
    if os.path.exists(path):
        raise StorageError(f"File already exists: {path}")


# =============================================================================
# Command Configs
# =============================================================================

@dataclass
class CompressConfig:
    input: str = MISSING
    output: str = MISSING


@dataclass
class DecompressConfig:
    input: str = MISSING
    output: str = MISSING
    binary: bool = True


@dataclass
class LODConfig:
    input: str = MISSING
    output_dir: str = MISSING
    levels: int = 4
    method: str = "importance"
    seed: Optional[int] = None


@dataclass
class PackConfig:
    input: FrameReaderConfig = field(default_factory=FrameReaderConfig)
    output: BytesWriterConfig = field(default_factory=BytesWriterConfig)
    codec: QuantizedEncoderConfig = field(default_factory=QuantizedEncoderConfig)


@dataclass
class UnpackConfig:
    input: BytesReaderConfig = field(default_factory=BytesReaderConfig)
    output: FrameWriterConfig = field(default_factory=FrameWriterConfig)
    codec: QuantizedDecoderConfig = field(default_factory=QuantizedDecoderConfig)


@dataclass
class PlayConfig:
    player: PlayerConfig = field(default_factory=PlayerConfig)
    cache: FrameCacheConfig = field(default_factory=FrameCacheConfig)
    # Simulated seconds of playback and the step of each tick
    duration: float = 2.0
    tick: float = 1.0 / 60.0


# =============================================================================
# Command Functions
# =============================================================================

def do_compress(cfg: DictConfig) -> None:
    """Compress one frame file into a .codec file."""
    _refuse_existing(cfg.output)
    logger.info(f"Compressing {cfg.input} -> {cfg.output}")

    frame = load_frame(cfg.input)
    compressed = compress(frame)
    save(compressed, cfg.output)

    stats = compression_stats(frame, compressed)
    logger.info(f"  Points: {frame.count}")
    logger.info(f"  Original size: {stats['original_size'] / 1024:.2f} KB")
    logger.info(f"  Compressed size: {stats['compressed_size'] / 1024:.2f} KB")
    logger.info(f"  Compression ratio: {stats['ratio']:.2f}x")
    logger.info(f"  Space saved: {stats['space_saved'] * 100:.1f}%")
    logger.info("Compression complete!")


def do_decompress(cfg: DictConfig) -> None:
    """Decompress a .codec file into a PLY file."""
    _refuse_existing(cfg.output)
    logger.info(f"Decompressing {cfg.input} -> {cfg.output}")

    frame = decompress(load(cfg.input))
    write_file(cfg.output, frame, binary=cfg.binary)

    logger.info(f"Decompression complete! {frame.count} points written")


def do_lod(cfg: DictConfig) -> None:
    """Write the LOD levels of one frame as PLY files."""
    logger.info(f"Generating {cfg.levels} LOD levels of {cfg.input} with {cfg.method}...")

    frame = load_frame(cfg.input)
    levels = generate_lod_levels(frame, level_count=cfg.levels, method=cfg.method, seed=cfg.seed)

    for i, level in enumerate(levels):
        path = os.path.join(cfg.output_dir, f"lod_{i}.ply")
        _refuse_existing(path)
        write_file(path, level)
        logger.info(f"  LOD {i}: {level.count} points -> {path}")

    logger.info(f"LOD generation complete! {len(levels)} levels written")


def do_pack(cfg: DictConfig) -> None:
    """Pack a directory of frames into a sequence archive."""
    frame_reader = build_frame_reader(cfg.input)
    bytes_writer = build_bytes_writer(cfg.output)
    encoder = build_quantized_encoder(cfg.codec)

    logger.info("Packing...")
    logger.info(f"  Input: {cfg.input.directory}")
    logger.info(f"  Output: {cfg.output.path}")

    frame_stream = iter_with_progress(frame_reader.read(), "Packing frame")
    encoded_stream = encoder.encode_stream(frame_stream)
    bytes_writer.write(iter_with_size_logging(encoded_stream, "Writing chunk"))

    logger.info("Packing complete!")


def do_unpack(cfg: DictConfig) -> None:
    """Unpack a sequence archive into a directory of frames."""
    bytes_reader = build_bytes_reader(cfg.input)
    frame_writer = build_frame_writer(cfg.output)
    decoder = build_quantized_decoder(cfg.codec)

    logger.info("Unpacking...")
    logger.info(f"  Input: {cfg.input.path}")
    logger.info(f"  Output: {cfg.output.directory}")

    decoded_stream = iter_with_progress(decoder.decode_stream(bytes_reader.read()), "Unpacking frame")
    frame_writer.write(decoded_stream)

    logger.info("Unpacking complete!")


def do_play(cfg: DictConfig) -> None:
    """Simulate playback of a frame directory and report cache metrics."""
    delivered = []

    def on_frame(index, frame):
        delivered.append(index)
        logger.debug(f"Frame {index}: {frame.count} points")

    player = build_sequence_player(cfg.player, cfg.cache, on_frame=on_frame)
    logger.info(f"Playing {player.frame_count} frames from {cfg.player.input_dir} at {player.fps} fps")

    elapsed = 0.0
    try:
        player.play()
        while player.is_playing and elapsed < cfg.duration:
            player.tick(cfg.tick)
            elapsed += cfg.tick
    finally:
        player.stop()
        metrics = player.cache.metrics()
        player.cache.close()

    logger.info(f"  Frames delivered: {len(delivered)}")
    logger.info(f"  Hit rate: {metrics['hit_rate']:.3f} ({metrics['hits']} hits, {metrics['misses']} misses)")
    logger.info(f"  Average decode time: {metrics['average_decode_time'] * 1000:.2f} ms")
    logger.info("Playback complete!")


COMMANDS: Dict[str, Tuple[Type, Callable[[DictConfig], None]]] = {
    "compress": (CompressConfig, do_compress),
    "decompress": (DecompressConfig, do_decompress),
    "lod": (LODConfig, do_lod),
    "pack": (PackConfig, do_pack),
    "unpack": (UnpackConfig, do_unpack),
    "play": (PlayConfig, do_play),
}


def run_command(command: str, hydra_args: List[str]) -> None:
    """Run a command with Hydra configuration."""
    config_cls, handler = COMMANDS[command]

    # Clear and register config
    GlobalHydra.instance().clear()
    cs = ConfigStore.instance()
    cs.store(name="config", node=config_cls)

    @hydra.main(version_base=None, config_path=None, config_name="config")
    def _main(cfg: DictConfig) -> None:
        handler(cfg)

    sys.argv = [sys.argv[0]] + hydra_args
    _main()


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> None:
    """Main entry point for the CLI."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if len(sys.argv) < 2 or sys.argv[1] in ("--help", "-h", "help"):
        print("Usage: python -m splatengine <command> [options]")
        print(f"  Commands: {list(COMMANDS.keys())}")
        print(f"  LOD methods: {list(STRATEGIES.keys())}")
        print("Use --help after the command for configuration options.")
        sys.exit(0 if len(sys.argv) >= 2 else 1)

    command = sys.argv[1]
    if command not in COMMANDS:
        sys.exit(f"Error: Unknown command '{command}'. Available: {list(COMMANDS.keys())}")

    # Remaining args go to Hydra (--help, --cfg, overrides, etc.)
    run_command(command, sys.argv[2:])


if __name__ == "__main__":
    main()
