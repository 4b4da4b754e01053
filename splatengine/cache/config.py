from dataclasses import dataclass
from typing import Callable, Optional

from omegaconf import MISSING

from ..frame import Frame
from ..io.sequence import FrameSequence
from .frame_cache import FrameCache
from .player import SequencePlayer


@dataclass
class FrameCacheConfig:
    """Configuration for the frame cache."""
    capacity: int = 5
    prefetch_distance: int = 2
    loop: bool = True
    max_workers: int = 2


@dataclass
class PlayerConfig:
    """Configuration for playing a directory of frames."""
    input_dir: str = MISSING
    fps: float = 30.0


def build_frame_cache(config: FrameCacheConfig, loader: Callable[[int], Frame], frame_count: int) -> FrameCache:
    """Build a FrameCache from configuration."""
    return FrameCache(
        loader=loader,
        frame_count=frame_count,
        capacity=config.capacity,
        prefetch_distance=config.prefetch_distance,
        loop=config.loop,
        max_workers=config.max_workers,
    )


def build_sequence_player(
    config: PlayerConfig,
    cache_config: FrameCacheConfig,
    on_frame: Optional[Callable[[int, Frame], None]] = None,
) -> SequencePlayer:
    """Build a SequencePlayer over the frame files of ``config.input_dir``."""
    sequence = FrameSequence(config.input_dir)
    cache = build_frame_cache(cache_config, sequence.load, len(sequence))
    return SequencePlayer(cache, fps=config.fps, on_frame=on_frame)
