"""
Frame caching and sequence playback.
"""

from .frame_cache import DECODE_TIME_ALPHA, FrameCache, FrameState
from .player import SequencePlayer
from .config import FrameCacheConfig, PlayerConfig, build_frame_cache, build_sequence_player

__all__ = [
    "DECODE_TIME_ALPHA",
    "FrameCache",
    "FrameState",
    "SequencePlayer",
    "FrameCacheConfig",
    "PlayerConfig",
    "build_frame_cache",
    "build_sequence_player",
]
