"""
Tick-driven sequence playback over a FrameCache.
"""

import logging
from typing import Callable, Optional

from ..errors import EmptySequenceError, InvalidInput, SplatError
from ..frame import Frame
from .frame_cache import FrameCache

logger = logging.getLogger(__name__)

MIN_FPS = 0.1


class SequencePlayer:
    """
    Plays a cached frame sequence at a fixed rate.

    Playback is cooperative: the host calls `tick` with the elapsed time and
    the player delivers every frame whose slot has come, in order, to
    ``on_frame``. Frame ``i + 1`` is only requested after frame ``i`` has
    been delivered. A frame that fails to decode is logged and skipped; if
    every frame of the sequence fails in a row, playback stops with
    EmptySequenceError.

    Example:
        player = SequencePlayer(cache, fps=30, on_frame=render)
        player.play()
        while player.is_playing:
            player.tick(1 / 60)
    """

    def __init__(
        self,
        cache: FrameCache,
        fps: float = 30.0,
        on_frame: Optional[Callable[[int, Frame], None]] = None,
    ):
        """
        Args:
            cache: The cache serving frames; its ``loop`` flag decides whether
                playback wraps around.
            fps: Playback rate, raised to at least 0.1.
            on_frame: Called with ``(index, frame)`` for every delivered frame.
        """
        self._cache = cache
        self._fps = max(MIN_FPS, float(fps))
        self._on_frame = on_frame
        self._current = 0
        self._timer = 0.0
        self._playing = False
        self._delivered: Optional[int] = None
        self._consecutive_failures = 0

    @property
    def cache(self) -> FrameCache:
        return self._cache

    @property
    def frame_count(self) -> int:
        return self._cache.frame_count

    @property
    def fps(self) -> float:
        return self._fps

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def current_frame(self) -> int:
        return self._current

    @property
    def last_delivered(self) -> Optional[int]:
        """Index of the last frame handed to the consumer, if any."""
        return self._delivered

    @property
    def progress(self) -> float:
        return self._current / self.frame_count if self.frame_count > 0 else 0.0

    def set_fps(self, fps: float) -> None:
        self._fps = max(MIN_FPS, float(fps))

    def play(self) -> None:
        """
        Start or resume playback, delivering the current frame first if
        nothing has been delivered yet.

        Raises:
            EmptySequenceError: If the sequence has no frames, or every frame
                fails to decode.
        """
        if self.frame_count == 0:
            raise EmptySequenceError("Cannot play a sequence without frames")
        self._playing = True
        self._timer = 0.0
        if self._delivered is None:
            self._show(self._current)

    def pause(self) -> None:
        self._playing = False

    def stop(self) -> None:
        self._playing = False
        self._timer = 0.0

    def seek(self, index: int) -> None:
        """
        Jump to ``index``: resets the frame timer, fetches the frame (blocking
        if needed) and prefetches relative to it.

        Raises:
            InvalidInput: If ``index`` is out of range.
        """
        if not 0 <= index < self.frame_count:
            raise InvalidInput(f"Frame index {index} out of range [0, {self.frame_count})")
        self._current = index
        self._timer = 0.0
        self._show(index)

    def tick(self, delta: float) -> int:
        """
        Advance playback by ``delta`` seconds.

        Returns:
            Number of frame slots that elapsed during this tick.
        """
        if not self._playing or self.frame_count == 0:
            return 0

        self._timer += delta
        frame_time = 1.0 / self._fps
        advanced = 0
        while self._playing and self._timer >= frame_time:
            self._timer -= frame_time
            if not self._advance():
                break
            advanced += 1
        return advanced

    def _advance(self) -> bool:
        next_index = self._current + 1
        if next_index >= self.frame_count:
            if not self._cache.loop:
                logger.info("Reached the end of the sequence")
                self.stop()
                return False
            next_index = 0
        self._current = next_index
        self._show(next_index)
        return True

    def _show(self, index: int) -> None:
        try:
            frame = self._cache.get_frame(index)
        except (SplatError, OSError) as e:
            self._consecutive_failures += 1
            logger.warning(f"Skipping frame {index}: {e}")
            if self._consecutive_failures >= self.frame_count:
                self.stop()
                raise EmptySequenceError(
                    f"All {self.frame_count} frames failed to decode"
                ) from e
            self._cache.advance(index)
            return

        self._consecutive_failures = 0
        self._delivered = index
        if self._on_frame is not None:
            self._on_frame(index, frame)
        self._cache.advance(index)
