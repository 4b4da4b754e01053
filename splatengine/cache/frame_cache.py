"""
Bounded frame cache with background prefetch.

Each frame index moves through NOT_REQUESTED -> LOADING -> CACHED -> EVICTED.
At most one decode per index is in flight at any time: callers asking for a
loading index wait on the same future instead of starting another decode.

The cached table, the in-flight table and the eviction queue are guarded by
one lock; decodes always run outside it.
"""

import logging
import threading
import time
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor, wait
from enum import Enum
from typing import Callable, Deque, Dict, Optional, Set

from ..errors import InvalidInput, SplatError, StorageError
from ..frame import Frame

logger = logging.getLogger(__name__)

# Smoothing factor of the decode time moving average
DECODE_TIME_ALPHA = 0.1


class FrameState(Enum):
    NOT_REQUESTED = "not_requested"
    LOADING = "loading"
    CACHED = "cached"
    EVICTED = "evicted"


class FrameCache:
    """
    Thread-safe cache of decoded frames for sequential, seekable playback.

    Example:
        with FrameCache(sequence.load, len(sequence)) as cache:
            frame = cache.get_frame(0)
            cache.advance(0)
    """

    def __init__(
        self,
        loader: Callable[[int], Frame],
        frame_count: int,
        capacity: int = 5,
        prefetch_distance: int = 2,
        loop: bool = True,
        max_workers: int = 2,
    ):
        """
        Initialize the cache.

        Args:
            loader: Decodes frame ``index``. Called from worker threads and
                from the thread calling `get_frame` on a miss.
            frame_count: Number of frames in the sequence.
            capacity: Number of frames kept after eviction, beyond which only
                frames near the play position survive.
            prefetch_distance: Frames decoded ahead of the play position.
            loop: Wrap prefetch and distances around the sequence end.
            max_workers: Size of the prefetch thread pool.

        Raises:
            InvalidInput: On a negative frame count or non-positive capacity
                or worker count, or a negative prefetch distance.
        """
        if frame_count < 0:
            raise InvalidInput(f"frame_count must be non-negative, got {frame_count}")
        if capacity < 1:
            raise InvalidInput(f"capacity must be at least 1, got {capacity}")
        if prefetch_distance < 0:
            raise InvalidInput(f"prefetch_distance must be non-negative, got {prefetch_distance}")
        if max_workers < 1:
            raise InvalidInput(f"max_workers must be at least 1, got {max_workers}")

        self._loader = loader
        self.frame_count = frame_count
        self.capacity = capacity
        self.prefetch_distance = prefetch_distance
        self.loop = loop

        self._lock = threading.Lock()
        self._cached: Dict[int, Frame] = {}
        self._loading: Dict[int, Future] = {}
        self._order: Deque[int] = deque()
        self._evicted: Set[int] = set()
        self._position = 0
        # Bumped by clear() so decodes started before it are discarded
        self._generation = 0

        self._hits = 0
        self._misses = 0
        self._decodes = 0
        self._average_decode_time = 0.0

        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="frame-prefetch")

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.frame_count:
            raise InvalidInput(f"Frame index {index} out of range [0, {self.frame_count})")

    def get_frame(self, index: int) -> Frame:
        """
        Return frame ``index``, decoding it inline on a miss.

        A cached frame is a hit. A frame being decoded in the background is a
        miss and the caller blocks until that decode finishes. Any other
        frame is a miss decoded on the calling thread and then cached.

        Raises:
            InvalidInput: If ``index`` is out of range.
            SplatError: If the decode fails; file errors surface as
                StorageError.
        """
        self._check_index(index)
        with self._lock:
            frame = self._cached.get(index)
            if frame is not None:
                self._hits += 1
                return frame
            self._misses += 1
            future = self._loading.get(index)
            owner = future is None
            if owner:
                future = Future()
                self._loading[index] = future
                self._evicted.discard(index)
                generation = self._generation

        if owner:
            logger.warning(f"Cache miss on frame {index}, decoding inline")
            self._decode(index, future, generation)
        else:
            logger.debug(f"Frame {index} is loading, waiting for it")
        return future.result()

    def _decode(self, index: int, future: Future, generation: int) -> None:
        start = time.perf_counter()
        try:
            frame = self._loader(index)
        except Exception as e:
            error = e
            if isinstance(e, OSError) and not isinstance(e, SplatError):
                error = StorageError(f"Cannot load frame {index}: {e}")
                error.__cause__ = e
            self._fail(index, future, error)
            return
        except BaseException as e:
            self._fail(index, future, e)
            raise
        elapsed = time.perf_counter() - start

        with self._lock:
            self._record_decode_time(elapsed)
            if generation == self._generation and self._loading.get(index) is future:
                del self._loading[index]
                self._cached[index] = frame
                self._order.append(index)
            else:
                logger.debug(f"Discarding stale decode of frame {index}")
        future.set_result(frame)

    def _fail(self, index: int, future: Future, error: BaseException) -> None:
        with self._lock:
            if self._loading.get(index) is future:
                del self._loading[index]
        logger.warning(f"Failed to decode frame {index}: {error}")
        future.set_exception(error)

    def _record_decode_time(self, elapsed: float) -> None:
        self._decodes += 1
        if self._decodes == 1:
            self._average_decode_time = elapsed
        else:
            self._average_decode_time += DECODE_TIME_ALPHA * (elapsed - self._average_decode_time)

    def prefetch(self, index: int) -> bool:
        """
        Start a background decode of ``index`` unless it is cached or loading.

        Returns:
            True if a decode was scheduled.
        """
        self._check_index(index)
        with self._lock:
            if index in self._cached or index in self._loading:
                return False
            future = Future()
            self._loading[index] = future
            self._evicted.discard(index)
            generation = self._generation
        logger.debug(f"Prefetching frame {index}")
        try:
            self._executor.submit(self._decode, index, future, generation)
        except RuntimeError as e:
            # Pool already shut down
            self._fail(index, future, e)
            return False
        return True

    def advance(self, index: int) -> None:
        """
        Record ``index`` as the play position, prefetch the frames after it
        and evict surplus frames.
        """
        self._check_index(index)
        with self._lock:
            self._position = index

        for step in range(1, self.prefetch_distance + 1):
            target = index + step
            if target >= self.frame_count:
                if not self.loop:
                    break
                target %= self.frame_count
            self.prefetch(target)

        self._evict()

    def _distance(self, index: int) -> int:
        distance = abs(index - self._position)
        if self.loop:
            distance = min(distance, self.frame_count - distance)
        return distance

    def _evict(self) -> None:
        with self._lock:
            # One pass over the queue; protected entries go to the back
            attempts = len(self._order)
            while len(self._cached) > self.capacity and attempts > 0:
                attempts -= 1
                oldest = self._order.popleft()
                if oldest not in self._cached:
                    continue
                protected = self._distance(oldest) <= self.prefetch_distance + 1
                if protected or oldest in self._loading:
                    self._order.append(oldest)
                    continue
                del self._cached[oldest]
                self._evicted.add(oldest)
                logger.debug(f"Evicted frame {oldest}")

    def state(self, index: int) -> FrameState:
        self._check_index(index)
        with self._lock:
            if index in self._cached:
                return FrameState.CACHED
            if index in self._loading:
                return FrameState.LOADING
            if index in self._evicted:
                return FrameState.EVICTED
            return FrameState.NOT_REQUESTED

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the decodes in flight at call time to finish.

        Returns:
            True if they all finished within ``timeout``.
        """
        with self._lock:
            pending = list(self._loading.values())
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def clear(self) -> None:
        """
        Drop every cached frame and forget in-flight decodes.

        Decodes still running complete normally; their results are discarded.
        """
        with self._lock:
            self._generation += 1
            self._cached.clear()
            self._loading.clear()
            self._order.clear()
            self._evicted.clear()
        logger.debug("Frame cache cleared")

    @property
    def position(self) -> int:
        return self._position

    @property
    def cached_count(self) -> int:
        with self._lock:
            return len(self._cached)

    @property
    def loading_count(self) -> int:
        with self._lock:
            return len(self._loading)

    @property
    def hit_rate(self) -> float:
        """hits / (hits + misses); 1.0 before any access."""
        with self._lock:
            total = self._hits + self._misses
            return self._hits / total if total > 0 else 1.0

    @property
    def average_decode_time(self) -> float:
        """Moving average of decode time in seconds."""
        with self._lock:
            return self._average_decode_time

    def metrics(self) -> dict:
        with self._lock:
            total = self._hits + self._misses
            return {
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / total if total > 0 else 1.0,
                "cached": len(self._cached),
                "loading": len(self._loading),
                "average_decode_time": self._average_decode_time,
            }

    def close(self) -> None:
        """Wait for background decodes and release the thread pool."""
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "FrameCache":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
