"""
Level-of-detail strategy interface.

Every strategy implements the same contract: given a Frame and a target
point count, return a new Frame approximating the source with exactly
``target`` points. A target at or above the source size returns the source
unchanged, and a target below 1 is clamped to 1.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

import numpy as np

from ..errors import InvalidInput
from ..frame import Frame

logger = logging.getLogger(__name__)


class LODMethod(Enum):
    UNIFORM = "uniform"
    RANDOM = "random"
    IMPORTANCE = "importance"
    SPATIAL = "spatial"
    HIERARCHICAL = "hierarchical"
    ADAPTIVE = "adaptive"


class LODStrategy(ABC):
    """
    Abstract base class for point reduction strategies.

    Subclasses implement `_reduce`, which is only called with
    ``1 <= target < frame.count``.
    """

    def reduce(self, frame: Optional[Frame], target: int) -> Frame:
        """
        Reduce a frame to ``target`` points.

        Args:
            frame: The source frame; never modified.
            target: Desired point count.

        Returns:
            The source itself when ``target >= frame.count``, otherwise a new
            Frame with exactly ``target`` points.

        Raises:
            InvalidInput: If ``frame`` is None or empty.
        """
        if frame is None or frame.count == 0:
            raise InvalidInput("LOD source frame must be non-empty")
        if target >= frame.count:
            return frame
        return self._reduce(frame, max(1, int(target)))

    @abstractmethod
    def _reduce(self, frame: Frame, target: int) -> Frame:
        pass


def uniform_indices(count: int, target: int) -> np.ndarray:
    """
    Indices ``0, stride, 2 * stride, ...`` with ``stride = max(1, count // target)``,
    truncated to ``target`` entries.
    """
    stride = max(1, count // target)
    return np.arange(0, count, stride, dtype=np.int64)[:target]


def descending_order(scores: np.ndarray) -> np.ndarray:
    """Indices sorted by descending score, ties by ascending index."""
    return np.argsort(-scores, kind="stable")
