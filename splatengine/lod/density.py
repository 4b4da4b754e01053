"""
Adaptive density LOD: keep points in dense, opaque regions.
"""

import logging
from dataclasses import dataclass

import numpy as np
import torch
from scipy.spatial import cKDTree

from ..frame import Frame
from .interface import LODStrategy, descending_order, uniform_indices
from .registry import register_strategy

logger = logging.getLogger(__name__)


@dataclass
class AdaptiveDensityConfig:
    """
    Attributes:
        radius: Neighborhood radius; points strictly closer count as neighbors.
    """
    radius: float = 0.5


def count_neighbors(points: torch.Tensor, radius: float = 0.5) -> np.ndarray:
    """
    Count, for every point, the other points strictly closer than ``radius``.

    Uses scipy's cKDTree ball query, which returns the same counts as an
    exhaustive pairwise scan in O(N log N).

    Args:
        points: Point coordinates, shape (N, 3).
        radius: Neighborhood radius.

    Returns:
        Neighbor counts, shape (N,), int64. A point never counts itself;
        coincident points count each other.
    """
    points_np = points.detach().cpu().numpy().astype(np.float64)
    if points_np.shape[0] == 0 or radius <= 0:
        return np.zeros(points_np.shape[0], dtype=np.int64)

    tree = cKDTree(points_np)
    # The ball query is inclusive; shrink by one ulp for a strict bound
    inner_radius = np.nextafter(radius, 0.0)
    counts = tree.query_ball_point(points_np, r=inner_radius, return_length=True)
    # Every point finds itself
    return np.asarray(counts, dtype=np.int64) - 1


class AdaptiveDensity(LODStrategy):
    """
    Keep the ``target`` points with the highest ``opacity * sqrt(neighbors)``,
    highest first, ties broken by ascending index.

    Falls back to uniform decimation when no point has any neighbor, since
    every score is then zero.
    """

    def __init__(self, config: AdaptiveDensityConfig = AdaptiveDensityConfig()):
        self.config = config

    def _reduce(self, frame: Frame, target: int) -> Frame:
        neighbors = count_neighbors(frame.positions, self.config.radius)
        if not neighbors.any():
            logger.warning(
                f"No point has a neighbor within {self.config.radius}, "
                f"falling back to uniform decimation"
            )
            return frame.select(uniform_indices(frame.count, target))

        opacities = frame.opacities.detach().cpu().numpy().astype(np.float64)
        scores = opacities * np.sqrt(neighbors)
        return frame.select(descending_order(scores)[:target])


register_strategy(
    name="adaptive",
    factory=AdaptiveDensity,
    config_class=AdaptiveDensityConfig,
    description="Opaque points in dense neighborhoods first",
)
