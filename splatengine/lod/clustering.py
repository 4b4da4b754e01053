"""
Spatial clustering LOD: k-means over positions, one merged splat per cluster.
"""

import logging
from dataclasses import dataclass

import numpy as np
import torch
from scipy.spatial import cKDTree

from ..frame import Frame
from .interface import LODStrategy, uniform_indices
from .registry import register_strategy

logger = logging.getLogger(__name__)


@dataclass
class SpatialClusteringConfig:
    """
    Attributes:
        seed: Seed of the k-means++ initialization.
        iterations: Number of Lloyd iterations.
    """
    seed: int = 42
    iterations: int = 10


def kmeans_plus_plus(points: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """
    Pick ``k`` initial centers with k-means++ seeding.

    The first center is uniform; each next center is drawn with probability
    proportional to the squared distance to its nearest chosen center.

    Args:
        points: Positions, shape (N, 3), float64.
        k: Number of centers, 1 <= k <= N.
        rng: Random generator.

    Returns:
        Centers, shape (k, 3).
    """
    n_points = points.shape[0]
    centers = np.empty((k, 3), dtype=np.float64)
    centers[0] = points[rng.integers(n_points)]
    nearest = ((points - centers[0]) ** 2).sum(axis=1)

    for c in range(1, k):
        total = nearest.sum()
        if total > 0:
            choice = rng.choice(n_points, p=nearest / total)
        else:
            # Every point coincides with a chosen center
            choice = rng.integers(n_points)
        centers[c] = points[choice]
        nearest = np.minimum(nearest, ((points - centers[c]) ** 2).sum(axis=1))

    return centers


def kmeans(points: np.ndarray, k: int, iterations: int, seed: int) -> np.ndarray:
    """
    Run Lloyd's k-means with Euclidean assignment.

    Empty clusters keep their previous center. At least one iteration runs.

    Returns:
        Cluster assignment of every point, shape (N,).
    """
    rng = np.random.default_rng(seed)
    centers = kmeans_plus_plus(points, k, rng)

    for _ in range(max(1, iterations)):
        _, assignments = cKDTree(centers).query(points)
        counts = np.bincount(assignments, minlength=k)
        sums = np.stack([np.bincount(assignments, weights=points[:, axis], minlength=k) for axis in range(3)], axis=1)
        filled = counts > 0
        centers[filled] = sums[filled] / counts[filled, None]

    return assignments


def _cluster_means(values: np.ndarray, assignments: np.ndarray, clusters: np.ndarray, counts: np.ndarray) -> np.ndarray:
    k = counts.shape[0]
    sums = np.stack(
        [np.bincount(assignments, weights=values[:, c], minlength=k) for c in range(values.shape[1])],
        axis=1,
    )
    return sums[clusters] / counts[clusters, None]


def merge_clusters(frame: Frame, assignments: np.ndarray, k: int) -> Frame:
    """
    Collapse every non-empty cluster into one splat.

    Position, scale, color and opacity are arithmetic means; the rotation is
    the normalized mean of the quaternion components. Clusters come out in
    ascending cluster order.
    """
    counts = np.bincount(assignments, minlength=k)
    clusters = np.flatnonzero(counts)

    def mean_of(tensor: torch.Tensor) -> np.ndarray:
        values = tensor.detach().cpu().numpy().astype(np.float64)
        if values.ndim == 1:
            values = values[:, None]
        return _cluster_means(values, assignments, clusters, counts)

    return Frame.create(
        positions=mean_of(frame.positions),
        scales=mean_of(frame.scales),
        rotations=mean_of(frame.rotations),
        colors=mean_of(frame.colors),
        opacities=mean_of(frame.opacities).reshape(-1),
    )


class SpatialClustering(LODStrategy):
    """
    k-means with ``k = target`` over positions, seeded k-means++ start and a
    fixed number of iterations; each cluster becomes one averaged splat.

    Falls back to uniform decimation when fewer than ``target`` clusters end
    up non-empty (e.g. many duplicate positions).
    """

    def __init__(self, config: SpatialClusteringConfig = SpatialClusteringConfig()):
        self.config = config

    def _reduce(self, frame: Frame, target: int) -> Frame:
        points = frame.positions.detach().cpu().numpy().astype(np.float64)
        assignments = kmeans(points, target, self.config.iterations, self.config.seed)

        non_empty = np.count_nonzero(np.bincount(assignments, minlength=target))
        if non_empty < target:
            logger.warning(
                f"Spatial clustering produced {non_empty} of {target} clusters, "
                f"falling back to uniform decimation"
            )
            return frame.select(uniform_indices(frame.count, target))

        return merge_clusters(frame, assignments, target)


register_strategy(
    name="spatial",
    factory=SpatialClustering,
    config_class=SpatialClusteringConfig,
    description="k-means clusters merged into one splat each",
)
