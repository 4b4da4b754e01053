"""
Hierarchical clustering LOD over an octree.

Points are partitioned into an octree whose nodes split once they hold more
than ``max_points_per_node`` points, down to ``max_depth``. Each leaf elects
one representative, representatives are collected breadth-first, and any
shortfall is topped up by uniform decimation over the unselected points.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

import numpy as np

from ..frame import Frame
from .interface import LODStrategy, uniform_indices
from .registry import register_strategy

logger = logging.getLogger(__name__)


@dataclass
class HierarchicalClusteringConfig:
    """
    Attributes:
        max_points_per_node: A node splits once it holds more points than this.
        max_depth: Depth of the deepest leaves (the root has depth 0).
    """
    max_points_per_node: int = 32
    max_depth: int = 8


@dataclass
class OctreeNode:
    """
    Octree node over an axis-aligned box.

    Every node keeps the indices of its points together with their positions
    so subdivision can route each point to exactly one child.
    """
    minimum: np.ndarray
    maximum: np.ndarray
    depth: int
    indices: np.ndarray
    positions: np.ndarray
    children: List["OctreeNode"] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def subdivide(self) -> None:
        """Split into eight octants; points on a center plane go to the upper octant."""
        center = (self.minimum + self.maximum) * 0.5
        upper = self.positions >= center
        octants = upper[:, 0] * 1 + upper[:, 1] * 2 + upper[:, 2] * 4
        for octant in range(8):
            bits = np.array([octant & 1, (octant >> 1) & 1, (octant >> 2) & 1], dtype=bool)
            mask = octants == octant
            self.children.append(OctreeNode(
                minimum=np.where(bits, center, self.minimum),
                maximum=np.where(bits, self.maximum, center),
                depth=self.depth + 1,
                indices=self.indices[mask],
                positions=self.positions[mask],
            ))
        self.indices = self.indices[:0]
        self.positions = self.positions[:0]

    def build(self, max_points_per_node: int, max_depth: int) -> None:
        """Recursively subdivide overfull nodes."""
        stack = [self]
        while stack:
            node = stack.pop()
            if len(node.indices) > max_points_per_node and node.depth < max_depth:
                node.subdivide()
                stack.extend(node.children)

    def leaves(self) -> Iterator["OctreeNode"]:
        """Leaves in breadth-first order, children in octant order."""
        queue = deque([self])
        while queue:
            node = queue.popleft()
            if node.is_leaf:
                yield node
            else:
                queue.extend(node.children)


def build_octree(
    positions: np.ndarray,
    max_points_per_node: int = 32,
    max_depth: int = 8,
) -> OctreeNode:
    """
    Build an octree over the bounding box of ``positions``.

    Args:
        positions: Point positions, shape (N, 3).
        max_points_per_node: Split threshold.
        max_depth: Maximum depth.

    Returns:
        The root node. Every input point lands in exactly one leaf.
    """
    root = OctreeNode(
        minimum=positions.min(axis=0),
        maximum=positions.max(axis=0),
        depth=0,
        indices=np.arange(positions.shape[0], dtype=np.int64),
        positions=positions,
    )
    root.build(max_points_per_node, max_depth)
    return root


def leaf_representative(node: OctreeNode, scores: np.ndarray) -> Optional[int]:
    """Index of the leaf point with the highest score, first index on ties."""
    if len(node.indices) == 0:
        return None
    return int(node.indices[np.argmax(scores[node.indices])])


class HierarchicalClustering(LODStrategy):
    """
    One representative per octree leaf, maximizing ``|scale| * opacity``,
    collected breadth-first until ``target`` and topped up uniformly.
    """

    def __init__(self, config: HierarchicalClusteringConfig = HierarchicalClusteringConfig()):
        self.config = config

    def _reduce(self, frame: Frame, target: int) -> Frame:
        positions = frame.positions.detach().cpu().numpy().astype(np.float64)
        scales = frame.scales.detach().cpu().numpy().astype(np.float64)
        opacities = frame.opacities.detach().cpu().numpy().astype(np.float64)
        scores = np.linalg.norm(scales, axis=1) * opacities

        root = build_octree(positions, self.config.max_points_per_node, self.config.max_depth)

        selected = []
        for leaf in root.leaves():
            if len(selected) >= target:
                break
            representative = leaf_representative(leaf, scores)
            if representative is not None:
                selected.append(representative)

        if len(selected) < target:
            remainder = np.setdiff1d(np.arange(frame.count, dtype=np.int64), selected)
            top_up = remainder[uniform_indices(len(remainder), target - len(selected))]
            logger.debug(
                f"Octree produced {len(selected)} representatives, "
                f"topping up {len(top_up)} points uniformly"
            )
            selected = np.concatenate([np.asarray(selected, dtype=np.int64), top_up])

        return frame.select(np.asarray(selected, dtype=np.int64))


register_strategy(
    name="hierarchical",
    factory=HierarchicalClustering,
    config_class=HierarchicalClusteringConfig,
    description="Octree leaf representatives",
)
