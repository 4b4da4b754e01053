"""
Index-selection strategies: uniform decimation, random sampling and
importance ranking. Each keeps a subset of the source points unchanged.
"""

from dataclasses import dataclass

import numpy as np

from ..frame import Frame
from .interface import LODStrategy, descending_order, uniform_indices
from .registry import register_strategy


@dataclass
class UniformDecimationConfig:
    """Uniform decimation has no parameters."""


class UniformDecimation(LODStrategy):
    """Keep every ``stride``-th point, ``stride = max(1, N // target)``."""

    def __init__(self, config: UniformDecimationConfig = UniformDecimationConfig()):
        self.config = config

    def _reduce(self, frame: Frame, target: int) -> Frame:
        return frame.select(uniform_indices(frame.count, target))


@dataclass
class RandomSamplingConfig:
    """
    Attributes:
        seed: Seed of the numpy generator drawing the indices.
    """
    seed: int = 0


class RandomSampling(LODStrategy):
    """
    Keep ``target`` distinct points drawn by a seeded generator, in ascending
    index order. The same seed and input always give the same subset.
    """

    def __init__(self, config: RandomSamplingConfig = RandomSamplingConfig()):
        self.config = config

    def _reduce(self, frame: Frame, target: int) -> Frame:
        rng = np.random.default_rng(self.config.seed)
        indices = rng.choice(frame.count, size=target, replace=False)
        return frame.select(np.sort(indices))


@dataclass
class ImportanceConfig:
    """Importance ranking has no parameters."""


def importance_scores(frame: Frame) -> np.ndarray:
    """``mean(scale) * opacity`` per point."""
    scales = frame.scales.detach().cpu().numpy().astype(np.float64)
    opacities = frame.opacities.detach().cpu().numpy().astype(np.float64)
    return scales.mean(axis=1) * opacities


class ImportanceBased(LODStrategy):
    """
    Keep the ``target`` points with the highest ``mean(scale) * opacity``,
    highest first, ties broken by ascending index.
    """

    def __init__(self, config: ImportanceConfig = ImportanceConfig()):
        self.config = config

    def _reduce(self, frame: Frame, target: int) -> Frame:
        order = descending_order(importance_scores(frame))
        return frame.select(order[:target])


register_strategy(
    name="uniform",
    factory=UniformDecimation,
    config_class=UniformDecimationConfig,
    description="Keep every k-th point",
)
register_strategy(
    name="random",
    factory=RandomSampling,
    config_class=RandomSamplingConfig,
    description="Seeded random subset",
    seed_per_level=True,
)
register_strategy(
    name="importance",
    factory=ImportanceBased,
    config_class=ImportanceConfig,
    description="Largest, most opaque points first",
)
