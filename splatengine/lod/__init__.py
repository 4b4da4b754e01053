"""
Level-of-detail generation strategies.
"""

from .interface import LODMethod, LODStrategy, uniform_indices
from .registry import (
    STRATEGIES,
    StrategyEntry,
    register_strategy,
    get_strategy_entry,
    build_strategy,
)

# Import to trigger registration
from . import sampling
from . import clustering
from . import octree
from . import density

from .sampling import (
    UniformDecimation,
    UniformDecimationConfig,
    RandomSampling,
    RandomSamplingConfig,
    ImportanceBased,
    ImportanceConfig,
    importance_scores,
)
from .clustering import SpatialClustering, SpatialClusteringConfig, kmeans
from .octree import HierarchicalClustering, HierarchicalClusteringConfig, OctreeNode, build_octree
from .density import AdaptiveDensity, AdaptiveDensityConfig, count_neighbors
from .generator import generate_lod_level, generate_lod_levels, level_target, reduction_factors

__all__ = [
    "LODMethod",
    "LODStrategy",
    "uniform_indices",
    "STRATEGIES",
    "StrategyEntry",
    "register_strategy",
    "get_strategy_entry",
    "build_strategy",
    "UniformDecimation",
    "UniformDecimationConfig",
    "RandomSampling",
    "RandomSamplingConfig",
    "ImportanceBased",
    "ImportanceConfig",
    "importance_scores",
    "SpatialClustering",
    "SpatialClusteringConfig",
    "kmeans",
    "HierarchicalClustering",
    "HierarchicalClusteringConfig",
    "OctreeNode",
    "build_octree",
    "AdaptiveDensity",
    "AdaptiveDensityConfig",
    "count_neighbors",
    "generate_lod_level",
    "generate_lod_levels",
    "level_target",
    "reduction_factors",
]
