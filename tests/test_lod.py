"""Tests for LOD strategies and level generation."""

import numpy as np
import pytest
import torch

from splatengine.errors import InvalidInput
from splatengine.frame import Frame
from splatengine.lod import (
    STRATEGIES,
    AdaptiveDensity,
    HierarchicalClustering,
    HierarchicalClusteringConfig,
    ImportanceBased,
    LODMethod,
    RandomSampling,
    RandomSamplingConfig,
    SpatialClustering,
    UniformDecimation,
    build_octree,
    build_strategy,
    count_neighbors,
    generate_lod_level,
    generate_lod_levels,
    level_target,
)
from splatengine.lod.clustering import kmeans

from conftest import line_frame, make_frame

ALL_METHODS = [method.value for method in LODMethod]


def test_every_method_is_registered():
    assert set(STRATEGIES) == set(ALL_METHODS)


def test_unknown_method():
    with pytest.raises(InvalidInput):
        generate_lod_level(make_frame(10), 5, method="voxel")


class TestContract:

    @pytest.mark.parametrize("method", ALL_METHODS)
    @pytest.mark.parametrize("target", [1, 7, 50, 199])
    def test_exact_cardinality(self, method, target):
        reduced = generate_lod_level(make_frame(200, seed=5), target, method=method)
        assert reduced.count == target
        assert reduced.is_valid

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_target_at_or_above_count_is_identity(self, method):
        frame = make_frame(20)
        assert generate_lod_level(frame, 20, method=method) is frame
        assert generate_lod_level(frame, 1000, method=method) is frame

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_target_below_one_is_clamped(self, method):
        assert generate_lod_level(make_frame(20), 0, method=method).count == 1
        assert generate_lod_level(make_frame(20), -4, method=method).count == 1

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_source_is_not_modified(self, method):
        frame = make_frame(50)
        before = frame.clone()
        generate_lod_level(frame, 10, method=method)
        assert torch.equal(frame.positions, before.positions)
        assert torch.equal(frame.opacities, before.opacities)

    @pytest.mark.parametrize("method", ALL_METHODS)
    def test_deterministic(self, method):
        frame = make_frame(150, seed=9)
        first = generate_lod_level(frame, 40, method=method, seed=11)
        second = generate_lod_level(frame, 40, method=method, seed=11)
        assert torch.equal(first.positions, second.positions)

    def test_empty_source_rejected(self):
        with pytest.raises(InvalidInput):
            generate_lod_level(Frame.empty(), 1)
        with pytest.raises(InvalidInput):
            UniformDecimation().reduce(None, 1)


class TestSelection:

    def test_uniform_keeps_every_fourth_point(self):
        reduced = UniformDecimation().reduce(line_frame(100), 25)
        assert reduced.count == 25
        assert reduced.positions[:, 0].tolist() == [float(i) for i in range(0, 100, 4)]

    def test_uniform_truncates_to_target(self):
        reduced = UniformDecimation().reduce(line_frame(10), 4)
        assert reduced.positions[:, 0].tolist() == [0.0, 2.0, 4.0, 6.0]

    def test_random_is_sorted_and_distinct(self):
        reduced = RandomSampling(RandomSamplingConfig(seed=3)).reduce(line_frame(100), 30)
        indices = reduced.positions[:, 0].tolist()
        assert indices == sorted(set(indices))

    def test_random_seed_changes_subset(self):
        a = build_strategy("random", seed=1).reduce(line_frame(100), 30)
        b = build_strategy("random", seed=2).reduce(line_frame(100), 30)
        assert not torch.equal(a.positions, b.positions)

    def test_importance_orders_by_score(self):
        frame = Frame.create(
            positions=[[i, 0, 0] for i in range(4)],
            scales=[[1, 1, 1], [3, 3, 3], [2, 2, 2], [3, 3, 3]],
            opacities=[1.0, 1.0, 1.0, 1.0],
        )
        reduced = ImportanceBased().reduce(frame, 3)
        # ties keep ascending index order
        assert reduced.positions[:, 0].tolist() == [1.0, 3.0, 2.0]


class TestSpatial:

    def test_clusters_are_merged(self):
        positions = [[0, 0, 0], [0.1, 0, 0], [10, 0, 0], [10.1, 0, 0]]
        frame = Frame.create(positions=positions, opacities=[1.0, 0.0, 0.5, 0.5])
        reduced = SpatialClustering().reduce(frame, 2)
        xs = sorted(reduced.positions[:, 0].tolist())
        assert xs == pytest.approx([0.05, 10.05], abs=1e-5)
        assert sorted(reduced.opacities.tolist()) == pytest.approx([0.5, 0.5])

    def test_duplicate_positions_fall_back_to_uniform(self):
        frame = Frame.create(positions=torch.zeros((10, 3)), opacities=torch.linspace(0, 1, 10))
        reduced = SpatialClustering().reduce(frame, 5)
        assert reduced.count == 5
        assert torch.allclose(reduced.opacities, frame.opacities[::2])

    def test_kmeans_assigns_every_point(self):
        points = np.array([[0, 0, 0], [0.1, 0, 0], [10, 0, 0], [10.1, 0, 0]], dtype=np.float64)
        for iterations in (0, 1, 10):
            assignments = kmeans(points, 2, iterations, seed=42)
            assert assignments.shape == (4,)
            assert assignments[0] == assignments[1]
            assert assignments[2] == assignments[3]
            assert assignments[0] != assignments[2]


class TestHierarchical:

    def test_octree_keeps_every_point(self):
        positions = np.random.default_rng(0).uniform(-1, 1, size=(1000, 3))
        root = build_octree(positions, max_points_per_node=8, max_depth=6)
        leaves = list(root.leaves())
        collected = np.concatenate([leaf.indices for leaf in leaves])
        assert np.array_equal(np.sort(collected), np.arange(1000))
        assert len(leaves) > 1

    def test_leaf_positions_stay_paired_with_indices(self):
        positions = np.random.default_rng(1).uniform(0, 4, size=(300, 3))
        root = build_octree(positions, max_points_per_node=4, max_depth=5)
        for leaf in root.leaves():
            assert np.array_equal(leaf.positions, positions[leaf.indices])
            assert (leaf.positions >= leaf.minimum - 1e-12).all()
            assert (leaf.positions <= leaf.maximum + 1e-12).all()

    def test_top_up_reaches_target(self):
        # A single leaf yields one representative; the rest is topped up
        config = HierarchicalClusteringConfig(max_points_per_node=1000, max_depth=1)
        reduced = HierarchicalClustering(config).reduce(line_frame(100), 10)
        indices = reduced.positions[:, 0].tolist()
        assert len(indices) == 10
        assert len(set(indices)) == 10


class TestAdaptive:

    def test_count_neighbors_is_strict(self):
        points = torch.tensor([[0.0, 0.0, 0.0], [0.5, 0.0, 0.0], [0.2, 0.0, 0.0], [5.0, 0.0, 0.0]])
        assert count_neighbors(points, radius=0.5).tolist() == [1, 1, 2, 0]

    def test_dense_region_is_preferred(self):
        dense = [[0.1 * i, 0, 0] for i in range(5)]
        sparse = [[10.0 * (i + 1), 0, 0] for i in range(5)]
        frame = Frame.create(positions=dense + sparse)
        reduced = AdaptiveDensity().reduce(frame, 5)
        assert (reduced.positions[:, 0] < 1.0).all()

    def test_isolated_points_fall_back_to_uniform(self):
        reduced = AdaptiveDensity().reduce(line_frame(20), 5)
        assert reduced.positions[:, 0].tolist() == [0.0, 4.0, 8.0, 12.0, 16.0]


class TestLevels:

    def test_level_targets(self):
        frame = line_frame(1000)
        levels = generate_lod_levels(frame, level_count=4, method="uniform")
        assert levels[0] is frame
        assert levels[1].count == 700
        assert [level.count for level in levels] == [1000] + [level_target(1000, i) for i in range(1, 4)]
        assert levels[1].count > levels[2].count > levels[3].count

    def test_levels_never_go_below_one(self):
        levels = generate_lod_levels(line_frame(3), level_count=6, method="importance")
        assert [level.count for level in levels] == [3, 2, 1, 1, 1, 1]

    def test_random_levels_use_level_seeds(self):
        frame = line_frame(200)
        levels = generate_lod_levels(frame, level_count=3, method="random")
        expected = generate_lod_level(frame, level_target(200, 1), method="random", seed=1)
        assert torch.equal(levels[1].positions, expected.positions)

    def test_explicit_seed_is_reproducible(self):
        frame = make_frame(120)
        a = generate_lod_levels(frame, level_count=3, method=LODMethod.SPATIAL, seed=5)
        b = generate_lod_levels(frame, level_count=3, method=LODMethod.SPATIAL, seed=5)
        assert all(torch.equal(x.positions, y.positions) for x, y in zip(a, b))

    def test_invalid_arguments(self):
        with pytest.raises(InvalidInput):
            generate_lod_levels(make_frame(10), level_count=0)
        with pytest.raises(InvalidInput):
            generate_lod_levels(None)
