"""Tests for point filters and frame edits."""

import math

import pytest
import torch

from splatengine.editing import (
    bounds_with_extents,
    normalize_opacity,
    normalize_scale,
    quaternion_multiply,
    rotate,
    scale,
    smooth_positions,
    tint,
    translate,
)
from splatengine.errors import InvalidInput
from splatengine.filters import (
    decimate,
    filter_by_bounds,
    filter_by_opacity,
    merge,
    random_sample,
    remove_duplicates,
)
from splatengine.frame import Bounds, Frame

from conftest import line_frame, make_frame


class TestFilters:

    def test_filter_by_bounds_is_inclusive(self):
        bounds = Bounds(minimum=torch.tensor([2.0, -1.0, -1.0]), maximum=torch.tensor([5.0, 1.0, 1.0]))
        kept = filter_by_bounds(line_frame(10), bounds)
        assert kept.positions[:, 0].tolist() == [2.0, 3.0, 4.0, 5.0]

    def test_filter_by_opacity(self):
        frame = Frame.create(positions=torch.zeros((4, 3)), opacities=[0.1, 0.5, 0.9, 0.5])
        assert filter_by_opacity(frame, 0.5).opacities.tolist() == pytest.approx([0.5, 0.9, 0.5])
        assert filter_by_opacity(frame, -3).count == 4
        assert filter_by_opacity(frame, 2).count == 0

    def test_decimate(self):
        assert decimate(line_frame(10), 3).positions[:, 0].tolist() == [0.0, 3.0, 6.0, 9.0]
        assert decimate(line_frame(10), 0).count == 10

    def test_random_sample(self):
        a = random_sample(line_frame(50), 10, seed=4)
        b = random_sample(line_frame(50), 10, seed=4)
        assert a.count == 10
        assert torch.equal(a.positions, b.positions)
        xs = a.positions[:, 0].tolist()
        assert xs == sorted(xs)
        assert random_sample(line_frame(5), 10).count == 5

    def test_merge(self):
        merged = merge([line_frame(2), None, line_frame(3)])
        assert merged.positions[:, 0].tolist() == [0.0, 1.0, 0.0, 1.0, 2.0]
        assert merge([]).count == 0

    def test_remove_duplicates_keeps_first_in_cell(self):
        frame = Frame.create(
            positions=[[0, 0, 0], [1, 0, 0], [0.0004, 0, 0], [1.0003, 0, 0], [2, 0, 0]],
            opacities=[0.1, 0.2, 0.3, 0.4, 0.5],
        )
        kept = remove_duplicates(frame, 0.001)
        assert kept.opacities.tolist() == pytest.approx([0.1, 0.2, 0.5])
        assert remove_duplicates(frame, 10.0).count == 1

    def test_remove_duplicates_rejects_bad_epsilon(self):
        with pytest.raises(InvalidInput):
            remove_duplicates(line_frame(3), 0)
        assert remove_duplicates(Frame.empty(), 0.1).count == 0

    def test_filters_leave_input_untouched(self):
        frame = line_frame(10)
        kept = decimate(frame, 1)
        kept.positions.add_(1.0)
        assert frame.positions[0, 0] == 0.0

    def test_none_frame(self):
        with pytest.raises(InvalidInput):
            decimate(None, 2)


class TestEditing:

    def test_translate(self):
        moved = translate(line_frame(3), [1, 2, 3])
        assert moved.positions[2].tolist() == [3.0, 2.0, 3.0]

    def test_translate_wrong_size(self):
        with pytest.raises(InvalidInput):
            translate(line_frame(3), [1, 2])

    def test_scale_multiplies_positions_and_extents(self):
        frame = Frame.create(positions=[[1, 1, 1]], scales=[[0.1, 0.2, 0.3]])
        scaled = scale(frame, [2, 3, 4])
        assert scaled.positions[0].tolist() == [2.0, 3.0, 4.0]
        assert scaled.scales[0].tolist() == pytest.approx([0.2, 0.6, 1.2])

    def test_rotate_quarter_turn_about_z(self):
        half = math.sqrt(0.5)
        frame = Frame.create(positions=[[1, 0, 0]])
        rotated = rotate(frame, [0, 0, half, half])
        assert rotated.positions[0].tolist() == pytest.approx([0.0, 1.0, 0.0], abs=1e-6)
        assert rotated.rotations[0].tolist() == pytest.approx([0.0, 0.0, half, half], abs=1e-6)

    def test_quaternion_identity(self):
        q = torch.tensor([0.1, 0.2, 0.3, 0.9])
        identity = torch.tensor([0.0, 0.0, 0.0, 1.0])
        assert torch.allclose(quaternion_multiply(identity, q), q)
        assert torch.allclose(quaternion_multiply(q, identity), q)

    def test_tint(self):
        frame = Frame.create(positions=[[0, 0, 0]], colors=[[0.5, 1.0, 0.2, 1.0]])
        assert tint(frame, [2.0, 0.5, 1.0]).colors[0].tolist() == pytest.approx([1.0, 0.5, 0.2, 1.0])
        assert tint(frame, [1, 1, 1, 0.5]).colors[0, 3] == pytest.approx(0.5)

    def test_normalize_scale(self):
        frame = Frame.create(positions=torch.zeros((2, 3)), scales=[[3, 4, 0], [0, 0, 0]])
        normalized = normalize_scale(frame, 1.0)
        assert normalized.scales[0].tolist() == pytest.approx([0.6, 0.8, 0.0])
        assert normalized.scales[1].tolist() == pytest.approx([1.0, 1.0, 1.0])
        assert normalize_scale(frame, 0).scales[0].norm().item() == pytest.approx(1e-4)

    def test_normalize_opacity(self):
        frame = Frame.create(positions=torch.zeros((3, 3)), opacities=[0.1, 0.2, 0.4])
        assert normalize_opacity(frame).opacities.tolist() == pytest.approx([0.25, 0.5, 1.0])
        assert normalize_opacity(frame, 0.8).opacities.tolist() == pytest.approx([0.2, 0.4, 0.8])
        assert normalize_opacity(frame, 5.0).opacities.tolist() == pytest.approx([1.0, 1.0, 1.0])

    def test_normalize_opacity_all_transparent(self):
        frame = Frame.create(positions=torch.zeros((2, 3)), opacities=[0.0, 0.0])
        assert normalize_opacity(frame).opacities.tolist() == [0.0, 0.0]
        with pytest.raises(InvalidInput):
            normalize_opacity(frame, 0.0)

    def test_smooth_positions(self):
        frame = Frame.create(positions=[[2, -4, 8]])
        assert smooth_positions(frame, 0.25).positions[0].tolist() == pytest.approx([1.5, -3.0, 6.0])
        assert smooth_positions(frame, 3.0).positions[0].tolist() == [0.0, 0.0, 0.0]
        assert smooth_positions(frame, -1.0).positions[0].tolist() == [2.0, -4.0, 8.0]

    def test_bounds_with_extents(self):
        frame = Frame.create(positions=[[0, 0, 0], [1, 1, 1]], scales=[[0.5, 0.5, 0.5], [-0.25, 0.25, 0.25]])
        bounds = bounds_with_extents(frame)
        assert bounds.minimum.tolist() == [-0.5, -0.5, -0.5]
        assert bounds.maximum.tolist() == [1.25, 1.25, 1.25]

    def test_edits_return_new_frames(self):
        frame = make_frame(5)
        before = frame.positions.clone()
        translate(frame, [1, 1, 1])
        rotate(frame, [0, 0, 1, 1])
        assert torch.equal(frame.positions, before)


def test_modules_exported_from_package_root():
    import splatengine

    assert splatengine.filters.remove_duplicates is remove_duplicates
    assert splatengine.editing.normalize_opacity is normalize_opacity
    assert "filters" in splatengine.__all__ and "editing" in splatengine.__all__
