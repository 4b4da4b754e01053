"""Tests for the Frame data model and error taxonomy."""

import pytest
import torch

from splatengine.errors import InvalidInput, SplatError, StorageError
from splatengine.frame import Bounds, Frame, SplatPoint, normalize_quaternions

from conftest import make_frame


class TestCreate:

    def test_defaults_fill_missing_channels(self):
        frame = Frame.create(positions=[[0, 0, 0], [1, 2, 3]])
        assert frame.count == 2
        assert torch.allclose(frame.scales, torch.full((2, 3), 0.01))
        assert torch.equal(frame.rotations, torch.tensor([[0.0, 0.0, 0.0, 1.0]] * 2))
        assert torch.equal(frame.colors, torch.ones((2, 4)))
        assert torch.equal(frame.opacities, torch.ones(2))

    def test_rgb_colors_get_reserved_channel(self):
        frame = Frame.create(positions=[[0, 0, 0]], colors=[[0.2, 0.4, 0.6]])
        assert frame.colors.shape == (1, 4)
        assert frame.colors[0, 3] == 1.0

    def test_colors_and_opacities_are_clamped(self):
        frame = Frame.create(positions=[[0, 0, 0]], colors=[[2.0, -1.0, 0.5, 1.0]], opacities=[1.5])
        assert frame.colors[0].tolist() == pytest.approx([1.0, 0.0, 0.5, 1.0])
        assert frame.opacities[0] == 1.0

    def test_rotations_are_normalized(self):
        frame = Frame.create(positions=[[0, 0, 0]], rotations=[[0, 0, 0, 2]])
        assert frame.rotations[0].tolist() == pytest.approx([0.0, 0.0, 0.0, 1.0])

    def test_mismatched_channels_rejected(self):
        with pytest.raises(InvalidInput):
            Frame.create(positions=[[0, 0, 0], [1, 1, 1]], opacities=[1.0])

    def test_invalid_input_is_value_error(self):
        with pytest.raises(ValueError):
            Frame.create(positions=[[0, 0, 0]], scales=[[1, 1]])


def test_zero_quaternion_becomes_identity():
    rotations = normalize_quaternions(torch.zeros((1, 4)))
    assert rotations[0].tolist() == [0.0, 0.0, 0.0, 1.0]


def test_empty_frame():
    frame = Frame.empty()
    assert frame.count == 0
    assert len(frame) == 0
    assert frame.is_valid


def test_validate_reports_inconsistency():
    frame = make_frame(4)
    broken = frame.replace(opacities=torch.ones(3))
    assert not broken.is_valid
    assert "opacities" in broken.validate()


def test_from_points_and_back():
    points = [
        SplatPoint((1.0, 2.0, 3.0), (0.1, 0.2, 0.3), (0.0, 0.0, 0.0, 1.0), (1.0, 0.0, 0.0, 1.0), 0.5),
        SplatPoint((4.0, 5.0, 6.0), (0.1, 0.1, 0.1), (0.0, 0.0, 0.0, 1.0), (0.0, 1.0, 0.0, 1.0), 1.0),
    ]
    frame = Frame.from_points(points)
    assert frame.count == 2
    assert frame.point(1).position == pytest.approx((4.0, 5.0, 6.0))
    assert frame.point(0).opacity == pytest.approx(0.5)


def test_select_builds_new_frame():
    frame = make_frame(10)
    subset = frame.select([9, 0, 0])
    assert subset.count == 3
    assert torch.equal(subset.positions[0], frame.positions[9])
    assert frame.count == 10


def test_concat_preserves_order():
    a, b = make_frame(3, seed=1), make_frame(2, seed=2)
    merged = Frame.concat([a, b])
    assert merged.count == 5
    assert torch.equal(merged.positions[3:], b.positions)


def test_bounds():
    frame = Frame.create(positions=[[0, -1, 2], [3, 4, -5]])
    bounds = frame.bounds()
    assert bounds.minimum.tolist() == [0.0, -1.0, -5.0]
    assert bounds.maximum.tolist() == [3.0, 4.0, 2.0]
    assert bounds.center.tolist() == [1.5, 1.5, -1.5]
    assert bounds.contains(torch.tensor([[1.0, 1.0, 0.0], [4.0, 0.0, 0.0]])).tolist() == [True, False]


def test_bounds_of_empty_is_zero_box():
    bounds = Bounds.of(torch.zeros((0, 3)))
    assert bounds.size.tolist() == [0.0, 0.0, 0.0]


def test_nbytes():
    assert make_frame(10).nbytes == 10 * 60


def test_storage_error_is_os_error():
    assert issubclass(StorageError, OSError)
    assert issubclass(StorageError, SplatError)
