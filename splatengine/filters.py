"""
Point filters. Every filter returns a new Frame and leaves its input intact.
"""

from typing import Optional, Sequence

import numpy as np
import torch

from .errors import InvalidInput
from .frame import Bounds, Frame


def _require(frame: Optional[Frame]) -> Frame:
    if frame is None:
        raise InvalidInput("Frame must be provided")
    return frame


def filter_by_bounds(frame: Frame, bounds: Bounds) -> Frame:
    """Keep the points whose position lies inside ``bounds`` (inclusive)."""
    frame = _require(frame)
    mask = bounds.contains(frame.positions)
    return frame.select(torch.nonzero(mask).reshape(-1))


def filter_by_opacity(frame: Frame, min_opacity: float) -> Frame:
    """Keep the points with opacity at least ``min_opacity`` (clamped to [0, 1])."""
    frame = _require(frame)
    min_opacity = min(max(float(min_opacity), 0.0), 1.0)
    mask = frame.opacities >= min_opacity
    return frame.select(torch.nonzero(mask).reshape(-1))


def decimate(frame: Frame, stride: int) -> Frame:
    """Keep every ``stride``-th point starting at index 0; a stride <= 1 keeps all."""
    frame = _require(frame)
    if stride <= 1:
        return frame.clone()
    return frame.select(np.arange(0, frame.count, stride, dtype=np.int64))


def random_sample(frame: Frame, target: int, seed: Optional[int] = None) -> Frame:
    """
    Keep ``target`` distinct random points in ascending index order.

    A target that is not positive or not below the point count keeps every
    point. Pass ``seed`` for a reproducible subset.
    """
    frame = _require(frame)
    if target <= 0 or target >= frame.count:
        return frame.clone()
    rng = np.random.default_rng(seed)
    return frame.select(np.sort(rng.choice(frame.count, size=target, replace=False)))


def merge(frames: Sequence[Frame]) -> Frame:
    """Concatenate frames in order into one new frame."""
    if frames is None:
        raise InvalidInput("Frames must be provided")
    return Frame.concat([f.clone() for f in frames if f is not None])


def remove_duplicates(frame: Frame, epsilon: float) -> Frame:
    """
    Drop points that share a cell of an ``epsilon``-sized position grid.

    Positions snap to the nearest grid node; the first point in each cell is
    kept and the original order is preserved.
    """
    frame = _require(frame)
    if not epsilon > 0:
        raise InvalidInput(f"epsilon must be positive, got {epsilon}")
    if frame.count == 0:
        return frame.clone()
    cells = torch.round(frame.positions.double() / float(epsilon)).to(torch.int64).cpu().numpy()
    _, first = np.unique(cells, axis=0, return_index=True)
    return frame.select(np.sort(first))
