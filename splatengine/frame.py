"""
Canonical splat frame data model.

A Frame holds one time-step of splats as five per-channel tensors that always
share the same point count. Frames are values: every transform in the engine
builds a new Frame and never mutates its input.
"""

from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Optional, Self, Sequence, Tuple

import torch

from .errors import InvalidInput

IDENTITY_ROTATION = (0.0, 0.0, 0.0, 1.0)
DEFAULT_SCALE = 0.01

# float32 x (3 position + 3 scale + 4 rotation + 4 color + 1 opacity)
_BYTES_PER_POINT = 4 * 15


class SplatPoint(NamedTuple):
    """A single splat. Rotation is a unit quaternion in (x, y, z, w) order."""
    position: Tuple[float, float, float]
    scale: Tuple[float, float, float]
    rotation: Tuple[float, float, float, float]
    color: Tuple[float, float, float, float]
    opacity: float


def _as_tensor(values, columns: Optional[int], name: str) -> torch.Tensor:
    tensor = torch.as_tensor(values).to(torch.float32, copy=True)
    try:
        if columns is None:
            return tensor.reshape(-1)
        return tensor.reshape(-1, columns)
    except RuntimeError as e:
        raise InvalidInput(f"{name} cannot be shaped into (N, {columns}): {e}") from e


def normalize_quaternions(rotations: torch.Tensor) -> torch.Tensor:
    """
    Normalize quaternions to unit length.

    Zero-length quaternions are replaced by the identity rotation.

    Args:
        rotations: Quaternions, shape (N, 4), (x, y, z, w) order.

    Returns:
        Unit quaternions, shape (N, 4).
    """
    norms = rotations.norm(dim=-1, keepdim=True)
    identity = rotations.new_tensor(IDENTITY_ROTATION).expand_as(rotations)
    return torch.where(norms > 1e-12, rotations / norms.clamp_min(1e-12), identity)


@dataclass(frozen=True, eq=False)
class Bounds:
    """
    Axis-aligned bounding box.

    Attributes:
        minimum: Lower corner, shape (3,).
        maximum: Upper corner, shape (3,).
    """
    minimum: torch.Tensor
    maximum: torch.Tensor

    @classmethod
    def of(cls, positions: torch.Tensor, scales: Optional[torch.Tensor] = None) -> Self:
        """
        Compute the bounds of a point set.

        Args:
            positions: Point positions, shape (N, 3).
            scales: Optional per-point extents, shape (N, 3). When given, each
                point contributes the box ``position +/- |scale|``.

        Returns:
            The enclosing Bounds. An empty point set yields a zero box.
        """
        if positions.shape[0] == 0:
            zero = torch.zeros(3, dtype=torch.float32)
            return cls(minimum=zero, maximum=zero.clone())
        lower = positions
        upper = positions
        if scales is not None:
            lower = positions - scales.abs()
            upper = positions + scales.abs()
        return cls(minimum=lower.min(dim=0).values, maximum=upper.max(dim=0).values)

    @property
    def center(self) -> torch.Tensor:
        return (self.minimum + self.maximum) * 0.5

    @property
    def size(self) -> torch.Tensor:
        return self.maximum - self.minimum

    def contains(self, points: torch.Tensor) -> torch.Tensor:
        """Boolean mask of the points lying inside the box (inclusive)."""
        return ((points >= self.minimum) & (points <= self.maximum)).all(dim=-1)

    def expanded(self, epsilon: float) -> Self:
        """Return a copy whose upper corner is pushed out by ``epsilon``."""
        return Bounds(minimum=self.minimum.clone(), maximum=self.maximum + epsilon)

    def __repr__(self) -> str:
        return f"Bounds(minimum={self.minimum.tolist()}, maximum={self.maximum.tolist()})"


@dataclass(frozen=True, eq=False)
class Frame:
    """
    One time-step's complete splat set.

    All channels are float32 tensors sharing the point count N:

    Attributes:
        positions: shape (N, 3).
        scales: Per-axis extents, shape (N, 3).
        rotations: Unit quaternions (x, y, z, w), shape (N, 4).
        colors: RGB + reserved channel in [0, 1], shape (N, 4).
        opacities: Opacity in [0, 1], shape (N,).

    Use ``Frame.create`` to build a canonical frame from raw arrays. The plain
    constructor performs no checks; ``validate`` reports inconsistencies.
    """
    positions: torch.Tensor
    scales: torch.Tensor
    rotations: torch.Tensor
    colors: torch.Tensor
    opacities: torch.Tensor

    @classmethod
    def create(
        cls,
        positions,
        scales=None,
        rotations=None,
        colors=None,
        opacities=None,
    ) -> Self:
        """
        Build a canonical Frame from array-like channels.

        Missing channels get their defaults: scale 0.01 per axis, identity
        rotation, opaque white and opacity 1. Rotations are renormalized and
        colors and opacities are clamped to [0, 1]. A color channel with only
        three columns gets a reserved fourth channel of 1.

        Raises:
            InvalidInput: If the channels do not share one point count.
        """
        positions = _as_tensor(positions, 3, "positions")
        count = positions.shape[0]

        if scales is None:
            scales = torch.full((count, 3), DEFAULT_SCALE, dtype=torch.float32)
        if rotations is None:
            rotations = torch.tensor(IDENTITY_ROTATION, dtype=torch.float32).repeat(count, 1)
        if colors is None:
            colors = torch.ones((count, 4), dtype=torch.float32)
        if opacities is None:
            opacities = torch.ones(count, dtype=torch.float32)

        colors = torch.as_tensor(colors).to(torch.float32)
        if colors.ndim == 2 and colors.shape[1] == 3:
            colors = torch.cat([colors, torch.ones_like(colors[:, :1])], dim=1)

        frame = cls(
            positions=positions,
            scales=_as_tensor(scales, 3, "scales"),
            rotations=normalize_quaternions(_as_tensor(rotations, 4, "rotations")),
            colors=_as_tensor(colors, 4, "colors").clamp(0.0, 1.0),
            opacities=_as_tensor(opacities, None, "opacities").clamp(0.0, 1.0),
        )
        error = frame.validate()
        if error is not None:
            raise InvalidInput(error)
        return frame

    @classmethod
    def empty(cls) -> Self:
        """A frame with zero points."""
        return cls.create(torch.zeros((0, 3), dtype=torch.float32))

    @classmethod
    def from_points(cls, points: Iterable[SplatPoint]) -> Self:
        points = list(points)
        if not points:
            return cls.empty()
        return cls.create(
            positions=[p.position for p in points],
            scales=[p.scale for p in points],
            rotations=[p.rotation for p in points],
            colors=[p.color for p in points],
            opacities=[p.opacity for p in points],
        )

    @classmethod
    def concat(cls, frames: Sequence["Frame"]) -> Self:
        """Merge frames, in order, into a new frame."""
        frames = [f for f in frames if f is not None]
        if not frames:
            return cls.empty()
        return cls(
            positions=torch.cat([f.positions for f in frames]),
            scales=torch.cat([f.scales for f in frames]),
            rotations=torch.cat([f.rotations for f in frames]),
            colors=torch.cat([f.colors for f in frames]),
            opacities=torch.cat([f.opacities for f in frames]),
        )

    @property
    def count(self) -> int:
        return self.positions.shape[0]

    def __len__(self) -> int:
        return self.count

    @property
    def nbytes(self) -> int:
        """Uncompressed size in bytes."""
        return self.count * _BYTES_PER_POINT

    @property
    def is_valid(self) -> bool:
        return self.validate() is None

    def validate(self) -> Optional[str]:
        """
        Check the per-channel shape invariant.

        Returns:
            None if the frame is consistent, otherwise a description of the
            first problem found.
        """
        if self.positions.ndim != 2 or self.positions.shape[1] != 3:
            return f"positions must have shape (N, 3), got {tuple(self.positions.shape)}"
        count = self.positions.shape[0]
        expected = {
            "scales": (self.scales, (count, 3)),
            "rotations": (self.rotations, (count, 4)),
            "colors": (self.colors, (count, 4)),
            "opacities": (self.opacities, (count,)),
        }
        for name, (tensor, shape) in expected.items():
            if tuple(tensor.shape) != shape:
                return f"{name} must have shape {shape}, got {tuple(tensor.shape)}"
        return None

    def bounds(self) -> Bounds:
        return Bounds.of(self.positions)

    def select(self, indices) -> Self:
        """
        Build a new frame from the points at ``indices`` (in that order).

        Args:
            indices: 1-D integer indices; repeats are allowed.
        """
        idx = torch.as_tensor(indices, dtype=torch.long, device=self.positions.device).reshape(-1)
        return Frame(
            positions=self.positions.index_select(0, idx),
            scales=self.scales.index_select(0, idx),
            rotations=self.rotations.index_select(0, idx),
            colors=self.colors.index_select(0, idx),
            opacities=self.opacities.index_select(0, idx),
        )

    def point(self, index: int) -> SplatPoint:
        return SplatPoint(
            position=tuple(self.positions[index].tolist()),
            scale=tuple(self.scales[index].tolist()),
            rotation=tuple(self.rotations[index].tolist()),
            color=tuple(self.colors[index].tolist()),
            opacity=float(self.opacities[index]),
        )

    def points(self) -> List[SplatPoint]:
        return [self.point(i) for i in range(self.count)]

    def replace(self, **channels: torch.Tensor) -> Self:
        """Return a copy with some channels swapped for new tensors."""
        values = {
            "positions": self.positions,
            "scales": self.scales,
            "rotations": self.rotations,
            "colors": self.colors,
            "opacities": self.opacities,
        }
        values.update(channels)
        return Frame(**values)

    def clone(self) -> Self:
        return Frame(
            positions=self.positions.clone(),
            scales=self.scales.clone(),
            rotations=self.rotations.clone(),
            colors=self.colors.clone(),
            opacities=self.opacities.clone(),
        )

    def to(self, device) -> Self:
        """
        Move the Frame to the specified device.

        Args:
            device: The target device (e.g., 'cpu', 'cuda', torch.device).

        Returns:
            A new Frame on the target device.
        """
        return Frame(
            positions=self.positions.to(device),
            scales=self.scales.to(device),
            rotations=self.rotations.to(device),
            colors=self.colors.to(device),
            opacities=self.opacities.to(device),
        )

    def __repr__(self) -> str:
        return f"Frame(count={self.count})"
