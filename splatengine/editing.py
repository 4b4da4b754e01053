"""
Rigid and appearance edits of whole frames.

Quaternions use (x, y, z, w) order throughout. Every edit returns a new Frame.
"""

from typing import Optional, Sequence

import torch

from .errors import InvalidInput
from .frame import Bounds, Frame, normalize_quaternions

# Smallest scale normalize_scale accepts
MIN_TARGET_SCALE = 1e-4


def _require(frame: Optional[Frame]) -> Frame:
    if frame is None:
        raise InvalidInput("Frame must be provided")
    return frame


def _vector(values: Sequence[float], size: int, name: str, like: torch.Tensor) -> torch.Tensor:
    tensor = torch.as_tensor(values, dtype=like.dtype, device=like.device).reshape(-1)
    if tensor.shape[0] != size:
        raise InvalidInput(f"{name} must have {size} components, got {tensor.shape[0]}")
    return tensor


def quaternion_multiply(a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
    """Hamilton product ``a * b`` of (..., 4) quaternions in (x, y, z, w) order."""
    ax, ay, az, aw = a.unbind(-1)
    bx, by, bz, bw = b.unbind(-1)
    return torch.stack([
        aw * bx + ax * bw + ay * bz - az * by,
        aw * by - ax * bz + ay * bw + az * bx,
        aw * bz + ax * by - ay * bx + az * bw,
        aw * bw - ax * bx - ay * by - az * bz,
    ], dim=-1)


def rotate_vectors(q: torch.Tensor, vectors: torch.Tensor) -> torch.Tensor:
    """Rotate (N, 3) vectors by the unit quaternion ``q`` of shape (4,)."""
    u = q[:3].expand_as(vectors)
    w = q[3]
    t = 2.0 * torch.linalg.cross(u, vectors, dim=-1)
    return vectors + w * t + torch.linalg.cross(u, t, dim=-1)


def translate(frame: Frame, offset: Sequence[float]) -> Frame:
    frame = _require(frame)
    offset = _vector(offset, 3, "offset", frame.positions)
    return frame.clone().replace(positions=frame.positions + offset)


def scale(frame: Frame, factors: Sequence[float]) -> Frame:
    """Multiply positions and per-axis scales by ``factors`` (3 components)."""
    frame = _require(frame)
    factors = _vector(factors, 3, "factors", frame.positions)
    return frame.clone().replace(
        positions=frame.positions * factors,
        scales=frame.scales * factors,
    )


def rotate(frame: Frame, rotation: Sequence[float]) -> Frame:
    """
    Rotate a frame about the origin.

    Args:
        frame: The source frame.
        rotation: Quaternion (x, y, z, w); normalized before use.

    Returns:
        A frame with rotated positions and orientations ``rotation * q``.
    """
    frame = _require(frame)
    q = normalize_quaternions(_vector(rotation, 4, "rotation", frame.rotations).unsqueeze(0))[0]
    rotations = quaternion_multiply(q.expand_as(frame.rotations), frame.rotations)
    return frame.clone().replace(
        positions=rotate_vectors(q, frame.positions),
        rotations=normalize_quaternions(rotations),
    )


def tint(frame: Frame, color: Sequence[float]) -> Frame:
    """Multiply colors by an RGBA (or RGB) tint, clamped to [0, 1]."""
    frame = _require(frame)
    color = list(color)
    if len(color) == 3:
        color.append(1.0)
    color = _vector(color, 4, "color", frame.colors)
    return frame.clone().replace(colors=(frame.colors * color).clamp(0.0, 1.0))


def normalize_scale(frame: Frame, target_scale: float) -> Frame:
    """
    Rescale every splat so its scale vector has magnitude ``target_scale``.

    Splats with a zero scale become ``target_scale`` on every axis. The target
    is raised to at least 1e-4.
    """
    frame = _require(frame)
    target_scale = max(MIN_TARGET_SCALE, float(target_scale))
    magnitudes = frame.scales.norm(dim=-1, keepdim=True)
    scaled = frame.scales * (target_scale / magnitudes.clamp_min(1e-12))
    scales = torch.where(magnitudes > 0, scaled, torch.full_like(frame.scales, target_scale))
    return frame.clone().replace(scales=scales)


def bounds_with_extents(frame: Frame) -> Bounds:
    """Bounds of the frame including each splat's per-axis extent."""
    frame = _require(frame)
    return Bounds.of(frame.positions, frame.scales)


def normalize_opacity(frame: Frame, target_max: float = 1.0) -> Frame:
    """
    Rescale opacities so the largest equals ``target_max``, clamped to [0, 1].

    A frame whose opacities are all zero is returned unchanged.
    """
    frame = _require(frame)
    if not target_max > 0:
        raise InvalidInput(f"target_max must be positive, got {target_max}")
    peak = float(frame.opacities.max()) if frame.count else 0.0
    if peak <= 0.0:
        return frame.clone()
    return frame.clone().replace(opacities=(frame.opacities * (target_max / peak)).clamp(0.0, 1.0))


def smooth_positions(frame: Frame, smoothing: float) -> Frame:
    """Pull positions toward the origin by ``smoothing`` (clamped to [0, 1])."""
    frame = _require(frame)
    smoothing = min(max(float(smoothing), 0.0), 1.0)
    return frame.clone().replace(positions=frame.positions * (1.0 - smoothing))
