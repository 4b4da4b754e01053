"""
PLY splat writer.

Writes frames with float32 position/scale/rotation/opacity properties and
8-bit colors, readable by the decoder and by common splat viewers.
"""

import os

import numpy as np

from ..errors import StorageError
from ..frame import Frame

_VERTEX_DTYPE = np.dtype([
    ("x", "<f4"), ("y", "<f4"), ("z", "<f4"),
    ("scale_0", "<f4"), ("scale_1", "<f4"), ("scale_2", "<f4"),
    ("rot_0", "<f4"), ("rot_1", "<f4"), ("rot_2", "<f4"), ("rot_3", "<f4"),
    ("red", "u1"), ("green", "u1"), ("blue", "u1"),
    ("opacity", "<f4"),
])

_PLY_TYPE_NAMES = {"f": "float", "u": "uchar"}


def _header(count: int, binary: bool) -> bytes:
    lines = [
        "ply",
        f"format {'binary_little_endian' if binary else 'ascii'} 1.0",
        "comment splatengine",
        f"element vertex {count}",
    ]
    for name in _VERTEX_DTYPE.names:
        lines.append(f"property {_PLY_TYPE_NAMES[_VERTEX_DTYPE[name].kind]} {name}")
    lines.append("end_header")
    return ("\n".join(lines) + "\n").encode("ascii")


def _records(frame: Frame) -> np.ndarray:
    records = np.empty(frame.count, dtype=_VERTEX_DTYPE)
    positions = frame.positions.detach().cpu().numpy()
    scales = frame.scales.detach().cpu().numpy()
    rotations = frame.rotations.detach().cpu().numpy()
    colors = np.rint(np.clip(frame.colors.detach().cpu().numpy(), 0.0, 1.0) * 255.0).astype(np.uint8)

    for i, name in enumerate(("x", "y", "z")):
        records[name] = positions[:, i]
    for i in range(3):
        records[f"scale_{i}"] = scales[:, i]
    for i in range(4):
        records[f"rot_{i}"] = rotations[:, i]
    for i, name in enumerate(("red", "green", "blue")):
        records[name] = colors[:, i]
    records["opacity"] = frame.opacities.detach().cpu().numpy()
    return records


def encode(frame: Frame, binary: bool = True) -> bytes:
    """
    Encode a frame as a PLY payload.

    Args:
        frame: The frame to encode.
        binary: Write a binary little-endian body if True, ASCII otherwise.

    Returns:
        The PLY bytes.
    """
    records = _records(frame)
    header = _header(frame.count, binary)
    if binary:
        return header + records.tobytes()

    lines = []
    for record in records:
        values = [
            f"{float(record[name]):.9g}" if _VERTEX_DTYPE[name].kind == "f" else str(int(record[name]))
            for name in _VERTEX_DTYPE.names
        ]
        lines.append(" ".join(values))
    body = "\n".join(lines) + ("\n" if lines else "")
    return header + body.encode("ascii")


def write_file(path: str | os.PathLike, frame: Frame, binary: bool = True) -> None:
    """
    Write a frame to a PLY file, creating parent directories as needed.

    Raises:
        StorageError: If the file cannot be written.
    """
    try:
        parent_dir = os.path.dirname(os.fspath(path))
        if parent_dir and not os.path.exists(parent_dir):
            os.makedirs(parent_dir, exist_ok=True)
        with open(path, "wb") as f:
            f.write(encode(frame, binary=binary))
    except OSError as e:
        raise StorageError(f"Cannot write PLY file {path}: {e}") from e
