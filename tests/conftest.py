"""
Shared fixtures for the splatengine test suite.
"""

import struct
import threading
import time

import numpy as np
import pytest
import torch

from splatengine.frame import Frame


def make_frame(count: int, seed: int = 0, extent: float = 10.0) -> Frame:
    """Random but valid frame with ``count`` points."""
    rng = np.random.default_rng(seed)
    return Frame.create(
        positions=rng.uniform(-extent, extent, size=(count, 3)),
        scales=rng.uniform(0.01, 0.5, size=(count, 3)),
        rotations=rng.normal(size=(count, 4)),
        colors=rng.uniform(0.0, 1.0, size=(count, 4)),
        opacities=rng.uniform(0.0, 1.0, size=count),
    )


def line_frame(count: int) -> Frame:
    """Points at (i, 0, 0), so a point's x coordinate is its source index."""
    positions = torch.zeros((count, 3))
    positions[:, 0] = torch.arange(count, dtype=torch.float32)
    return Frame.create(positions=positions)


def ascii_ply(properties, rows, vertex_count=None) -> bytes:
    """ASCII PLY payload with ``property <type> <name>`` lines for ``properties``."""
    vertex_count = len(rows) if vertex_count is None else vertex_count
    lines = ["ply", "format ascii 1.0", f"element vertex {vertex_count}"]
    lines += [f"property {prop_type} {name}" for prop_type, name in properties]
    lines.append("end_header")
    lines += [" ".join(str(v) for v in row) for row in rows]
    return ("\n".join(lines) + "\n").encode("ascii")


def binary_ply(properties, rows, vertex_count=None) -> bytes:
    """Binary little-endian PLY payload; ``properties`` pairs a struct code with a name."""
    vertex_count = len(rows) if vertex_count is None else vertex_count
    types = {"f": "float", "B": "uchar", "d": "double", "i": "int"}
    lines = ["ply", "format binary_little_endian 1.0", f"element vertex {vertex_count}"]
    lines += [f"property {types[code]} {name}" for code, name in properties]
    lines.append("end_header")
    record = struct.Struct("<" + "".join(code for code, _ in properties))
    body = b"".join(record.pack(*row) for row in rows)
    return ("\n".join(lines) + "\n").encode("ascii") + body


class CountingLoader:
    """
    Frame loader recording how often each index is decoded.

    Args:
        frames: Frames served by index.
        delay: Seconds each decode sleeps, to widen race windows.
        failing: Indices whose decode raises ``error``.
    """

    def __init__(self, frames, delay: float = 0.0, failing=(), error=None):
        self.frames = list(frames)
        self.delay = delay
        self.failing = set(failing)
        self.error = error or OSError("unreadable frame")
        self.calls = {}
        self._lock = threading.Lock()

    def __call__(self, index: int) -> Frame:
        with self._lock:
            self.calls[index] = self.calls.get(index, 0) + 1
        if self.delay:
            time.sleep(self.delay)
        if index in self.failing:
            raise self.error
        return self.frames[index]

    @property
    def total_calls(self) -> int:
        with self._lock:
            return sum(self.calls.values())


@pytest.fixture
def frame():
    return make_frame(200, seed=1)


@pytest.fixture
def small_frames():
    return [line_frame(i + 1) for i in range(10)]
