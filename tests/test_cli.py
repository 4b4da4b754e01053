"""Tests for the command handlers and the hydra entry point."""

import os
import sys

import pytest
from omegaconf import OmegaConf

from splatengine.__main__ import (
    CompressConfig,
    DecompressConfig,
    LODConfig,
    PackConfig,
    PlayConfig,
    UnpackConfig,
    do_compress,
    do_decompress,
    do_lod,
    do_pack,
    do_play,
    do_unpack,
    main,
)
from splatengine.errors import StorageError
from splatengine.io import load_frame
from splatengine.ply import write_file

from conftest import make_frame


def _config(cls, **values):
    cfg = OmegaConf.structured(cls)
    return OmegaConf.merge(cfg, values)


@pytest.fixture
def frames_dir(tmp_path):
    directory = tmp_path / "frames"
    for i in range(3):
        write_file(directory / f"frame_{i:04d}.ply", make_frame(20 + i, seed=i))
    return directory


def test_compress_and_decompress(tmp_path, frames_dir):
    codec_path = str(tmp_path / "frame.codec")
    ply_path = str(tmp_path / "restored.ply")
    do_compress(_config(CompressConfig, input=str(frames_dir / "frame_0000.ply"), output=codec_path))
    do_decompress(_config(DecompressConfig, input=codec_path, output=ply_path, binary=False))
    assert load_frame(ply_path).count == 20


def test_compress_refuses_existing_output(tmp_path, frames_dir):
    existing = tmp_path / "frame.codec"
    existing.write_bytes(b"keep")
    with pytest.raises(StorageError):
        do_compress(_config(CompressConfig, input=str(frames_dir / "frame_0000.ply"), output=str(existing)))
    assert existing.read_bytes() == b"keep"


def test_lod(tmp_path, frames_dir):
    output_dir = tmp_path / "lods"
    do_lod(_config(LODConfig, input=str(frames_dir / "frame_0002.ply"), output_dir=str(output_dir), levels=3, method="uniform"))
    counts = [load_frame(output_dir / f"lod_{i}.ply").count for i in range(3)]
    assert counts == [22, 15, 10]


def test_pack_and_unpack(tmp_path, frames_dir):
    archive = str(tmp_path / "seq.gssa")
    decoded_dir = str(tmp_path / "decoded")
    do_pack(_config(PackConfig, input={"directory": str(frames_dir)}, output={"path": archive}, codec={"zstd_level": 3}))
    do_unpack(_config(UnpackConfig, input={"path": archive}, output={"directory": decoded_dir}))
    names = sorted(os.listdir(decoded_dir))
    assert names == ["frame_0000.ply", "frame_0001.ply", "frame_0002.ply"]
    assert load_frame(os.path.join(decoded_dir, names[2])).count == 22


def test_play(frames_dir):
    do_play(_config(
        PlayConfig,
        player={"input_dir": str(frames_dir), "fps": 30.0},
        cache={"capacity": 2, "loop": True},
        duration=0.5,
    ))


def test_main_runs_command(tmp_path, frames_dir, monkeypatch):
    monkeypatch.chdir(tmp_path)
    source = str(frames_dir / "frame_0001.ply")
    output = str(tmp_path / "out.codec")
    monkeypatch.setattr(sys, "argv", ["splatengine", "compress", f"input='{source}'", f"output='{output}'"])
    main()
    assert load_frame(output).count == 21


def test_main_unknown_command(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["splatengine", "transcode"])
    with pytest.raises(SystemExit):
        main()
