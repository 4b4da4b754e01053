"""
Frame files and frame sequences on disk.

A sequence is a directory of ``.ply`` and/or ``.codec`` files played in
byte-wise ascending order of their file names.
"""

import logging
import os
from typing import Iterable, Iterator, List, Sequence, Tuple

from .. import codec, ply
from ..errors import EmptySequenceError, InvalidInput, StorageError
from ..frame import Frame

logger = logging.getLogger(__name__)

PLY_SUFFIX = ".ply"
CODEC_SUFFIX = ".codec"
FRAME_SUFFIXES: Tuple[str, ...] = (PLY_SUFFIX, CODEC_SUFFIX)


def _suffix(path: str | os.PathLike) -> str:
    return os.path.splitext(os.fspath(path))[1].lower()


def list_frame_files(
    directory: str | os.PathLike,
    suffixes: Sequence[str] = FRAME_SUFFIXES,
) -> List[str]:
    """
    List the frame files of a directory.

    Args:
        directory: Directory to scan (not recursive).
        suffixes: Accepted file suffixes, compared case-insensitively.

    Returns:
        Full paths sorted by byte-wise ascending file name.

    Raises:
        StorageError: If the directory cannot be listed.
    """
    suffixes = tuple(s.lower() for s in suffixes)
    try:
        names = os.listdir(directory)
    except OSError as e:
        raise StorageError(f"Cannot list frame directory {directory}: {e}") from e

    names = [
        name for name in names
        if _suffix(name) in suffixes and os.path.isfile(os.path.join(directory, name))
    ]
    names.sort(key=os.fsencode)
    return [os.path.join(os.fspath(directory), name) for name in names]


def load_frame(path: str | os.PathLike) -> Frame:
    """
    Load one frame by file type: ``.ply`` is decoded, ``.codec`` is loaded
    and decompressed.

    Raises:
        InvalidInput: For an unsupported suffix.
        StorageError: If the file is missing or unreadable.
    """
    suffix = _suffix(path)
    if suffix == PLY_SUFFIX:
        frame, _ = ply.decode_file(path)
        return frame
    if suffix == CODEC_SUFFIX:
        return codec.decompress(codec.load(path))
    raise InvalidInput(f"Unsupported frame file type '{suffix}': {path}")


def save_frame(path: str | os.PathLike, frame: Frame, overwrite: bool = False) -> None:
    """
    Save one frame by file type: ``.ply`` is written as binary PLY, ``.codec``
    is compressed.

    Raises:
        InvalidInput: For an unsupported suffix.
        StorageError: If the file exists and ``overwrite`` is False, or it
            cannot be written.
    """
    suffix = _suffix(path)
    if suffix not in FRAME_SUFFIXES:
        raise InvalidInput(f"Unsupported frame file type '{suffix}': {path}")
    if not overwrite and os.path.exists(path):
        raise StorageError(f"File already exists: {path}")
    if suffix == PLY_SUFFIX:
        ply.write_file(path, frame)
    else:
        codec.save(codec.compress(frame), path)


class FrameSequence:
    """
    Ordered, indexable view of the frame files in a directory.

    Example:
        sequence = FrameSequence("data/frames")
        frame = sequence.load(0)
    """

    def __init__(self, directory: str | os.PathLike, suffixes: Sequence[str] = FRAME_SUFFIXES):
        """
        Raises:
            StorageError: If the directory cannot be listed.
            EmptySequenceError: If it holds no frame files.
        """
        self.directory = os.fspath(directory)
        self.paths = list_frame_files(directory, suffixes)
        if not self.paths:
            raise EmptySequenceError(f"No frame files found in {self.directory}")

    def __len__(self) -> int:
        return len(self.paths)

    def load(self, index: int) -> Frame:
        """
        Load frame ``index``.

        Raises:
            InvalidInput: If ``index`` is out of range.
        """
        if not 0 <= index < len(self.paths):
            raise InvalidInput(f"Frame index {index} out of range [0, {len(self.paths)})")
        return load_frame(self.paths[index])

    def __iter__(self) -> Iterator[Frame]:
        for index in range(len(self.paths)):
            yield self.load(index)

    def __repr__(self) -> str:
        return f"FrameSequence({self.directory!r}, frames={len(self.paths)})"


class FrameReader:
    """
    Reader for frames from a directory, in byte-wise file name order.

    Example:
        reader = FrameReader("data/frames")
        for frame in reader.read():
            process(frame)
    """

    def __init__(self, directory: str, suffixes: Sequence[str] = FRAME_SUFFIXES):
        self._directory = directory
        self._suffixes = tuple(suffixes)

    def read(self) -> Iterator[Frame]:
        """Read every frame of the directory."""
        for path in FrameSequence(self._directory, self._suffixes).paths:
            logger.debug(f"Reading frame {path}")
            yield load_frame(path)


class FrameWriter:
    """
    Writer for frames to numbered files in a directory.

    Example:
        writer = FrameWriter("output", name_format="frame_{:04d}.ply")
        writer.write(frame_iterator)
    """

    def __init__(self, directory: str, name_format: str = "frame_{:04d}.ply", start_index: int = 0):
        self._directory = directory
        self._name_format = name_format
        self._start_index = start_index

    def write(self, frames: Iterable[Frame]) -> List[str]:
        """
        Write frames, refusing to overwrite existing files.

        Returns:
            The paths written, in order.
        """
        written = []
        for index, frame in enumerate(frames, start=self._start_index):
            path = os.path.join(self._directory, self._name_format.format(index))
            save_frame(path, frame)
            written.append(path)
        return written
