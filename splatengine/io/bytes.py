"""
Chunked binary file reader and writer.
"""

import os
from typing import Iterable, Iterator

from ..errors import StorageError


class BytesReader:
    """
    Reader yielding a file's bytes in fixed-size chunks.

    Example:
        reader = BytesReader("data/sequence.gssa")
        for chunk in reader.read():
            process(chunk)
    """

    # Default chunk size for reading (64KB)
    DEFAULT_CHUNK_SIZE = 64 * 1024

    def __init__(self, path: str, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize the bytes reader.

        Args:
            path: Path to the file to read.
            chunk_size: Size of each chunk to yield in bytes. Default is 64KB.
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._path = path
        self._chunk_size = chunk_size

    def read(self) -> Iterator[bytes]:
        """
        Read the file chunk by chunk.

        Yields:
            bytes chunks from the file.

        Raises:
            StorageError: If the file does not exist or cannot be read.
        """
        if not os.path.exists(self._path):
            raise StorageError(f"File not found: {self._path}")

        try:
            with open(self._path, "rb") as f:
                while True:
                    chunk = f.read(self._chunk_size)
                    if not chunk:
                        break
                    yield chunk
        except OSError as e:
            raise StorageError(f"Cannot read {self._path}: {e}") from e


class BytesWriter:
    """
    Writer storing an iterable of byte chunks in a new file.

    Example:
        writer = BytesWriter("output/sequence.gssa")
        writer.write(bytes_iterator)
    """

    def __init__(self, path: str):
        """
        Initialize the bytes writer.

        Args:
            path: Path to the file to write.
        """
        self._path = path

    def write(self, data: Iterable[bytes]) -> int:
        """
        Write byte chunks to the file.

        Args:
            data: An iterable yielding bytes chunks to write.

        Returns:
            Total number of bytes written.

        Raises:
            StorageError: If the target file already exists or cannot be written.
        """
        # Check if file exists before writing
        if os.path.exists(self._path):
            raise StorageError(f"File already exists: {self._path}")

        total = 0
        try:
            parent_dir = os.path.dirname(self._path)
            if parent_dir and not os.path.exists(parent_dir):
                os.makedirs(parent_dir, exist_ok=True)

            with open(self._path, "wb") as f:
                for chunk in data:
                    f.write(chunk)
                    total += len(chunk)
        except StorageError:
            raise
        except OSError as e:
            raise StorageError(f"Cannot write {self._path}: {e}") from e
        return total
