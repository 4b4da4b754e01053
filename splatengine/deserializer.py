from abc import ABC, abstractmethod
from typing import Iterator

from .payload import Payload


class AbstractDeserializer(ABC):
    """
    Abstract base class for deserializing bytes to Payload objects.

    Subclasses must implement `deserialize_frame` and `flush`.
    """

    @abstractmethod
    def deserialize_frame(self, data: bytes) -> Iterator[Payload]:
        """
        Deserialize a chunk of bytes to Payload objects.

        Chunks may split payloads at arbitrary byte boundaries; incomplete
        data is buffered until the next call.

        Args:
            data: A chunk of serialized data.

        Yields:
            Every Payload completed by this chunk.
        """
        pass

    @abstractmethod
    def flush(self) -> Iterator[Payload]:
        """
        Flush any remaining buffered data.

        Must be called once after the last chunk. Implementations raise if
        the buffered data does not form complete payloads.

        Yields:
            Remaining buffered Payload instances.
        """
        pass
