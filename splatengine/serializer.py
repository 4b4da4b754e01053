from abc import ABC, abstractmethod
from typing import Iterator

from .payload import Payload


class AbstractSerializer(ABC):
    """
    Abstract base class for serializing Payload objects to bytes.

    Subclasses must implement `serialize_frame` and `flush`.
    """

    @abstractmethod
    def serialize_frame(self, payload: Payload) -> Iterator[bytes]:
        """
        Serialize a single Payload object to bytes.

        Args:
            payload: A Payload instance to serialize.

        Yields:
            Serialized byte chunks. May yield zero, one, or multiple chunks.
        """
        pass

    @abstractmethod
    def flush(self) -> Iterator[bytes]:
        """
        Flush any remaining buffered data.

        Must be called once after the last payload has been serialized.

        Yields:
            Remaining buffered byte chunks.
        """
        pass
