from abc import ABC, abstractmethod
from typing import Iterable, Iterator

from .frame import Frame
from .payload import Payload
from .serializer import AbstractSerializer


class AbstractEncoder(ABC):
    """
    Abstract base class for frame sequence encoders.

    Encoding runs in two stages:
    1. Pack frames into Payload objects (via `pack`)
    2. Serialize Payloads to bytes (via the serializer)

    Subclasses implement `pack` and `flush_pack` and provide a serializer.
    """

    def __init__(self, serializer: AbstractSerializer, payload_device=None):
        """
        Initialize the encoder.

        Args:
            serializer: The serializer converting Payloads to bytes.
            payload_device: The target device for Payloads before
                serialization (e.g., 'cpu', 'cuda'). If None, no device
                transfer is performed.
        """
        self._serializer = serializer
        self._payload_device = payload_device

    @abstractmethod
    def pack(self, frame: Frame) -> Iterator[Payload]:
        """
        Pack a single frame into Payload objects.

        Args:
            frame: A Frame to pack.

        Yields:
            Packed Payload instances. May yield zero, one, or multiple
            payloads.
        """
        pass

    @abstractmethod
    def flush_pack(self) -> Iterator[Payload]:
        """
        Flush any remaining buffered payloads from the packing stage.

        Yields:
            Remaining buffered Payload instances.
        """
        pass

    def _serialize(self, payload: Payload) -> Iterator[bytes]:
        if self._payload_device is not None:
            payload = payload.to(self._payload_device)
        yield from self._serializer.serialize_frame(payload)

    def encode_frame(self, frame: Frame) -> Iterator[bytes]:
        """
        Encode a single frame.

        Yields:
            Encoded byte chunks. May yield zero, one, or multiple chunks.
        """
        for payload in self.pack(frame):
            yield from self._serialize(payload)

    def flush(self) -> Iterator[bytes]:
        """
        Flush both the packing and the serialization stage.

        Must be called once after the last frame has been encoded.

        Yields:
            Remaining buffered byte chunks.
        """
        for payload in self.flush_pack():
            yield from self._serialize(payload)

        yield from self._serializer.flush()

    def encode_stream(self, stream: Iterable[Frame]) -> Iterator[bytes]:
        """
        Encode a stream of frames, flushing at the end.

        Args:
            stream: Frames to encode, in order.

        Yields:
            Encoded bytes for each packed frame or flush operation.
        """
        for frame in stream:
            yield from self.encode_frame(frame)

        yield from self.flush()
