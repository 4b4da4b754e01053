from abc import ABC, abstractmethod
from typing import Iterable, Iterator, Self

import torch

from .deserializer import AbstractDeserializer
from .frame import Frame
from .payload import Payload


class AbstractDecoder(ABC):
    """
    Abstract base class for frame sequence decoders.

    Decoding runs in two stages:
    1. Deserialize bytes to Payload objects (via the deserializer)
    2. Unpack Payloads to frames (via `unpack`)

    Subclasses implement `unpack` and `flush_unpack` and provide a
    deserializer.
    """

    def __init__(
        self,
        deserializer: AbstractDeserializer,
        payload_device: str | torch.device | None = None,
        device: str | torch.device | None = None,
    ):
        """
        Initialize the decoder.

        Args:
            deserializer: The deserializer converting bytes to Payloads.
            payload_device: The target device for Payloads before unpacking.
                If None, no device transfer is performed.
            device: The target device for decoded frames. If None, no device
                transfer is performed.
        """
        self._deserializer = deserializer
        self._payload_device = payload_device
        self._device = device

    def to(self, device: str | torch.device | None) -> Self:
        """Set the device for decoded frames.

        Args:
            device: The device to move frames to after decoding, or None.

        Returns:
            self for method chaining.
        """
        self._device = device
        return self

    @abstractmethod
    def unpack(self, payload: Payload) -> Iterator[Frame]:
        """
        Unpack frame(s) from a Payload.

        Yields:
            Unpacked Frames. May yield zero, one, or multiple frames.
        """
        pass

    @abstractmethod
    def flush_unpack(self) -> Iterator[Frame]:
        """
        Flush any remaining buffered frames from the unpacking stage.

        Yields:
            Remaining buffered Frames.
        """
        pass

    def _place(self, frame: Frame) -> Frame:
        # Frames are immutable, so moving builds a new one
        if self._device is not None:
            return frame.to(self._device)
        return frame

    def _unpack_all(self, payloads: Iterable[Payload]) -> Iterator[Frame]:
        for payload in payloads:
            if self._payload_device is not None:
                payload = payload.to(self._payload_device)
            for frame in self.unpack(payload):
                yield self._place(frame)

    def decode_frame(self, data: bytes) -> Iterator[Frame]:
        """
        Decode a single chunk of compressed data.

        Yields:
            Every Frame completed by this chunk.
        """
        yield from self._unpack_all(self._deserializer.deserialize_frame(data))

    def flush(self) -> Iterator[Frame]:
        """
        Flush both the deserialization and the unpacking stage.

        Yields:
            Remaining buffered Frames.
        """
        yield from self._unpack_all(self._deserializer.flush())

        for frame in self.flush_unpack():
            yield self._place(frame)

    def decode_stream(self, stream: Iterable[bytes]) -> Iterator[Frame]:
        """
        Decode a stream of byte chunks into Frames, flushing at the end.

        Args:
            stream: Byte chunks, in order.

        Yields:
            Decoded Frames.
        """
        for data in stream:
            yield from self.decode_frame(data)

        yield from self.flush()
