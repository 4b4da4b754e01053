from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Self


@dataclass
class Payload(ABC):
    """
    Abstract base class for packed frame data.

    A Payload is the intermediate form of a frame between packing and
    serialization: an encoder packs a Frame into Payloads, a serializer turns
    them into bytes, and the reverse path rebuilds them on decode.
    """

    @abstractmethod
    def to(self, device) -> Self:
        """
        Move the Payload to the specified device for further processing.

        Args:
            device: The target device (e.g., 'cpu', 'cuda', torch.device).

        Returns:
            A Payload on the target device, or self when the payload holds
            host-only data.
        """
        pass
