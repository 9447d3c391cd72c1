"""Backend contract shared by every camera implementation."""

from __future__ import annotations

import contextlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import numpy as np

from ..capabilities import CapabilitySet
from ..state import FacingDirection, Resolution, StreamRequest


@dataclass(slots=True)
class Frame:
    data: np.ndarray
    timestamp: float  # monotonic seconds
    frame_number: int

    @property
    def size(self) -> Resolution:
        height, width = self.data.shape[:2]
        return int(width), int(height)


class StreamHandle(ABC):
    """One acquired camera stream.

    Handles are created by :meth:`CameraBackend.acquire` already started and
    must tolerate repeated :meth:`close` calls.
    """

    def __init__(self, facing: FacingDirection, resolution: Resolution) -> None:
        self.facing = facing
        self.resolution = resolution

    @property
    @abstractmethod
    def closed(self) -> bool: ...

    @abstractmethod
    async def read_frame(self) -> Frame: ...

    @abstractmethod
    async def query_capabilities(self) -> CapabilitySet: ...

    @abstractmethod
    async def set_control(self, name: str, value: Any) -> bool:
        """Write a control on the live stream; False when the device refuses."""

    @abstractmethod
    async def close(self) -> None: ...


class CameraBackend(ABC):
    name: str = "abstract"

    @abstractmethod
    async def acquire(self, request: StreamRequest) -> StreamHandle:
        """Open and start a stream; raise ``DeviceUnavailable`` on failure."""

    @contextlib.asynccontextmanager
    async def open(self, request: StreamRequest) -> AsyncIterator[StreamHandle]:
        """Scoped acquisition: the stream is closed when the block exits."""
        handle = await self.acquire(request)
        try:
            yield handle
        finally:
            await handle.close()

    def describe(self, facing: FacingDirection) -> Optional[str]:
        """Human readable device name for ``facing`` (used in log lines)."""
        return None


__all__ = ["CameraBackend", "Frame", "StreamHandle"]
