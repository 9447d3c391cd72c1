"""Synthetic camera backend.

Generates gradient frames without hardware. The station runs on it with
``--backend mock`` and the test-suite uses it to observe how many streams are
open at any moment.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Collection, List, Optional, Tuple

import numpy as np

from garment_capture.core.logging_utils import LoggerLike, ensure_structured_logger

from ..capabilities import EMPTY_CAPABILITIES, ILLUMINATION, CapabilitySet, torch_control
from ..errors import DeviceLost, DeviceUnavailable
from ..state import FacingDirection, Resolution, StreamRequest
from .base import CameraBackend, Frame, StreamHandle

ALL_FACINGS = frozenset(FacingDirection)


class MockStream(StreamHandle):
    def __init__(
        self,
        backend: "MockCameraBackend",
        request: StreamRequest,
        resolution: Resolution,
        *,
        has_torch: bool,
    ) -> None:
        super().__init__(request.facing, resolution)
        self._backend = backend
        self._has_torch = has_torch
        self._closed = False
        self._frame_number = 0
        # Drivers without in-place torch control latch the state at open time.
        self.torch_on = bool(has_torch and not backend.torch_in_place and request.illumination)

    @property
    def closed(self) -> bool:
        return self._closed

    async def read_frame(self) -> Frame:
        if self._closed:
            raise DeviceLost(f"mock {self.facing.value} camera is closed")
        await asyncio.sleep(self._backend.frame_interval)
        limit = self._backend.fail_reads_after
        if limit is not None and self._frame_number >= limit:
            raise DeviceLost(f"mock {self.facing.value} camera stopped delivering frames")
        self._frame_number += 1
        return Frame(
            data=self._backend.render(self.resolution, self._frame_number, self.facing),
            timestamp=time.monotonic(),
            frame_number=self._frame_number,
        )

    async def query_capabilities(self) -> CapabilitySet:
        self._backend.capability_queries += 1
        if not self._has_torch:
            return EMPTY_CAPABILITIES
        return CapabilitySet(
            [torch_control(current_value=self.torch_on, in_place=self._backend.torch_in_place)]
        )

    async def set_control(self, name: str, value: Any) -> bool:
        if self._closed or name != ILLUMINATION or not self._has_torch:
            return False
        if not self._backend.torch_in_place or self._backend.refuse_controls:
            return False
        self.torch_on = bool(value)
        self._backend.events.append(("torch", self.facing, self.torch_on))
        return True

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._backend._released(self)


class MockCameraBackend(CameraBackend):
    """In-memory backend with configurable hardware."""

    name = "mock"

    def __init__(
        self,
        *,
        available: Collection[FacingDirection] = ALL_FACINGS,
        torch: Collection[FacingDirection] = (FacingDirection.REAR,),
        torch_in_place: bool = True,
        refuse_controls: bool = False,
        granted_resolution: Optional[Resolution] = None,
        open_delay: float = 0.0,
        fps: float = 30.0,
        fail_reads_after: Optional[int] = None,
        logger: LoggerLike = None,
    ) -> None:
        self.available = set(available)
        self.torch = set(torch)
        self.torch_in_place = torch_in_place
        self.refuse_controls = refuse_controls
        self.granted_resolution = granted_resolution
        self.open_delay = open_delay
        self.frame_interval = 1.0 / fps if fps > 0 else 0.0
        self.fail_reads_after = fail_reads_after
        self._logger = ensure_structured_logger(logger, fallback_name=__name__)

        self.events: List[Tuple[Any, ...]] = []
        self.open_streams: List[MockStream] = []
        self.max_concurrent = 0
        self.opened_total = 0
        self.capability_queries = 0

    async def acquire(self, request: StreamRequest) -> MockStream:
        self.events.append(("request", request.facing))
        if self.open_delay:
            await asyncio.sleep(self.open_delay)
        if request.facing not in self.available:
            self.events.append(("failed", request.facing))
            raise DeviceUnavailable(f"No {request.facing.value} camera available")

        resolution = self.granted_resolution or request.resolution
        stream = MockStream(self, request, resolution, has_torch=request.facing in self.torch)
        self.open_streams.append(stream)
        self.opened_total += 1
        self.max_concurrent = max(self.max_concurrent, len(self.open_streams))
        self.events.append(("open", request.facing))
        self._logger.debug("Opened mock %s camera at %dx%d", request.facing.value, *resolution)
        return stream

    def _released(self, stream: MockStream) -> None:
        if stream in self.open_streams:
            self.open_streams.remove(stream)
        self.events.append(("close", stream.facing))
        self._logger.debug("Released mock %s camera", stream.facing.value)

    def describe(self, facing: FacingDirection) -> Optional[str]:
        return f"mock:{facing.value}"

    @staticmethod
    def render(resolution: Resolution, frame_number: int, facing: FacingDirection) -> np.ndarray:
        width, height = resolution
        ramp = np.linspace(0, 255, num=width, dtype=np.float32)
        frame = np.empty((height, width, 3), dtype=np.uint8)
        frame[..., 0] = ramp.astype(np.uint8)
        frame[..., 1] = (frame_number * 7) % 256
        frame[..., 2] = 200 if facing is FacingDirection.REAR else 60
        return frame


__all__ = ["MockCameraBackend", "MockStream"]
