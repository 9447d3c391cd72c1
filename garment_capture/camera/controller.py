"""Camera session controller.

Owns the single live camera stream of a capture session:

- ``start``/``switch_facing`` release any open stream before acquiring the
  next one, so at most one device is ever held.
- ``set_illumination`` drives the torch in place when the track allows it and
  falls back to re-acquiring the stream with the new torch request otherwise.
- ``capture`` freezes the latest previewed frame into a PNG still.

Reconfigurations serialize on one ``asyncio.Lock``; a request issued while
another is in flight waits for it to settle first. Every acquired stream is
entered through its own ``AsyncExitStack`` together with the frame pump that
feeds the preview, so closing that stack is the only release path.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Optional

import numpy as np

from garment_capture.core.logging_utils import LoggerLike, ensure_structured_logger

from .backends.base import CameraBackend, Frame, StreamHandle
from .capabilities import EMPTY_CAPABILITIES, ILLUMINATION, CapabilitySet
from .errors import CameraError, CapabilityUnsupported, DeviceLost, DeviceUnavailable, NoActiveStream
from .snapshot import StillImage, encode_still
from .state import CameraSession, FacingDirection, Resolution, SessionStatus, StreamRequest

DEFAULT_RESOLUTION: Resolution = (1280, 720)


class CameraSessionController:
    """Lifecycle of exactly one camera stream."""

    def __init__(
        self,
        backend: CameraBackend,
        *,
        resolution: Resolution = DEFAULT_RESOLUTION,
        facing: FacingDirection = FacingDirection.REAR,
        logger: LoggerLike = None,
    ) -> None:
        self._backend = backend
        self._resolution = resolution
        self._logger = ensure_structured_logger(logger, fallback_name=__name__)
        self._session = CameraSession(facing=facing)
        self._lock = asyncio.Lock()

        self._scope: Optional[contextlib.AsyncExitStack] = None
        self._stream: Optional[StreamHandle] = None
        self._capabilities: CapabilitySet = EMPTY_CAPABILITIES
        self._latest_frame: Optional[Frame] = None
        self._pump_task: Optional[asyncio.Task] = None
        self._loss_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Introspection

    @property
    def session(self) -> CameraSession:
        return self._session

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def facing(self) -> FacingDirection:
        return self._session.facing

    @property
    def illumination_requested(self) -> bool:
        return self._session.illumination_requested

    @property
    def illumination_supported(self) -> bool:
        return self._session.illumination_supported

    @property
    def is_open(self) -> bool:
        return self._session.is_open

    @property
    def capabilities(self) -> CapabilitySet:
        return self._capabilities

    @property
    def busy(self) -> bool:
        """True while a reconfiguration holds the lock."""
        return self._lock.locked()

    @property
    def latest_frame(self) -> Optional[np.ndarray]:
        frame = self._latest_frame
        return None if frame is None else frame.data

    # ------------------------------------------------------------------
    # Operations

    async def start(self, facing: Optional[FacingDirection] = None) -> CameraSession:
        """Open a stream for ``facing`` (default: the current direction)."""

        async with self._lock:
            if facing is not None:
                self._update(facing=facing)
            await self._reacquire()
            return self._session

    async def switch_facing(self) -> CameraSession:
        async with self._lock:
            target = self._session.facing.toggled()
            self._logger.info("Switching camera %s -> %s", self._session.facing.value, target.value)
            self._update(facing=target)
            await self._reacquire()
            return self._session

    async def set_illumination(self, on: bool) -> CameraSession:
        on = bool(on)
        async with self._lock:
            capabilities = self._capabilities
            if not capabilities.illumination:
                raise CapabilityUnsupported(
                    f"The {self._session.facing.value} camera has no torch control"
                    if self._stream is not None
                    else "No open camera track to drive the torch"
                )

            stream = self._stream
            if capabilities.illumination_in_place and stream is not None:
                if await stream.set_control(ILLUMINATION, on):
                    self._update(illumination_requested=on)
                    self._logger.info("Torch %s", "on" if on else "off")
                    return self._session
                self._logger.warning("Torch write refused by device, reopening stream instead")

            previous = self._session.illumination_requested
            self._update(illumination_requested=on)
            try:
                await self._reacquire()
            except CameraError:
                self._update(illumination_requested=previous)
                raise
            if not self._session.illumination_supported:
                self._update(illumination_requested=previous)
                raise CapabilityUnsupported("Torch control disappeared after reopening the camera")
            if self._session.illumination_requested != on:
                raise CapabilityUnsupported(f"The camera refused to turn the torch {'on' if on else 'off'}")
            self._logger.info("Torch %s (stream reopened)", "on" if on else "off")
            return self._session

    async def capture(self) -> StillImage:
        """Freeze the current preview frame at its native size."""

        stream = self._stream
        if stream is None or self._session.status is not SessionStatus.OPEN:
            raise NoActiveStream("Start the camera before capturing")

        frame = self._latest_frame
        if frame is None:
            try:
                frame = await stream.read_frame()
            except DeviceLost as exc:
                raise NoActiveStream(str(exc)) from exc

        image = await asyncio.to_thread(encode_still, frame.data)
        self._logger.info("Captured %dx%d still (%d bytes)", image.width, image.height, len(image.data))
        return image

    async def stop(self) -> None:
        """Release the stream. Calling it on a closed session does nothing."""

        async with self._lock:
            if self._scope is None:
                self._logger.debug("Stop requested but no stream is open")
                return
            await self._release()

    async def aclose(self) -> None:
        await self.stop()
        loss_task, self._loss_task = self._loss_task, None
        if loss_task is not None and not loss_task.done():
            await loss_task

    async def __aenter__(self) -> "CameraSessionController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Acquisition internals (lock held)

    async def _reacquire(self) -> None:
        await self._release()

        request = StreamRequest(
            facing=self._session.facing,
            resolution=self._resolution,
            illumination=self._session.illumination_requested,
        )
        self._update(status=SessionStatus.OPENING)
        device = self._backend.describe(request.facing) or request.facing.value
        self._logger.info("Opening %s camera (%s) at %dx%d", request.facing.value, device, *request.resolution)

        scope = contextlib.AsyncExitStack()
        try:
            stream = await scope.enter_async_context(self._backend.open(request))
            capabilities = await stream.query_capabilities()
            illumination = request.illumination
            if capabilities.illumination and capabilities.illumination_in_place:
                if not await stream.set_control(ILLUMINATION, request.illumination):
                    # Report what the device actually has, not what was asked for.
                    control = capabilities[ILLUMINATION]
                    illumination = control.current_value == control.on_value
                    self._logger.warning(
                        "Torch write refused by new stream; torch stays %s", "on" if illumination else "off"
                    )
            self._latest_frame = None
            self._pump_task = asyncio.create_task(
                self._pump_frames(stream), name=f"camera-preview-{request.facing.value}"
            )
            scope.push_async_callback(self._stop_pump)
        except BaseException as exc:
            await scope.aclose()
            self._update(status=SessionStatus.CLOSED, illumination_supported=False, resolution=None)
            if isinstance(exc, DeviceLost):
                self._logger.error("Camera %s failed while opening: %s", device, exc)
                raise DeviceUnavailable(str(exc)) from exc
            if isinstance(exc, DeviceUnavailable):
                self._logger.error("Camera %s unavailable: %s", device, exc)
            raise

        self._scope = scope
        self._stream = stream
        self._capabilities = capabilities
        self._update(
            status=SessionStatus.OPEN,
            illumination_requested=illumination,
            illumination_supported=capabilities.illumination,
            resolution=stream.resolution,
        )
        self._logger.info(
            "Camera %s open at %dx%d (torch %s)",
            device,
            *stream.resolution,
            "supported" if capabilities.illumination else "unsupported",
        )

    async def _release(self) -> None:
        scope, self._scope = self._scope, None
        stream, self._stream = self._stream, None
        self._capabilities = EMPTY_CAPABILITIES
        self._latest_frame = None
        try:
            if scope is not None:
                await scope.aclose()
                self._logger.info("Released %s camera", stream.facing.value if stream else "?")
        finally:
            self._update(status=SessionStatus.CLOSED, illumination_supported=False, resolution=None)

    # ------------------------------------------------------------------
    # Preview pump

    async def _pump_frames(self, stream: StreamHandle) -> None:
        while True:
            try:
                frame = await stream.read_frame()
            except DeviceLost as exc:
                self._logger.error("Camera stream lost: %s", exc)
                self._loss_task = asyncio.create_task(self._on_stream_lost(stream), name="camera-stream-lost")
                return
            self._latest_frame = frame

    async def _stop_pump(self) -> None:
        task, self._pump_task = self._pump_task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _on_stream_lost(self, stream: StreamHandle) -> None:
        async with self._lock:
            # A newer stream may already have replaced the lost one.
            if self._stream is stream:
                await self._release()

    def _update(self, **changes) -> None:
        previous = self._session.status
        self._session = self._session.with_changes(**changes)
        if self._session.status is not previous:
            self._logger.debug("State %s -> %s", previous.name, self._session.status.name)


__all__ = ["CameraSessionController", "DEFAULT_RESOLUTION"]
