"""USB/UVC camera backend using OpenCV for frames and v4l2-ctl for the torch."""

from __future__ import annotations

import asyncio
import concurrent.futures
import os
import re
import subprocess
import sys
import time
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

import cv2

from garment_capture.core.logging_utils import LoggerLike, ensure_structured_logger

from ..capabilities import EMPTY_CAPABILITIES, ILLUMINATION, CapabilitySet, ControlType, torch_control
from ..errors import DeviceLost, DeviceUnavailable
from ..state import FacingDirection, StreamRequest
from .base import CameraBackend, Frame, StreamHandle

DeviceRef = Union[int, str]

# v4l2 control name -> (on value, off value). flash_led_mode is the standard
# V4L2_CID_FLASH_LED_MODE menu (0 none, 1 flash, 2 torch); led1_mode is the
# UVC extension exposed by many webcams (0 off, 1 on).
DEFAULT_TORCH_CONTROLS: Dict[str, Tuple[int, int]] = {
    "flash_led_mode": (2, 0),
    "led1_mode": (1, 0),
    "torch": (1, 0),
}

_CTRL_PATTERN = re.compile(r"^\s*(\w+)\s+0x[0-9a-f]+\s+\((\w+)\)\s*:\s*(.+)$", re.IGNORECASE)
_ATTR_PATTERN = re.compile(r"(\w+)=(-?\d+)")

_CONTROL_TYPES = {
    "bool": ControlType.BOOLEAN,
    "int": ControlType.INTEGER,
    "menu": ControlType.MENU,
}


def parse_device(raw: DeviceRef) -> DeviceRef:
    """``"0"`` -> ``0``; paths are kept as given."""
    if isinstance(raw, int):
        return raw
    text = str(raw).strip()
    return int(text) if text.isdigit() else text


def v4l2_path(device: DeviceRef) -> Optional[str]:
    if isinstance(device, int):
        return f"/dev/video{device}" if sys.platform == "linux" else None
    return device if device.startswith("/dev/video") else None


def parse_v4l2_controls(output: str) -> Dict[str, Tuple[str, Dict[str, int]]]:
    """Parse ``v4l2-ctl --list-ctrls-menus`` into ``name -> (type, attrs)``.

    Lines look like::

        led1_mode 0x0a046d05 (menu)   : min=0 max=3 default=3 value=0 (Off)
    """
    controls: Dict[str, Tuple[str, Dict[str, int]]] = {}
    for line in output.splitlines():
        match = _CTRL_PATTERN.match(line)
        if not match:
            continue
        name, ctrl_type, attrs_str = match.groups()
        attrs = {key: int(value) for key, value in _ATTR_PATTERN.findall(attrs_str)}
        controls[name] = (ctrl_type.lower(), attrs)
    return controls


class USBStream(StreamHandle):
    """Live OpenCV capture reading on its own single-thread executor."""

    def __init__(
        self,
        device: DeviceRef,
        request: StreamRequest,
        *,
        torch_controls: Mapping[str, Tuple[int, int]],
        torch_in_place: bool = True,
        logger: LoggerLike = None,
    ) -> None:
        super().__init__(request.facing, request.resolution)
        self.device = device
        self.request = request
        self._torch_controls = dict(torch_controls)
        self._torch_in_place = torch_in_place
        self._logger = ensure_structured_logger(logger, fallback_name=__name__)
        self._cap = None
        self._closed = False
        self._frame_number = 0
        self._torch_name: Optional[str] = None
        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="usbcam"
        )

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------ open

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            self.resolution = await loop.run_in_executor(self._executor, self._open_and_configure)
        except BaseException:
            await self.close()
            raise

    def _open_and_configure(self) -> Tuple[int, int]:
        self._cap = self._open_capture()
        if self._cap is None:
            path = v4l2_path(self.device)
            if path and os.path.exists(path) and not os.access(path, os.R_OK | os.W_OK):
                raise DeviceUnavailable(f"Permission denied for camera {path}")
            raise DeviceUnavailable(f"Camera {self.device} ({self.facing.value}) could not be opened")

        # Prefer MJPEG to avoid YUYV colour issues on some UVC cams.
        try:
            self._cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*"MJPG"))
        except Exception:
            pass
        width, height = self.request.resolution
        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)

        # The device may grant a different size; trust the first frame.
        success, frame = self._cap.read()
        if not success or frame is None:
            raise DeviceUnavailable(f"Camera {self.device} opened but delivered no frames")
        granted_h, granted_w = frame.shape[:2]
        if (granted_w, granted_h) != (width, height):
            self._logger.info(
                "Camera %s granted %dx%d (requested %dx%d)", self.device, granted_w, granted_h, width, height
            )
        return int(granted_w), int(granted_h)

    def _open_capture(self):
        """Prefer V4L2 on Linux, fall back to OpenCV's default backend."""

        backends = []
        if sys.platform == "linux" and hasattr(cv2, "CAP_V4L2"):
            backends.append(cv2.CAP_V4L2)
        backends.append(None)

        for backend in backends:
            try:
                cap = cv2.VideoCapture(self.device, backend) if backend is not None else cv2.VideoCapture(self.device)
            except Exception as exc:  # pragma: no cover - defensive
                self._logger.debug("VideoCapture(%s, %s) raised: %s", self.device, backend, exc)
                continue
            if cap is not None and cap.isOpened():
                return cap
            if cap is not None:
                cap.release()

        self._logger.warning("Unable to open camera %s", self.device)
        return None

    # ------------------------------------------------------------------ frames

    async def read_frame(self) -> Frame:
        if self._closed or self._cap is None:
            raise DeviceLost(f"Camera {self.device} is closed")
        loop = asyncio.get_running_loop()
        success, data = await loop.run_in_executor(self._executor, self._cap.read)
        if not success or data is None:
            raise DeviceLost(f"Camera {self.device} lost or failed to read")
        self._frame_number += 1
        return Frame(data=data, timestamp=time.monotonic(), frame_number=self._frame_number)

    # ------------------------------------------------------------------ controls

    async def query_capabilities(self) -> CapabilitySet:
        path = v4l2_path(self.device)
        if path is None:
            return EMPTY_CAPABILITIES
        output = await asyncio.to_thread(self._list_controls, path)
        if output is None:
            return EMPTY_CAPABILITIES

        controls = parse_v4l2_controls(output)
        for name, (on_value, off_value) in self._torch_controls.items():
            if name not in controls:
                continue
            ctrl_type, attrs = controls[name]
            self._torch_name = name
            self._logger.debug("Camera %s exposes torch control %s", path, name)
            return CapabilitySet(
                [
                    torch_control(
                        backend_id=name,
                        current_value=attrs.get("value"),
                        on_value=on_value,
                        off_value=off_value,
                        in_place=self._torch_in_place,
                        control_type=_CONTROL_TYPES.get(ctrl_type, ControlType.UNKNOWN),
                    )
                ]
            )
        self._torch_name = None
        return EMPTY_CAPABILITIES

    def _list_controls(self, path: str) -> Optional[str]:
        try:
            result = subprocess.run(
                ["v4l2-ctl", "-d", path, "--list-ctrls-menus"],
                capture_output=True,
                text=True,
                timeout=5.0,
            )
        except FileNotFoundError:
            self._logger.debug("v4l2-ctl not found, reporting no controls")
            return None
        except subprocess.TimeoutExpired:
            self._logger.debug("v4l2-ctl timed out for %s", path)
            return None
        if result.returncode != 0:
            self._logger.debug("v4l2-ctl failed for %s: %s", path, result.stderr.strip())
            return None
        return result.stdout

    async def set_control(self, name: str, value: Any) -> bool:
        if name != ILLUMINATION or self._torch_name is None or self._closed:
            return False
        path = v4l2_path(self.device)
        if path is None:
            return False
        on_value, off_value = self._torch_controls[self._torch_name]
        raw = on_value if value else off_value
        return await asyncio.to_thread(self._set_control_v4l2, path, self._torch_name, raw)

    def _set_control_v4l2(self, path: str, v4l2_name: str, raw: int) -> bool:
        try:
            result = subprocess.run(
                ["v4l2-ctl", "-d", path, f"--set-ctrl={v4l2_name}={raw}"],
                capture_output=True,
                text=True,
                timeout=2.0,
            )
        except FileNotFoundError:
            self._logger.debug("v4l2-ctl not found")
            return False
        except subprocess.TimeoutExpired:
            self._logger.debug("v4l2-ctl timed out setting %s", v4l2_name)
            return False
        if result.returncode != 0:
            self._logger.debug("v4l2-ctl set failed for %s: %s", v4l2_name, result.stderr.strip())
            return False
        self._logger.debug("Set %s = %s on %s", v4l2_name, raw, path)
        return True

    # ------------------------------------------------------------------ close

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        executor = self._executor
        if self._cap is not None and executor is not None:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(executor, self._release)
        self._cap = None
        if executor is not None:
            executor.shutdown(wait=False)
            self._executor = None

    def _release(self) -> None:
        try:
            if self._cap is not None:
                self._cap.release()
        except Exception:
            self._logger.debug("Camera release failed", exc_info=True)


class USBCameraBackend(CameraBackend):
    """Maps facing directions onto configured USB/V4L2 devices."""

    name = "usb"

    def __init__(
        self,
        devices: Mapping[FacingDirection, DeviceRef],
        *,
        torch_controls: Optional[Sequence[str]] = None,
        torch_in_place: bool = True,
        logger: LoggerLike = None,
    ) -> None:
        self.devices = {facing: parse_device(dev) for facing, dev in devices.items()}
        names = torch_controls if torch_controls else DEFAULT_TORCH_CONTROLS.keys()
        self.torch_controls = {name: DEFAULT_TORCH_CONTROLS.get(name, (1, 0)) for name in names}
        self.torch_in_place = torch_in_place
        self._logger = ensure_structured_logger(logger, fallback_name=__name__)

    def describe(self, facing: FacingDirection) -> Optional[str]:
        device = self.devices.get(facing)
        return None if device is None else str(device)

    async def acquire(self, request: StreamRequest) -> USBStream:
        device = self.devices.get(request.facing)
        if device is None:
            raise DeviceUnavailable(f"No {request.facing.value} camera configured")
        stream = USBStream(
            device,
            request,
            torch_controls=self.torch_controls,
            torch_in_place=self.torch_in_place,
            logger=self._logger,
        )
        await stream.start()
        if not self.torch_in_place:
            # Driver latches the torch with the stream and V4L2 keeps the last
            # value across opens, so both states are written while opening.
            try:
                capabilities = await stream.query_capabilities()
                if capabilities.illumination and not await stream.set_control(ILLUMINATION, request.illumination):
                    raise DeviceUnavailable(
                        f"Camera {device} refused torch={'on' if request.illumination else 'off'}"
                    )
            except BaseException:
                await stream.close()
                raise
        return stream


__all__ = [
    "DEFAULT_TORCH_CONTROLS",
    "USBCameraBackend",
    "USBStream",
    "parse_device",
    "parse_v4l2_controls",
    "v4l2_path",
]
