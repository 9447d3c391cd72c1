"""Camera backends."""

from .base import CameraBackend, Frame, StreamHandle
from .mock_backend import MockCameraBackend, MockStream
from .usb_backend import USBCameraBackend, USBStream

__all__ = [
    "CameraBackend",
    "Frame",
    "MockCameraBackend",
    "MockStream",
    "StreamHandle",
    "USBCameraBackend",
    "USBStream",
]
