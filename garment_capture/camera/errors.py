"""Camera failure taxonomy surfaced to the operator."""

from __future__ import annotations


class CameraError(Exception):
    """Base class for recoverable camera-session failures."""


class DeviceUnavailable(CameraError):
    """No camera matches the request, or access to it was denied."""


class CapabilityUnsupported(CameraError):
    """The live track does not expose the requested hardware control."""


class NoActiveStream(CameraError):
    """An operation needed an open stream but the session is closed."""


class DeviceLost(CameraError):
    """Raised by backends when an open device stops delivering frames."""


__all__ = [
    "CameraError",
    "CapabilityUnsupported",
    "DeviceLost",
    "DeviceUnavailable",
    "NoActiveStream",
]
