"""Camera session control: acquisition, torch negotiation and still capture."""

from .capabilities import ILLUMINATION, CapabilitySet, ControlInfo, ControlType
from .controller import CameraSessionController
from .errors import CameraError, CapabilityUnsupported, DeviceLost, DeviceUnavailable, NoActiveStream
from .snapshot import StillImage, encode_still
from .state import CameraSession, FacingDirection, SessionStatus, StreamRequest

__all__ = [
    "CameraError",
    "CameraSession",
    "CameraSessionController",
    "CapabilitySet",
    "CapabilityUnsupported",
    "ControlInfo",
    "ControlType",
    "DeviceLost",
    "DeviceUnavailable",
    "FacingDirection",
    "ILLUMINATION",
    "NoActiveStream",
    "SessionStatus",
    "StillImage",
    "StreamRequest",
    "encode_still",
]
