"""Still-image capture: freeze a BGR frame into a lossless PNG."""

from __future__ import annotations

import base64
from dataclasses import dataclass

import cv2
import numpy as np

PNG_MIME = "image/png"
_DATA_URI_PREFIX = "data:"
_BASE64_MARKER = ";base64,"


@dataclass(frozen=True, slots=True)
class StillImage:
    data: bytes
    width: int
    height: int
    mime_type: str = PNG_MIME

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"{_DATA_URI_PREFIX}{self.mime_type}{_BASE64_MARKER}{encoded}"

    @classmethod
    def from_data_uri(cls, uri: str) -> "StillImage":
        """Decode a base64 data URI produced by :meth:`to_data_uri`.

        Dimensions are read back from the encoded image itself.
        """
        if not uri.startswith(_DATA_URI_PREFIX) or _BASE64_MARKER not in uri:
            raise ValueError("Image is not a base64 data URI")
        header, encoded = uri.split(",", 1)
        mime_type = header[len(_DATA_URI_PREFIX):].split(";", 1)[0] or PNG_MIME
        data = base64.b64decode(encoded, validate=True)
        width, height = _decoded_size(data)
        return cls(data=data, width=width, height=height, mime_type=mime_type)


def _decoded_size(data: bytes) -> tuple[int, int]:
    buffer = np.frombuffer(data, dtype=np.uint8)
    decoded = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if decoded is None:
        raise ValueError("Image data could not be decoded")
    height, width = decoded.shape[:2]
    return int(width), int(height)


def encode_still(frame: np.ndarray) -> StillImage:
    """Encode a frame at its native dimensions as PNG.

    Accepts BGR (3 channel) or grayscale frames as delivered by OpenCV.
    """
    if frame is None or frame.size == 0:
        raise ValueError("Cannot encode an empty frame")
    if frame.dtype != np.uint8:
        frame = frame.astype(np.uint8, copy=False)

    success, encoded = cv2.imencode(".png", frame)
    if not success:
        raise RuntimeError("Failed to encode still image")

    height, width = frame.shape[:2]
    return StillImage(data=encoded.tobytes(), width=int(width), height=int(height))


__all__ = ["PNG_MIME", "StillImage", "encode_still"]
