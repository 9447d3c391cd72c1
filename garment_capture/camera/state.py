"""Camera session state model."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

Resolution = Tuple[int, int]


class FacingDirection(Enum):
    """Which physical camera a stream is bound to."""

    FRONT = "front"
    REAR = "rear"

    @property
    def facing_mode(self) -> str:
        """Browser-style ``facingMode`` name for this direction."""
        return "user" if self is FacingDirection.FRONT else "environment"

    def toggled(self) -> "FacingDirection":
        return FacingDirection.REAR if self is FacingDirection.FRONT else FacingDirection.FRONT

    @classmethod
    def parse(cls, value: "str | FacingDirection") -> "FacingDirection":
        """Accept ``front``/``rear`` as well as ``user``/``environment``."""
        if isinstance(value, FacingDirection):
            return value
        text = str(value).strip().lower()
        aliases = {
            "front": cls.FRONT,
            "user": cls.FRONT,
            "rear": cls.REAR,
            "back": cls.REAR,
            "environment": cls.REAR,
        }
        try:
            return aliases[text]
        except KeyError:
            raise ValueError(f"Unknown facing direction: {value!r}") from None


class SessionStatus(Enum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"


@dataclass(frozen=True, slots=True)
class StreamRequest:
    """What the controller asks a backend for."""

    facing: FacingDirection
    resolution: Resolution
    illumination: bool = False


@dataclass(frozen=True, slots=True)
class CameraSession:
    """Snapshot of the controller's session state.

    ``illumination_supported`` only ever comes from the capability set of the
    stream that is currently open; it is False whenever the session is closed.
    """

    facing: FacingDirection = FacingDirection.REAR
    illumination_requested: bool = False
    illumination_supported: bool = False
    status: SessionStatus = SessionStatus.CLOSED
    resolution: Optional[Resolution] = None

    @property
    def is_open(self) -> bool:
        return self.status is SessionStatus.OPEN

    def with_changes(self, **changes) -> "CameraSession":
        return replace(self, **changes)


__all__ = [
    "CameraSession",
    "FacingDirection",
    "Resolution",
    "SessionStatus",
    "StreamRequest",
]
