"""Capability sets reported by an open camera track."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Optional, Tuple

ILLUMINATION = "Torch"


class ControlType(Enum):
    """Type classification for camera controls."""

    INTEGER = "int"
    BOOLEAN = "bool"
    MENU = "menu"
    UNKNOWN = "unknown"


@dataclass(slots=True, frozen=True)
class ControlInfo:
    """Metadata for a single hardware control.

    ``on_value``/``off_value`` are the raw values the device expects when the
    control is driven as a switch (the torch is a menu control on most V4L2
    drivers).
    """

    name: str
    control_type: ControlType
    current_value: Any = None
    backend_id: Optional[Any] = None
    on_value: Any = True
    off_value: Any = False
    in_place: bool = True

    def raw_value(self, enabled: bool) -> Any:
        return self.on_value if enabled else self.off_value


class CapabilitySet(Mapping[str, ControlInfo]):
    """Immutable mapping of control name to :class:`ControlInfo`."""

    __slots__ = ("_controls",)

    def __init__(self, controls: Iterable[ControlInfo] = ()) -> None:
        self._controls = MappingProxyType({control.name: control for control in controls})

    def __getitem__(self, name: str) -> ControlInfo:
        return self._controls[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._controls)

    def __len__(self) -> int:
        return len(self._controls)

    def __repr__(self) -> str:
        return f"CapabilitySet({sorted(self._controls)!r})"

    def supports(self, name: str) -> bool:
        return name in self._controls

    @property
    def illumination(self) -> bool:
        return self.supports(ILLUMINATION)

    @property
    def illumination_in_place(self) -> bool:
        """True when the torch can be switched without reopening the stream."""
        control = self._controls.get(ILLUMINATION)
        return bool(control and control.in_place)

    def names(self) -> Tuple[str, ...]:
        return tuple(sorted(self._controls))


EMPTY_CAPABILITIES = CapabilitySet()


def torch_control(
    *,
    backend_id: Any = None,
    current_value: Any = None,
    on_value: Any = True,
    off_value: Any = False,
    in_place: bool = True,
    control_type: ControlType = ControlType.BOOLEAN,
) -> ControlInfo:
    """Build the canonical illumination control entry."""

    return ControlInfo(
        name=ILLUMINATION,
        control_type=control_type,
        current_value=current_value,
        backend_id=backend_id,
        on_value=on_value,
        off_value=off_value,
        in_place=in_place,
    )


__all__ = [
    "CapabilitySet",
    "ControlInfo",
    "ControlType",
    "EMPTY_CAPABILITIES",
    "ILLUMINATION",
    "torch_control",
]
