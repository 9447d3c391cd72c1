"""Unit tests for capability sets and the session state model."""

import pytest

from garment_capture.camera.capabilities import (
    EMPTY_CAPABILITIES,
    ILLUMINATION,
    CapabilitySet,
    ControlInfo,
    ControlType,
    torch_control,
)
from garment_capture.camera.state import CameraSession, FacingDirection, SessionStatus


class TestCapabilitySet:

    def test_empty_set_has_no_torch(self):
        assert EMPTY_CAPABILITIES.illumination is False
        assert EMPTY_CAPABILITIES.illumination_in_place is False
        assert len(EMPTY_CAPABILITIES) == 0

    def test_torch_control_is_reported(self):
        caps = CapabilitySet([torch_control()])

        assert caps.supports(ILLUMINATION)
        assert caps.illumination is True
        assert caps.illumination_in_place is True
        assert caps.names() == (ILLUMINATION,)

    def test_torch_latched_at_open(self):
        caps = CapabilitySet([torch_control(in_place=False)])

        assert caps.illumination is True
        assert caps.illumination_in_place is False

    def test_mapping_access(self):
        focus = ControlInfo(name="Focus", control_type=ControlType.INTEGER, current_value=30)
        caps = CapabilitySet([focus, torch_control()])

        assert caps["Focus"] is focus
        assert set(caps) == {"Focus", ILLUMINATION}
        with pytest.raises(KeyError):
            caps["Zoom"]

    def test_menu_torch_raw_values(self):
        control = torch_control(on_value=2, off_value=0, control_type=ControlType.MENU)

        assert control.raw_value(True) == 2
        assert control.raw_value(False) == 0


class TestFacingDirection:

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("front", FacingDirection.FRONT),
            ("user", FacingDirection.FRONT),
            ("REAR", FacingDirection.REAR),
            ("back", FacingDirection.REAR),
            (" environment ", FacingDirection.REAR),
        ],
    )
    def test_parse(self, text, expected):
        assert FacingDirection.parse(text) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            FacingDirection.parse("sideways")

    def test_toggle(self):
        assert FacingDirection.REAR.toggled() is FacingDirection.FRONT
        assert FacingDirection.FRONT.toggled() is FacingDirection.REAR

    def test_facing_mode(self):
        assert FacingDirection.FRONT.facing_mode == "user"
        assert FacingDirection.REAR.facing_mode == "environment"


class TestCameraSession:

    def test_initial_state(self):
        session = CameraSession()

        assert session.facing is FacingDirection.REAR
        assert session.illumination_requested is False
        assert session.illumination_supported is False
        assert session.status is SessionStatus.CLOSED
        assert session.is_open is False

    def test_with_changes_returns_copy(self):
        session = CameraSession()

        opened = session.with_changes(status=SessionStatus.OPEN, resolution=(640, 480))

        assert opened.is_open
        assert opened.resolution == (640, 480)
        assert session.status is SessionStatus.CLOSED
