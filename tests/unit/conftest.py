"""Unit test fixtures.

Everything here runs without a camera: the controller is wired to the
synthetic backend, exports go to ``tmp_path`` and config overrides are
isolated per test.
"""

from __future__ import annotations

import io
from pathlib import Path

import numpy as np
import pytest

from garment_capture.app.console import OperatorConsole
from garment_capture.app.session import CaptureSession
from garment_capture.camera.backends.mock_backend import MockCameraBackend
from garment_capture.camera.controller import CameraSessionController
from garment_capture.catalog.export import FileDelivery
from garment_capture.core.config_manager import ConfigManager

FAST_FPS = 200.0


@pytest.fixture
def backend() -> MockCameraBackend:
    """Rear camera with an in-place torch, front camera without one."""
    return MockCameraBackend(fps=FAST_FPS)


@pytest.fixture
def controller(backend: MockCameraBackend) -> CameraSessionController:
    return CameraSessionController(backend, resolution=(1280, 720))


@pytest.fixture
def export_dir(tmp_path: Path) -> Path:
    return tmp_path / "exports"


@pytest.fixture
def session(controller: CameraSessionController, export_dir: Path) -> CaptureSession:
    return CaptureSession(controller, delivery=FileDelivery(export_dir))


@pytest.fixture
def console_output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def console(session: CaptureSession, console_output: io.StringIO) -> OperatorConsole:
    return OperatorConsole(session, output=console_output)


@pytest.fixture
def config_manager(tmp_path: Path) -> ConfigManager:
    """ConfigManager whose override directory is private to the test."""
    return ConfigManager(overrides_dir=tmp_path / "overrides")


@pytest.fixture
def bgr_frame() -> np.ndarray:
    frame = np.zeros((48, 64, 3), dtype=np.uint8)
    frame[:, :32] = (255, 0, 0)
    frame[10:20, 40:50] = (0, 128, 255)
    return frame
