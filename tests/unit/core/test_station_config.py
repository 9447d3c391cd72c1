"""Tests for the typed station configuration."""

from pathlib import Path

import pytest

from garment_capture.camera.state import FacingDirection
from garment_capture.config import (
    as_dict,
    load_config,
    load_config_file,
    load_config_file_async,
    parse_resolution,
)


def test_defaults():
    config = load_config({})

    assert config.camera.backend == "usb"
    assert config.camera.resolution == (1280, 720)
    assert config.camera.default_facing is FacingDirection.REAR
    assert config.camera.torch_controls == ("flash_led_mode", "led1_mode", "torch")
    assert config.camera.torch_in_place is True
    assert config.preview.enabled is False
    assert config.export.filename == "clothing-data.json"
    assert config.export.overwrite is False
    assert config.logging.level == "INFO"
    assert config.logging.file == Path("./logs/garment_capture.log")


def test_overrides_win_but_none_is_ignored():
    raw = {"camera.backend": "mock", "camera.resolution": "640x480"}

    config = load_config(raw, {"camera.backend": None, "camera.resolution": "1920x1080"})

    assert config.camera.backend == "mock"
    assert config.camera.resolution == (1920, 1080)


def test_unknown_backend_falls_back_to_usb():
    assert load_config({"camera.backend": "gopro"}).camera.backend == "usb"


def test_bad_values_fall_back():
    config = load_config(
        {
            "camera.resolution": "huge",
            "camera.default_facing": "sideways",
            "preview.fps_cap": "fast",
        }
    )

    assert config.camera.resolution == (1280, 720)
    assert config.camera.default_facing is FacingDirection.REAR
    assert config.preview.fps_cap == 30.0


def test_devices_skip_empty_entries():
    config = load_config({"camera.rear_device": "/dev/video0", "camera.front_device": ""})

    assert config.camera.devices() == {FacingDirection.REAR: "/dev/video0"}


def test_torch_control_list():
    config = load_config({"camera.torch_controls": " led1_mode , ,torch "})

    assert config.camera.torch_controls == ("led1_mode", "torch")


def test_empty_log_file_disables_file_logging():
    assert load_config({"logging.file": ""}).logging.file is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("640x480", (640, 480)),
        ("1920X1080", (1920, 1080)),
        ("800, 600", (800, 600)),
        ((320, 240), (320, 240)),
    ],
)
def test_parse_resolution(raw, expected):
    assert parse_resolution(raw) == expected


@pytest.mark.parametrize("raw", ["0x480", "-1x2", "wide", "640"])
def test_parse_resolution_rejects(raw):
    with pytest.raises(ValueError):
        parse_resolution(raw)


def test_packaged_config_loads(packaged_config_path, config_manager):
    config = load_config_file(packaged_config_path, manager=config_manager)

    assert config.camera.backend == "usb"
    assert config.camera.rear_device == "0"
    assert config.camera.front_device == "1"
    assert config.preview.window_name == "Clothing Photo Capture"


@pytest.mark.asyncio
async def test_async_loader_applies_overrides(tmp_path, config_manager):
    path = tmp_path / "station.txt"
    path.write_text("camera.backend = mock\nexport.overwrite = yes\n", encoding="utf-8")

    config = await load_config_file_async(path, {"logging.level": "debug"}, manager=config_manager)

    assert config.camera.backend == "mock"
    assert config.export.overwrite is True
    assert config.logging.level == "DEBUG"


def test_as_dict_is_plain_data():
    data = as_dict(load_config({"logging.file": ""}))

    assert data["camera"]["default_facing"] == "rear"
    assert data["camera"]["resolution"] == "1280x720"
    assert data["export"]["output_dir"] == "exports"
    assert data["logging"]["file"] is None
