"""Capture station entry point."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
from pathlib import Path
from typing import Any, Dict, List, Optional

from garment_capture.camera.backends import CameraBackend, MockCameraBackend, USBCameraBackend
from garment_capture.camera.controller import CameraSessionController
from garment_capture.camera.errors import CameraError
from garment_capture.catalog.export import FileDelivery
from garment_capture.config import BACKENDS, StationConfig, as_dict, load_config_file_async
from garment_capture.core.logging_config import configure_logging
from garment_capture.core.logging_utils import LoggerLike, get_module_logger

from .console import OperatorConsole
from .preview import PreviewWindow
from .session import CaptureSession

DISPLAY_NAME = "Clothing Photo Capture"

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")

logger = get_module_logger("Station")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=DISPLAY_NAME)

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file (default: the packaged config.txt)",
    )
    parser.add_argument(
        "--backend",
        choices=BACKENDS,
        default=None,
        help="Camera backend: usb (OpenCV/V4L2) or mock (synthetic frames)",
    )
    parser.add_argument(
        "--facing",
        choices=("front", "rear", "user", "environment"),
        default=None,
        help="Initial camera direction",
    )
    parser.add_argument(
        "--rear-device",
        type=str,
        default=None,
        help="Device index or /dev/videoN path of the rear camera",
    )
    parser.add_argument(
        "--front-device",
        type=str,
        default=None,
        help="Device index or /dev/videoN path of the front camera",
    )
    parser.add_argument(
        "--resolution",
        type=str,
        default=None,
        help="Preferred capture resolution, e.g. 1280x720 (best effort)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory the exported JSON is written to",
    )
    parser.add_argument(
        "--export-filename",
        type=str,
        default=None,
        help="Name of the exported document (default: clothing-data.json)",
    )
    parser.add_argument(
        "--auto-start",
        action="store_true",
        default=False,
        help="Open the camera as soon as the station starts",
    )

    preview_group = parser.add_mutually_exclusive_group()
    preview_group.add_argument(
        "--preview",
        dest="preview",
        action="store_true",
        default=None,
        help="Show an OpenCV live preview window",
    )
    preview_group.add_argument(
        "--no-preview",
        dest="preview",
        action="store_false",
        help="Run without a preview window",
    )

    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Logging verbosity",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Rotating log file path",
    )

    console_group = parser.add_mutually_exclusive_group()
    console_group.add_argument(
        "--console",
        dest="console_output",
        action="store_true",
        default=None,
        help="Also log to stderr",
    )
    console_group.add_argument(
        "--no-console",
        dest="console_output",
        action="store_false",
        help="Log to file only",
    )

    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Map CLI flags onto config keys; unset flags stay ``None``."""

    return {
        "camera.backend": args.backend,
        "camera.default_facing": args.facing,
        "camera.rear_device": args.rear_device,
        "camera.front_device": args.front_device,
        "camera.resolution": args.resolution,
        "preview.enabled": args.preview,
        "export.output_dir": str(args.output_dir) if args.output_dir else None,
        "export.filename": args.export_filename,
        "logging.level": args.log_level,
        "logging.file": str(args.log_file) if args.log_file else None,
        "logging.console": args.console_output,
    }


def build_backend(config: StationConfig, *, logger: LoggerLike = None) -> CameraBackend:
    camera = config.camera
    if camera.backend == "mock":
        return MockCameraBackend(logger=logger)
    return USBCameraBackend(
        camera.devices(),
        torch_controls=camera.torch_controls,
        torch_in_place=camera.torch_in_place,
        logger=logger,
    )


def build_session(config: StationConfig, *, logger: LoggerLike = None) -> CaptureSession:
    controller = CameraSessionController(
        build_backend(config, logger=logger),
        resolution=config.camera.resolution,
        facing=config.camera.default_facing,
        logger=logger,
    )
    delivery = FileDelivery(
        config.export.output_dir,
        config.export.filename,
        overwrite=config.export.overwrite,
        logger=logger,
    )
    return CaptureSession(controller, delivery=delivery, logger=logger)


async def run_station(config: StationConfig, *, auto_start: bool = False) -> None:
    async with build_session(config, logger=logger) as session:
        console = OperatorConsole(session, logger=logger)
        stop_preview = asyncio.Event()
        preview_task: Optional[asyncio.Task] = None
        if config.preview.enabled:
            window = PreviewWindow(
                session.controller,
                window_name=config.preview.window_name,
                fps_cap=config.preview.fps_cap,
                logger=logger,
            )
            preview_task = asyncio.create_task(window.run(stop_preview), name="preview-window")

        try:
            if auto_start:
                try:
                    await session.start()
                except CameraError as exc:
                    logger.error("Auto-start failed: %s", exc)
            await console.run()
        finally:
            await console.tasks.cancel_all(reason="station shutdown")
            stop_preview.set()
            if preview_task is not None:
                with contextlib.suppress(asyncio.CancelledError):
                    await preview_task


async def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = await load_config_file_async(args.config, build_overrides(args))

    configure_logging(
        config.logging.level,
        console=config.logging.console,
        log_file=config.logging.file,
    )
    logger.info("Starting %s with %s", DISPLAY_NAME, as_dict(config))

    try:
        await run_station(config, auto_start=args.auto_start)
    except KeyboardInterrupt:
        logger.info("Interrupted by operator")
    logger.info("Station stopped")
    return 0


__all__ = ["build_backend", "build_overrides", "build_session", "main", "parse_args", "run_station"]
