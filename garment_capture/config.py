"""Typed configuration for the capture station."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from garment_capture.camera.state import FacingDirection, Resolution
from garment_capture.core.config_manager import ConfigManager, get_config_manager
from garment_capture.core.logging_utils import LoggerLike, ensure_structured_logger
from garment_capture.core.paths import DEFAULT_CONFIG_PATH

DEFAULT_BACKEND = "usb"
DEFAULT_REAR_DEVICE = "0"
DEFAULT_FRONT_DEVICE = "1"
DEFAULT_RESOLUTION: Resolution = (1280, 720)
DEFAULT_FACING = FacingDirection.REAR
DEFAULT_TORCH_CONTROLS: Tuple[str, ...] = ("flash_led_mode", "led1_mode", "torch")
DEFAULT_TORCH_IN_PLACE = True
DEFAULT_PREVIEW_ENABLED = False
DEFAULT_PREVIEW_WINDOW = "Clothing Photo Capture"
DEFAULT_PREVIEW_FPS = 30.0
DEFAULT_EXPORT_DIR = Path("./exports")
DEFAULT_EXPORT_FILENAME = "clothing-data.json"
DEFAULT_EXPORT_OVERWRITE = False
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE = Path("./logs/garment_capture.log")
DEFAULT_LOG_CONSOLE = False

BACKENDS = ("usb", "mock")


@dataclass(slots=True)
class CameraSettings:
    backend: str
    rear_device: str
    front_device: str
    resolution: Resolution
    default_facing: FacingDirection
    torch_controls: Tuple[str, ...]
    torch_in_place: bool

    def devices(self) -> Dict[FacingDirection, str]:
        devices: Dict[FacingDirection, str] = {}
        if self.rear_device:
            devices[FacingDirection.REAR] = self.rear_device
        if self.front_device:
            devices[FacingDirection.FRONT] = self.front_device
        return devices


@dataclass(slots=True)
class PreviewSettings:
    enabled: bool
    window_name: str
    fps_cap: float


@dataclass(slots=True)
class ExportSettings:
    output_dir: Path
    filename: str
    overwrite: bool


@dataclass(slots=True)
class LoggingSettings:
    level: str
    file: Optional[Path]
    console: bool


@dataclass(slots=True)
class StationConfig:
    camera: CameraSettings
    preview: PreviewSettings
    export: ExportSettings
    logging: LoggingSettings


# ---------------------------------------------------------------------------
# Public API


def load_config(
    raw: Mapping[str, Any],
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    logger: LoggerLike = None,
) -> StationConfig:
    """Build a typed config from parsed ``key = value`` pairs plus overrides.

    ``None`` overrides are ignored so unset CLI flags keep the file value.
    Unparseable values fall back to their defaults.
    """

    log = ensure_structured_logger(logger, fallback_name=__name__)
    merged: Dict[str, Any] = dict(raw)
    if overrides:
        for key, value in overrides.items():
            if value is not None:
                merged[key] = value

    backend = _coerce_str(merged, "camera.backend", DEFAULT_BACKEND).lower()
    if backend not in BACKENDS:
        log.warning("Unknown camera backend %r, using %s", backend, DEFAULT_BACKEND)
        backend = DEFAULT_BACKEND

    camera = CameraSettings(
        backend=backend,
        rear_device=_coerce_str(merged, "camera.rear_device", DEFAULT_REAR_DEVICE, allow_empty=True),
        front_device=_coerce_str(merged, "camera.front_device", DEFAULT_FRONT_DEVICE, allow_empty=True),
        resolution=_coerce_resolution(merged, "camera.resolution", DEFAULT_RESOLUTION, logger=log),
        default_facing=_coerce_facing(merged, "camera.default_facing", DEFAULT_FACING, logger=log),
        torch_controls=_coerce_names(merged, "camera.torch_controls", DEFAULT_TORCH_CONTROLS),
        torch_in_place=_coerce_bool(merged, "camera.torch_in_place", DEFAULT_TORCH_IN_PLACE),
    )

    preview = PreviewSettings(
        enabled=_coerce_bool(merged, "preview.enabled", DEFAULT_PREVIEW_ENABLED),
        window_name=_coerce_str(merged, "preview.window_name", DEFAULT_PREVIEW_WINDOW),
        fps_cap=_coerce_float(merged, "preview.fps_cap", DEFAULT_PREVIEW_FPS),
    )

    export = ExportSettings(
        output_dir=_coerce_path(merged, "export.output_dir", DEFAULT_EXPORT_DIR),
        filename=_coerce_str(merged, "export.filename", DEFAULT_EXPORT_FILENAME),
        overwrite=_coerce_bool(merged, "export.overwrite", DEFAULT_EXPORT_OVERWRITE),
    )

    log_file_raw = merged.get("logging.file")
    logging_settings = LoggingSettings(
        level=_coerce_str(merged, "logging.level", DEFAULT_LOG_LEVEL).upper(),
        file=None if log_file_raw == "" else _coerce_path(merged, "logging.file", DEFAULT_LOG_FILE),
        console=_coerce_bool(merged, "logging.console", DEFAULT_LOG_CONSOLE),
    )

    return StationConfig(camera=camera, preview=preview, export=export, logging=logging_settings)


def load_config_file(
    path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    manager: Optional[ConfigManager] = None,
    logger: LoggerLike = None,
) -> StationConfig:
    manager = manager or get_config_manager()
    raw = manager.read_config(Path(path) if path else DEFAULT_CONFIG_PATH)
    return load_config(raw, overrides, logger=logger)


async def load_config_file_async(
    path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    manager: Optional[ConfigManager] = None,
    logger: LoggerLike = None,
) -> StationConfig:
    manager = manager or get_config_manager()
    raw = await manager.read_config_async(Path(path) if path else DEFAULT_CONFIG_PATH)
    return load_config(raw, overrides, logger=logger)


def as_dict(config: StationConfig) -> Dict[str, Any]:
    """Nested, JSON-safe view used for the startup log line."""

    camera = asdict(config.camera)
    camera["default_facing"] = config.camera.default_facing.value
    camera["resolution"] = f"{config.camera.resolution[0]}x{config.camera.resolution[1]}"
    return {
        "camera": camera,
        "preview": asdict(config.preview),
        "export": {**asdict(config.export), "output_dir": str(config.export.output_dir)},
        "logging": {
            "level": config.logging.level,
            "file": str(config.logging.file) if config.logging.file else None,
            "console": config.logging.console,
        },
    }


# ---------------------------------------------------------------------------
# Coercion helpers


def _coerce_bool(data: Mapping[str, Any], key: str, default: bool) -> bool:
    raw = data.get(key)
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _coerce_str(data: Mapping[str, Any], key: str, default: str, *, allow_empty: bool = False) -> str:
    raw = data.get(key)
    if raw is None:
        return default
    text = str(raw).strip()
    if not text and not allow_empty:
        return default
    return text


def _coerce_float(data: Mapping[str, Any], key: str, default: float) -> float:
    raw = data.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def _coerce_path(data: Mapping[str, Any], key: str, default: Path) -> Path:
    raw = data.get(key)
    if raw is None or raw == "":
        return Path(default)
    return Path(str(raw))


def _coerce_names(data: Mapping[str, Any], key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = data.get(key)
    if raw is None:
        return default
    if isinstance(raw, (list, tuple)):
        names = [str(item).strip() for item in raw]
    else:
        names = [part.strip() for part in str(raw).split(",")]
    names = [name for name in names if name]
    return tuple(names) or default


def _coerce_facing(data: Mapping[str, Any], key: str, default: FacingDirection, *, logger) -> FacingDirection:
    raw = data.get(key)
    if raw is None or raw == "":
        return default
    try:
        return FacingDirection.parse(raw)
    except ValueError:
        logger.debug("Failed to parse facing direction from %r, using %s", raw, default.value)
        return default


def _coerce_resolution(data: Mapping[str, Any], key: str, default: Resolution, *, logger) -> Resolution:
    raw = data.get(key)
    if raw is None:
        return default
    try:
        return parse_resolution(raw)
    except (TypeError, ValueError):
        logger.debug("Failed to parse resolution from %r, using default %s", raw, default)
        return default


def parse_resolution(raw: Any) -> Resolution:
    if isinstance(raw, (list, tuple)) and len(raw) == 2:
        width, height = int(raw[0]), int(raw[1])
    elif isinstance(raw, str) and "x" in raw.lower():
        w_text, h_text = raw.lower().split("x", 1)
        width, height = int(w_text.strip()), int(h_text.strip())
    elif isinstance(raw, str) and "," in raw:
        w_text, h_text = raw.split(",", 1)
        width, height = int(w_text.strip()), int(h_text.strip())
    else:
        raise ValueError(f"Unsupported resolution value: {raw!r}")
    if width <= 0 or height <= 0:
        raise ValueError(f"Resolution must be positive: {raw!r}")
    return width, height


__all__ = [
    "CameraSettings",
    "ExportSettings",
    "LoggingSettings",
    "PreviewSettings",
    "StationConfig",
    "as_dict",
    "load_config",
    "load_config_file",
    "load_config_file_async",
    "parse_resolution",
]
