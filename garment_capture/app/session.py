"""The capture session as one explicit state object.

Holds everything the operator mutates during a session (camera controller,
draft form, pending photo, saved entries) and exposes each operator action as
a method, so transitions can be driven without any display attached.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from garment_capture.camera.controller import CameraSessionController
from garment_capture.camera.snapshot import StillImage
from garment_capture.camera.state import CameraSession, FacingDirection
from garment_capture.catalog.catalog import Catalog
from garment_capture.catalog.export import FileDelivery
from garment_capture.catalog.model import CatalogEntry, DraftMetadata, MetadataForm
from garment_capture.core.logging_utils import LoggerLike, ensure_structured_logger


class CaptureSession:
    def __init__(
        self,
        controller: CameraSessionController,
        *,
        delivery: Optional[FileDelivery] = None,
        form: Optional[MetadataForm] = None,
        catalog: Optional[Catalog] = None,
        logger: LoggerLike = None,
    ) -> None:
        self._logger = ensure_structured_logger(logger, fallback_name=__name__)
        self.controller = controller
        self.delivery = delivery or FileDelivery(Path("."), logger=self._logger)
        self.form = form or MetadataForm()
        self.catalog = catalog or Catalog(logger=self._logger)
        self._pending: Optional[StillImage] = None

    # ------------------------------------------------------------------
    # State views

    @property
    def camera(self) -> CameraSession:
        return self.controller.session

    @property
    def pending(self) -> Optional[StillImage]:
        return self._pending

    @property
    def draft(self) -> DraftMetadata:
        return self.form.snapshot()

    # ------------------------------------------------------------------
    # Camera

    async def start(self, facing: Optional[FacingDirection] = None) -> CameraSession:
        return await self.controller.start(facing)

    async def switch_facing(self) -> CameraSession:
        return await self.controller.switch_facing()

    async def set_illumination(self, on: bool) -> CameraSession:
        return await self.controller.set_illumination(on)

    async def stop(self) -> None:
        await self.controller.stop()

    async def capture(self) -> StillImage:
        """Replace the pending photo; on failure the previous one is kept."""
        image = await self.controller.capture()
        if self._pending is not None:
            self._logger.debug("Replacing uncommitted capture")
        self._pending = image
        return image

    def discard(self) -> bool:
        had_pending = self._pending is not None
        self._pending = None
        return had_pending

    # ------------------------------------------------------------------
    # Draft + catalog

    def set_field(self, name: str, value: str) -> str:
        return self.form.set_field(name, value)

    def clear_field(self, name: str) -> None:
        self.form.clear_field(name)

    def commit(self) -> CatalogEntry:
        entry = self.catalog.commit(self.form.snapshot(), self._pending)
        self.form.reset()
        self._pending = None
        return entry

    def export_document(self) -> str:
        return self.catalog.export_document()

    async def export(self, filename: Optional[str] = None) -> Path:
        return await self.delivery.deliver(self.catalog.export_document(), filename=filename)

    # ------------------------------------------------------------------
    # Teardown

    async def aclose(self) -> None:
        await self.controller.aclose()

    async def __aenter__(self) -> "CaptureSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = ["CaptureSession"]
