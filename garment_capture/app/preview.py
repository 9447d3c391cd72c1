"""Optional OpenCV preview window for the live camera."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Optional

import cv2
import numpy as np

from garment_capture.camera.controller import CameraSessionController
from garment_capture.core.logging_utils import LoggerLike, ensure_structured_logger

BLANK_SIZE = (640, 360)


class PreviewWindow:
    """Shows the controller's latest frame; blank while no stream is open.

    HighGUI calls run in the default executor so the event loop never blocks
    on window events.
    """

    def __init__(
        self,
        controller: CameraSessionController,
        *,
        window_name: str,
        fps_cap: float = 30.0,
        logger: LoggerLike = None,
    ) -> None:
        self.controller = controller
        self.window_name = window_name
        self.interval = 1.0 / fps_cap if fps_cap > 0 else 0.033
        self._logger = ensure_structured_logger(logger, fallback_name=__name__)
        self._blank = np.zeros((BLANK_SIZE[1], BLANK_SIZE[0], 3), dtype=np.uint8)
        self._showing_blank = False

    async def run(self, stop_event: asyncio.Event) -> None:
        loop = asyncio.get_running_loop()
        self._logger.info("Preview window '%s' opened", self.window_name)
        try:
            while not stop_event.is_set():
                frame: Optional[np.ndarray] = self.controller.latest_frame
                if frame is not None:
                    await loop.run_in_executor(None, cv2.imshow, self.window_name, frame)
                    self._showing_blank = False
                elif not self._showing_blank:
                    await loop.run_in_executor(None, cv2.imshow, self.window_name, self._blank)
                    self._showing_blank = True
                await loop.run_in_executor(None, cv2.waitKey, 1)
                await asyncio.sleep(self.interval)
        finally:
            with contextlib.suppress(cv2.error):
                await loop.run_in_executor(None, cv2.destroyWindow, self.window_name)
            self._logger.info("Preview window closed")


__all__ = ["PreviewWindow"]
