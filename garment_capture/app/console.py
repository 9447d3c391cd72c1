"""Line-oriented operator console.

Camera reconfiguration runs as background tasks so the draft form and the
catalog stay usable while a camera request is outstanding; the controller
itself queues overlapping requests.
"""

from __future__ import annotations

import asyncio
import re
import sys
from typing import Awaitable, Callable, Dict, List, Optional, TextIO

from garment_capture.camera.errors import CameraError
from garment_capture.camera.state import FacingDirection
from garment_capture.catalog.model import FIELD_OPTIONS, field_choices, resolve_field
from garment_capture.core.logging_utils import LoggerLike, ensure_structured_logger

from .session import CaptureSession
from .tasks import TaskManager

HELP_TEXT = """\
Commands:
  start [front|rear]     Open the camera (default: current direction)
  switch                 Switch between front and rear camera
  torch on|off           Turn the torch on or off
  capture                Take a photo for the current draft
  discard                Drop the current photo
  set <field> <value>    Fill brand, size, gender or supplier
  clear <field>          Unset a field
  draft                  Show the current draft
  save                   Save the draft as a catalog entry
  list                   Show saved entries
  export [filename]      Write the catalog as JSON
  status                 Show camera state
  stop                   Close the camera
  help                   Show this text
  quit                   Close the camera and exit"""

Handler = Callable[[List[str]], Awaitable[None]]

# "set <field> <value>": the value is everything after the single separator.
_SET_VALUE = re.compile(r"^\s*\S+\s+\S+\s(.*)\Z", re.DOTALL)


async def open_stdin_reader() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    return reader


class OperatorConsole:
    def __init__(
        self,
        session: CaptureSession,
        *,
        output: Optional[TextIO] = None,
        logger: LoggerLike = None,
    ) -> None:
        self.session = session
        self._out = output or sys.stdout
        self._logger = ensure_structured_logger(logger, fallback_name=__name__)
        self.tasks = TaskManager(logger=self._logger)
        self._quit = asyncio.Event()
        self._line = ""
        self._handlers: Dict[str, Handler] = {
            "start": self._cmd_start,
            "switch": self._cmd_switch,
            "torch": self._cmd_torch,
            "capture": self._cmd_capture,
            "discard": self._cmd_discard,
            "set": self._cmd_set,
            "clear": self._cmd_clear,
            "draft": self._cmd_draft,
            "save": self._cmd_save,
            "list": self._cmd_list,
            "export": self._cmd_export,
            "status": self._cmd_status,
            "stop": self._cmd_stop,
            "help": self._cmd_help,
            "quit": self._cmd_quit,
            "exit": self._cmd_quit,
            "q": self._cmd_quit,
        }

    @property
    def quit_requested(self) -> bool:
        return self._quit.is_set()

    # ------------------------------------------------------------------
    # Loop

    async def run(self, reader: Optional[asyncio.StreamReader] = None) -> None:
        if reader is None:
            reader = await open_stdin_reader()
        self._say(HELP_TEXT)
        while not self._quit.is_set():
            line = await reader.readline()
            if not line:
                self._logger.info("Console input closed")
                break
            await self.handle(line.decode("utf-8", errors="replace"))
        await self.tasks.wait_all()

    async def handle(self, line: str) -> bool:
        """Execute one command line. Returns False once quit was requested."""

        parts = line.strip().split()
        if not parts:
            return not self._quit.is_set()
        command, args = parts[0].lower(), parts[1:]
        self._line = line.rstrip("\r\n")
        handler = self._handlers.get(command)
        if handler is None:
            self._say(f"✗ Unknown command '{command}' (type 'help')")
            return not self._quit.is_set()
        self._logger.debug("Command: %s %s", command, " ".join(args))
        await handler(args)
        return not self._quit.is_set()

    async def wait_idle(self) -> None:
        await self.tasks.wait_all()

    # ------------------------------------------------------------------
    # Camera commands

    async def _cmd_start(self, args: List[str]) -> None:
        facing = None
        if args:
            try:
                facing = FacingDirection.parse(args[0])
            except ValueError as exc:
                self._say(f"✗ {exc}")
                return
        self._camera_task("start", self.session.start(facing))

    async def _cmd_switch(self, args: List[str]) -> None:
        self._camera_task("switch", self.session.switch_facing())

    async def _cmd_torch(self, args: List[str]) -> None:
        if not args or args[0].lower() not in ("on", "off"):
            self._say("✗ Usage: torch on|off")
            return
        self._camera_task("torch", self.session.set_illumination(args[0].lower() == "on"))

    async def _cmd_stop(self, args: List[str]) -> None:
        self._camera_task("stop", self.session.stop())

    async def _cmd_capture(self, args: List[str]) -> None:
        try:
            image = await self.session.capture()
        except CameraError as exc:
            self._report_camera_error("capture", exc)
            return
        self._say(f"✓ Captured {image.width}x{image.height} photo")

    def _camera_task(self, name: str, operation: Awaitable[object]) -> None:
        if self.session.controller.busy:
            self._say(f"… {name} queued behind the current camera request")
        self.tasks.create(f"camera-{name}", self._run_camera_operation(name, operation))

    async def _run_camera_operation(self, name: str, operation: Awaitable[object]) -> None:
        try:
            await operation
        except CameraError as exc:
            self._report_camera_error(name, exc)
            return
        self._say(f"✓ {name}: {self._describe_camera()}")

    def _report_camera_error(self, name: str, exc: CameraError) -> None:
        self._logger.warning("%s failed: %s: %s", name, type(exc).__name__, exc)
        self._say(f"✗ {name} failed ({type(exc).__name__}): {exc}")

    # ------------------------------------------------------------------
    # Draft / catalog commands

    async def _cmd_discard(self, args: List[str]) -> None:
        if self.session.discard():
            self._say("✓ Photo discarded")
        else:
            self._say("Nothing to discard")

    async def _cmd_set(self, args: List[str]) -> None:
        if len(args) < 2:
            self._say("✗ Usage: set <brand|size|gender|supplier> <value>")
            return
        try:
            value = self.session.set_field(args[0], self._field_value(args))
        except KeyError:
            self._say(f"✗ Unknown field '{args[0]}' (brand, size, gender, supplier)")
            return
        except ValueError as exc:
            self._say(f"✗ {exc}")
            return
        self._say(f"✓ {resolve_field(args[0])} = {value}")

    def _field_value(self, args: List[str]) -> str:
        match = _SET_VALUE.match(self._line)
        return match.group(1) if match else " ".join(args[1:])

    async def _cmd_clear(self, args: List[str]) -> None:
        if not args:
            self._say("✗ Usage: clear <field>")
            return
        try:
            self.session.clear_field(args[0])
        except KeyError:
            self._say(f"✗ Unknown field '{args[0]}'")
            return
        self._say(f"✓ {resolve_field(args[0])} cleared")

    async def _cmd_draft(self, args: List[str]) -> None:
        draft = self.session.draft
        for name in FIELD_OPTIONS:
            value = getattr(draft, name) or "-"
            choices = field_choices(name)
            hint = f"  ({' / '.join(choices)})" if choices else ""
            self._say(f"  {name:<12} {value}{hint}")
        pending = self.session.pending
        self._say(f"  {'photo':<12} {f'{pending.width}x{pending.height}' if pending else '-'}")

    async def _cmd_save(self, args: List[str]) -> None:
        entry = self.session.commit()
        suffix = "" if entry.image is not None else " (no photo)"
        self._say(f"✓ Saved entry {len(self.session.catalog)}{suffix}")

    async def _cmd_list(self, args: List[str]) -> None:
        self._say(f"Saved Entries: {len(self.session.catalog)}")
        for index, entry in enumerate(self.session.catalog, start=1):
            photo = f"{entry.image.width}x{entry.image.height}" if entry.image else "none"
            self._say(
                f"  {index}. Brand: {entry.brand or '-'} | Size: {entry.size or '-'} | "
                f"Gender/Age: {entry.gender_age or '-'} | Supplier ID: {entry.supplier_id or '-'} | Photo: {photo}"
            )

    async def _cmd_export(self, args: List[str]) -> None:
        filename = args[0] if args else None
        try:
            path = await self.session.export(filename)
        except OSError as exc:
            self._logger.error("Export failed: %s", exc)
            self._say(f"✗ Export failed: {exc}")
            return
        self._say(f"✓ Exported {len(self.session.catalog)} entries to {path}")

    # ------------------------------------------------------------------
    # Misc

    async def _cmd_status(self, args: List[str]) -> None:
        self._say(self._describe_camera())

    async def _cmd_help(self, args: List[str]) -> None:
        self._say(HELP_TEXT)

    async def _cmd_quit(self, args: List[str]) -> None:
        self._logger.info("Quit command received")
        self._say("✓ Quitting...")
        self._quit.set()

    def _describe_camera(self) -> str:
        camera = self.session.camera
        parts = [f"camera {camera.status.value}", f"facing {camera.facing.value}"]
        if camera.resolution:
            parts.append(f"{camera.resolution[0]}x{camera.resolution[1]}")
        if camera.illumination_supported:
            parts.append(f"torch {'on' if camera.illumination_requested else 'off'}")
        else:
            parts.append("no torch")
        return ", ".join(parts)

    def _say(self, text: str) -> None:
        print(text, file=self._out)
        self._out.flush()


__all__ = ["HELP_TEXT", "OperatorConsole", "open_stdin_reader"]
