"""Unit tests for the operator console."""

import asyncio
import json

import pytest

from garment_capture.app.console import HELP_TEXT
from garment_capture.camera.state import FacingDirection, SessionStatus


async def run_commands(console, *lines):
    for line in lines:
        await console.handle(line)
        await console.wait_idle()


def output_lines(console_output):
    return console_output.getvalue().splitlines()


class TestCameraCommands:

    @pytest.mark.asyncio
    async def test_start_reports_camera_state(self, console, console_output):
        await run_commands(console, "start")

        assert "✓ start: camera open, facing rear, 1280x720, torch off" in output_lines(console_output)
        await console.session.aclose()

    @pytest.mark.asyncio
    async def test_start_front(self, console, console_output):
        await run_commands(console, "start front")

        assert console.session.camera.facing is FacingDirection.FRONT
        assert "✓ start: camera open, facing front, 1280x720, no torch" in output_lines(console_output)
        await console.session.aclose()

    @pytest.mark.asyncio
    async def test_start_unknown_direction(self, console, console_output):
        await run_commands(console, "start sideways")

        assert output_lines(console_output)[-1].startswith("✗ ")
        assert console.session.camera.status is SessionStatus.CLOSED

    @pytest.mark.asyncio
    async def test_torch_on_rear(self, console, console_output):
        await run_commands(console, "start", "torch on")

        assert "✓ torch: camera open, facing rear, 1280x720, torch on" in output_lines(console_output)
        await console.session.aclose()

    @pytest.mark.asyncio
    async def test_torch_on_front_is_unsupported(self, console, console_output):
        await run_commands(console, "start front", "torch on")

        last = output_lines(console_output)[-1]
        assert last.startswith("✗ torch failed (CapabilityUnsupported)")
        assert console.session.camera.illumination_requested is False
        await console.session.aclose()

    @pytest.mark.asyncio
    async def test_torch_usage(self, console, console_output):
        await run_commands(console, "torch bright")

        assert output_lines(console_output)[-1] == "✗ Usage: torch on|off"

    @pytest.mark.asyncio
    async def test_switch(self, console, console_output):
        await run_commands(console, "start", "switch")

        assert console.session.camera.facing is FacingDirection.FRONT
        assert output_lines(console_output)[-1].startswith("✓ switch: camera open, facing front")
        await console.session.aclose()

    @pytest.mark.asyncio
    async def test_capture_without_camera(self, console, console_output):
        await run_commands(console, "capture")

        assert output_lines(console_output)[-1].startswith("✗ capture failed (NoActiveStream)")

    @pytest.mark.asyncio
    async def test_capture(self, console, console_output):
        await run_commands(console, "start", "capture")

        assert output_lines(console_output)[-1] == "✓ Captured 1280x720 photo"
        assert console.session.pending is not None
        await console.session.aclose()

    @pytest.mark.asyncio
    async def test_stop(self, console, console_output):
        await run_commands(console, "start", "stop")

        assert console.session.camera.status is SessionStatus.CLOSED
        assert output_lines(console_output)[-1] == "✓ stop: camera closed, facing rear, no torch"

    @pytest.mark.asyncio
    async def test_overlapping_requests_are_queued(self, console, console_output, backend):
        backend.open_delay = 0.01
        await console.handle("start")
        await asyncio.sleep(0)
        await console.handle("switch")
        await console.wait_idle()

        assert console.session.camera.facing is FacingDirection.FRONT
        assert backend.max_concurrent == 1
        assert "… switch queued behind the current camera request" in output_lines(console_output)
        await console.session.aclose()


class TestCatalogCommands:

    @pytest.mark.asyncio
    async def test_set_and_save(self, console, console_output):
        await run_commands(
            console,
            "set brand nike",
            "set size M",
            "set gender men",
            "set supplier S100",
            "save",
        )

        lines = output_lines(console_output)
        assert "✓ brand = Nike" in lines
        assert "✓ gender_age = Men" in lines
        assert lines[-1] == "✓ Saved entry 1 (no photo)"
        entry = console.session.catalog.entries[0]
        assert (entry.brand, entry.size, entry.gender_age, entry.supplier_id) == ("Nike", "M", "Men", "S100")

    @pytest.mark.asyncio
    async def test_set_invalid_option(self, console, console_output):
        await run_commands(console, "set size XXL")

        assert output_lines(console_output)[-1].startswith("✗ ")
        assert console.session.draft.size == ""

    @pytest.mark.asyncio
    async def test_set_unknown_field(self, console, console_output):
        await run_commands(console, "set colour red")

        assert output_lines(console_output)[-1].startswith("✗ Unknown field 'colour'")

    @pytest.mark.asyncio
    async def test_set_usage(self, console, console_output):
        await run_commands(console, "set brand")

        assert output_lines(console_output)[-1].startswith("✗ Usage: set")

    @pytest.mark.asyncio
    async def test_supplier_keeps_spaces(self, console):
        await run_commands(console, "set supplier Acme Textiles 42")

        assert console.session.draft.supplier_id == "Acme Textiles 42"

    @pytest.mark.asyncio
    async def test_supplier_keeps_repeated_spaces(self, console):
        await run_commands(console, "set supplier ACME  Textiles  #42\n")

        assert console.session.draft.supplier_id == "ACME  Textiles  #42"

    @pytest.mark.asyncio
    async def test_clear(self, console, console_output):
        await run_commands(console, "set brand adidas", "clear brand")

        assert console.session.draft.brand == ""
        assert output_lines(console_output)[-1] == "✓ brand cleared"

    @pytest.mark.asyncio
    async def test_draft_listing(self, console, console_output):
        await run_commands(console, "set brand nike", "draft")

        lines = output_lines(console_output)
        assert any(line.split()[:2] == ["brand", "Nike"] for line in lines)
        assert any(line.split()[:2] == ["photo", "-"] for line in lines)

    @pytest.mark.asyncio
    async def test_list_entries(self, console, console_output):
        await run_commands(console, "set brand nike", "save", "set size s", "save", "list")

        lines = output_lines(console_output)
        assert "Saved Entries: 2" in lines
        assert lines[-2].startswith("  1. Brand: Nike | Size: -")
        assert lines[-1].startswith("  2. Brand: - | Size: S")

    @pytest.mark.asyncio
    async def test_discard(self, console, console_output):
        await run_commands(console, "start", "capture", "discard")

        assert output_lines(console_output)[-1] == "✓ Photo discarded"
        assert console.session.pending is None
        await console.session.aclose()

    @pytest.mark.asyncio
    async def test_export(self, console, console_output, export_dir):
        await run_commands(console, "set brand nike", "save", "export")

        path = export_dir / "clothing-data.json"
        assert output_lines(console_output)[-1] == f"✓ Exported 1 entries to {path}"
        assert json.loads(path.read_text(encoding="utf-8"))[0]["brand"] == "Nike"

    @pytest.mark.asyncio
    async def test_export_with_filename(self, console, export_dir):
        await run_commands(console, "export monday.json")

        assert (export_dir / "monday.json").exists()


class TestConsoleLoop:

    @pytest.mark.asyncio
    async def test_unknown_command(self, console, console_output):
        assert await console.handle("dance") is True

        assert output_lines(console_output)[-1] == "✗ Unknown command 'dance' (type 'help')"

    @pytest.mark.asyncio
    async def test_blank_line_ignored(self, console, console_output):
        assert await console.handle("   ") is True
        assert console_output.getvalue() == ""

    @pytest.mark.asyncio
    async def test_quit(self, console, console_output):
        assert await console.handle("quit") is False

        assert console.quit_requested
        assert output_lines(console_output)[-1] == "✓ Quitting..."

    @pytest.mark.asyncio
    async def test_run_reads_until_quit(self, console, console_output):
        reader = asyncio.StreamReader()
        reader.feed_data(b"set brand nike\nsave\nquit\nset brand adidas\n")

        await asyncio.wait_for(console.run(reader), timeout=2.0)

        assert console.session.catalog.entries[0].brand == "Nike"
        assert console.session.draft.brand == ""
        assert HELP_TEXT.splitlines()[0] in output_lines(console_output)

    @pytest.mark.asyncio
    async def test_run_stops_at_end_of_input(self, console):
        reader = asyncio.StreamReader()
        reader.feed_data(b"set size m\n")
        reader.feed_eof()

        await asyncio.wait_for(console.run(reader), timeout=2.0)

        assert console.session.draft.size == "M"
        assert not console.quit_requested
