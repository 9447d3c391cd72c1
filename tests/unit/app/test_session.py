"""Unit tests for CaptureSession: camera, draft, catalog and export together."""

import json

import pytest

from garment_capture.app.session import CaptureSession
from garment_capture.camera.backends.mock_backend import MockCameraBackend
from garment_capture.camera.controller import CameraSessionController
from garment_capture.camera.errors import DeviceUnavailable, NoActiveStream
from garment_capture.camera.snapshot import StillImage
from garment_capture.camera.state import FacingDirection, SessionStatus
from garment_capture.catalog.export import FileDelivery, parse_document


class TestCaptureFlow:

    @pytest.mark.asyncio
    async def test_capture_and_commit_entry(self, session):
        await session.start(FacingDirection.REAR)
        await session.capture()
        session.set_field("brand", "Nike")
        session.set_field("size", "M")
        session.set_field("gender", "Men")
        session.set_field("supplier", "S100")

        entry = session.commit()

        assert (entry.brand, entry.size, entry.gender_age, entry.supplier_id) == ("Nike", "M", "Men", "S100")
        assert entry.image is not None
        assert len(session.catalog) == 1
        assert session.draft.is_empty
        assert session.pending is None

        item = json.loads(session.export_document())[0]
        assert item["brand"] == "Nike"
        assert item["genderAge"] == "Men"
        assert item["supplierId"] == "S100"
        assert item["image"].startswith("data:image/png;base64,")
        await session.aclose()

    @pytest.mark.asyncio
    async def test_capture_without_camera_keeps_pending_empty(self, tmp_path):
        backend = MockCameraBackend(available=(), fps=200.0)
        session = CaptureSession(CameraSessionController(backend), delivery=FileDelivery(tmp_path))

        with pytest.raises(DeviceUnavailable):
            await session.start()
        with pytest.raises(NoActiveStream):
            await session.capture()

        assert session.pending is None
        assert session.camera.status is SessionStatus.CLOSED

    @pytest.mark.asyncio
    async def test_failed_capture_keeps_previous_photo(self, session):
        await session.start()
        first = await session.capture()
        await session.stop()

        with pytest.raises(NoActiveStream):
            await session.capture()

        assert session.pending is first

    @pytest.mark.asyncio
    async def test_recapture_replaces_pending(self, session):
        await session.start()
        await session.capture()

        second = await session.capture()

        assert session.pending is second
        await session.aclose()

    @pytest.mark.asyncio
    async def test_discard(self, session):
        await session.start()
        await session.capture()

        assert session.discard() is True
        assert session.discard() is False
        assert session.commit().image is None
        await session.aclose()

    def test_commit_without_photo_or_fields(self, session):
        entry = session.commit()

        assert entry.image is None
        assert entry.metadata.is_empty
        assert len(session.catalog) == 1

    @pytest.mark.asyncio
    async def test_camera_state_view(self, session):
        await session.start()
        await session.set_illumination(True)

        camera = session.camera

        assert camera.is_open
        assert camera.illumination_requested is True
        assert camera.illumination_supported is True
        await session.switch_facing()
        assert session.camera.facing is FacingDirection.FRONT
        await session.aclose()
        assert session.camera.status is SessionStatus.CLOSED


class TestExport:

    @pytest.mark.asyncio
    async def test_export_counts_and_order(self, session, export_dir):
        await session.start()
        for brand in ("Nike", "Adidas", "Nike"):
            await session.capture()
            session.set_field("brand", brand)
            session.commit()
        await session.stop()

        path = await session.export()

        payload = json.loads(path.read_text(encoding="utf-8"))
        assert path.parent == export_dir
        assert [item["brand"] for item in payload] == ["Nike", "Adidas", "Nike"]
        assert all(item["image"] for item in payload)

    @pytest.mark.asyncio
    async def test_export_round_trip(self, session):
        session.set_field("size", "L")
        session.commit()
        session.set_field("supplier", "Z-9")
        session.commit()

        path = await session.export()

        restored = parse_document(path.read_text(encoding="utf-8"))
        assert restored == list(session.catalog.entries)

    @pytest.mark.asyncio
    async def test_second_export_gets_new_name(self, session, export_dir):
        first = await session.export()
        second = await session.export()

        assert first == export_dir / "clothing-data.json"
        assert second == export_dir / "clothing-data (1).json"

    @pytest.mark.asyncio
    async def test_export_of_empty_catalog(self, session):
        path = await session.export("empty.json")

        assert json.loads(path.read_text(encoding="utf-8")) == []

    @pytest.mark.asyncio
    async def test_exported_image_decodes(self, session):
        await session.start()
        image = await session.capture()
        session.commit()
        await session.aclose()

        path = await session.export()

        item = json.loads(path.read_text(encoding="utf-8"))[0]
        restored = StillImage.from_data_uri(item["image"])
        assert (restored.width, restored.height) == (image.width, image.height)
