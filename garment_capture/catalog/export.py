"""Export document codec and delivery.

The document is a JSON array in save order. Each element carries exactly
``brand``, ``size``, ``genderAge``, ``supplierId`` and ``image`` (a PNG data
URI, or ``null`` when the entry was saved without a photo).
"""

from __future__ import annotations

import asyncio
import contextlib
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import aiofiles

from garment_capture.camera.snapshot import StillImage
from garment_capture.core.logging_utils import LoggerLike, ensure_structured_logger

from .model import CatalogEntry

EXPORT_FIELDS = ("brand", "size", "genderAge", "supplierId", "image")

_TEXT_FIELDS = {
    "brand": "brand",
    "size": "size",
    "genderAge": "gender_age",
    "supplierId": "supplier_id",
}


class ExportFormatError(ValueError):
    """The document does not have the export shape."""


def entry_to_dict(entry: CatalogEntry) -> Dict[str, Any]:
    return {
        "brand": entry.brand,
        "size": entry.size,
        "genderAge": entry.gender_age,
        "supplierId": entry.supplier_id,
        "image": entry.image.to_data_uri() if entry.image is not None else None,
    }


def entry_from_dict(data: Any, *, index: int = 0) -> CatalogEntry:
    if not isinstance(data, dict):
        raise ExportFormatError(f"Entry {index} is not an object")
    keys = set(data)
    if keys != set(EXPORT_FIELDS):
        missing = sorted(set(EXPORT_FIELDS) - keys)
        extra = sorted(keys - set(EXPORT_FIELDS))
        raise ExportFormatError(f"Entry {index} has missing fields {missing} / unexpected fields {extra}")

    values: Dict[str, Any] = {}
    for doc_key, attr in _TEXT_FIELDS.items():
        value = data[doc_key]
        if not isinstance(value, str):
            raise ExportFormatError(f"Entry {index} field {doc_key!r} must be a string")
        values[attr] = value

    image_uri = data["image"]
    if image_uri is None:
        image = None
    elif isinstance(image_uri, str):
        try:
            image = StillImage.from_data_uri(image_uri)
        except ValueError as exc:
            raise ExportFormatError(f"Entry {index} image: {exc}") from exc
    else:
        raise ExportFormatError(f"Entry {index} field 'image' must be a data URI or null")

    return CatalogEntry(image=image, **values)


def serialize_entries(entries: Iterable[CatalogEntry]) -> str:
    return json.dumps([entry_to_dict(entry) for entry in entries], separators=(",", ":"), ensure_ascii=False)


def parse_document(text: str) -> List[CatalogEntry]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ExportFormatError(f"Document is not valid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise ExportFormatError("Document must be a JSON array of entries")
    return [entry_from_dict(item, index=index) for index, item in enumerate(payload)]


class FileDelivery:
    """Hands the exported document to the operator as a file on disk.

    An existing file is kept and the new one is named ``name (1).json``,
    ``name (2).json`` ... unless ``overwrite`` is set.
    """

    def __init__(
        self,
        output_dir: Path,
        filename: str = "clothing-data.json",
        *,
        overwrite: bool = False,
        logger: LoggerLike = None,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.filename = filename
        self.overwrite = overwrite
        self._logger = ensure_structured_logger(logger, fallback_name=__name__)

    def target_path(self, filename: Optional[str] = None) -> Path:
        candidate = self.output_dir / (filename or self.filename)
        if self.overwrite or not candidate.exists():
            return candidate
        stem, suffix = candidate.stem, candidate.suffix
        counter = 1
        while True:
            numbered = candidate.with_name(f"{stem} ({counter}){suffix}")
            if not numbered.exists():
                return numbered
            counter += 1

    async def deliver(self, document: str, *, filename: Optional[str] = None) -> Path:
        await asyncio.to_thread(self.output_dir.mkdir, parents=True, exist_ok=True)
        path = self.target_path(filename)
        tmp_path = path.with_name(f".{path.name}.partial")
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as fh:
                await fh.write(document)
            await asyncio.to_thread(tmp_path.replace, path)
        except OSError as exc:
            self._logger.error("Export to %s failed: %s", path, exc)
            with contextlib.suppress(OSError):
                await asyncio.to_thread(tmp_path.unlink)
            raise
        self._logger.info("Exported catalog to %s (%d bytes)", path, len(document.encode("utf-8")))
        return path


__all__ = [
    "EXPORT_FIELDS",
    "ExportFormatError",
    "FileDelivery",
    "entry_from_dict",
    "entry_to_dict",
    "parse_document",
    "serialize_entries",
]
