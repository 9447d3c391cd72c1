"""Session catalog of saved entries."""

from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

from garment_capture.camera.snapshot import StillImage
from garment_capture.core.logging_utils import LoggerLike, ensure_structured_logger

from .export import serialize_entries
from .model import CatalogEntry, DraftMetadata


class Catalog:
    """Append-only, insertion-ordered list of entries for one session."""

    def __init__(self, *, logger: LoggerLike = None) -> None:
        self._entries: List[CatalogEntry] = []
        self._logger = ensure_structured_logger(logger, fallback_name=__name__)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(tuple(self._entries))

    @property
    def entries(self) -> Tuple[CatalogEntry, ...]:
        return tuple(self._entries)

    def commit(self, draft: DraftMetadata, image: Optional[StillImage]) -> CatalogEntry:
        """Append an entry built from ``draft`` and ``image``. Nothing is validated."""

        entry = CatalogEntry.from_draft(draft, image)
        self._entries.append(entry)
        if image is None:
            self._logger.warning("Entry %d saved without a photo", len(self._entries))
        self._logger.info(
            "Saved entry %d: brand=%r size=%r genderAge=%r supplierId=%r",
            len(self._entries),
            entry.brand,
            entry.size,
            entry.gender_age,
            entry.supplier_id,
        )
        return entry

    def export_document(self) -> str:
        return serialize_entries(self._entries)


__all__ = ["Catalog"]
