"""Metadata model, session catalog and export document."""

from .catalog import Catalog
from .export import ExportFormatError, FileDelivery, parse_document, serialize_entries
from .model import Brand, CatalogEntry, DraftMetadata, GenderAge, MetadataForm, Size

__all__ = [
    "Brand",
    "Catalog",
    "CatalogEntry",
    "DraftMetadata",
    "ExportFormatError",
    "FileDelivery",
    "GenderAge",
    "MetadataForm",
    "Size",
    "parse_document",
    "serialize_entries",
]
