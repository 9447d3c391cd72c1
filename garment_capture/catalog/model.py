"""Clothing metadata: closed option sets, the draft form and catalog entries."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, Optional, Tuple, Type

from garment_capture.camera.snapshot import StillImage


class Brand(str, Enum):
    NIKE = "Nike"
    ADIDAS = "Adidas"


class Size(str, Enum):
    S = "S"
    M = "M"
    L = "L"


class GenderAge(str, Enum):
    MEN = "Men"
    WOMEN = "Women"
    KIDS = "Kids"


UNSET = ""

# Field name -> closed option set (None: free text).
FIELD_OPTIONS: Dict[str, Optional[Type[Enum]]] = {
    "brand": Brand,
    "size": Size,
    "gender_age": GenderAge,
    "supplier_id": None,
}

FIELD_ALIASES = {
    "brand": "brand",
    "size": "size",
    "gender": "gender_age",
    "genderage": "gender_age",
    "gender_age": "gender_age",
    "segment": "gender_age",
    "supplier": "supplier_id",
    "supplierid": "supplier_id",
    "supplier_id": "supplier_id",
}


@dataclass(frozen=True, slots=True)
class DraftMetadata:
    """Snapshot of the four form fields. Unset fields are ``""``."""

    brand: str = UNSET
    size: str = UNSET
    gender_age: str = UNSET
    supplier_id: str = UNSET

    @property
    def is_empty(self) -> bool:
        return not any((self.brand, self.size, self.gender_age, self.supplier_id))


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    brand: str = UNSET
    size: str = UNSET
    gender_age: str = UNSET
    supplier_id: str = UNSET
    image: Optional[StillImage] = field(default=None, repr=False)

    @classmethod
    def from_draft(cls, draft: DraftMetadata, image: Optional[StillImage]) -> "CatalogEntry":
        return cls(
            brand=draft.brand,
            size=draft.size,
            gender_age=draft.gender_age,
            supplier_id=draft.supplier_id,
            image=image,
        )

    @property
    def metadata(self) -> DraftMetadata:
        return DraftMetadata(self.brand, self.size, self.gender_age, self.supplier_id)


def resolve_field(name: str) -> str:
    key = name.strip().lower().replace("-", "_").replace("/", "")
    try:
        return FIELD_ALIASES[key]
    except KeyError:
        raise KeyError(f"Unknown field {name!r}") from None


def field_choices(name: str) -> Tuple[str, ...]:
    options = FIELD_OPTIONS[resolve_field(name)]
    return () if options is None else tuple(option.value for option in options)


class MetadataForm:
    """In-progress metadata for the next entry.

    Closed fields only take one of their listed options, matched
    case-insensitively, the same way a select control only offers its own
    choices. Free-text fields are stored exactly as given. Completeness is
    never checked.
    """

    def __init__(self) -> None:
        self._values: Dict[str, str] = {f.name: UNSET for f in fields(DraftMetadata)}

    def set_field(self, name: str, value: str) -> str:
        key = resolve_field(name)
        options = FIELD_OPTIONS[key]
        text = value or ""
        if options is not None:
            text = text.strip()
        elif not text.strip():
            text = UNSET
        if options is not None and text:
            matched = next((o.value for o in options if o.value.lower() == text.lower()), None)
            if matched is None:
                choices = ", ".join(o.value for o in options)
                raise ValueError(f"{text!r} is not a valid {key}; choose one of {choices}")
            text = matched
        self._values[key] = text
        return text

    def clear_field(self, name: str) -> None:
        self._values[resolve_field(name)] = UNSET

    def snapshot(self) -> DraftMetadata:
        return DraftMetadata(**self._values)

    def reset(self) -> None:
        for key in self._values:
            self._values[key] = UNSET


__all__ = [
    "Brand",
    "CatalogEntry",
    "DraftMetadata",
    "FIELD_OPTIONS",
    "GenderAge",
    "MetadataForm",
    "Size",
    "UNSET",
    "field_choices",
    "resolve_field",
]
