from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import InputError


class SearchField(enum.Enum):
    REGISTRATION_NUMBER = "registration_number"
    PRODUCT_NAME = "product_name"
    BRAND = "brand"
    PACKAGING = "packaging"
    DOSAGE_FORM = "dosage_form"
    COMPOSITION = "composition"
    REGISTRANT_NAME = "registrant_name"
    REGISTRANT_TAX_ID = "registrant_tax_id"


# Numeric codes of the upstream search form
FIELD_CODES: Mapping[SearchField, int] = MappingProxyType(
    {
        SearchField.REGISTRATION_NUMBER: 0,
        SearchField.PRODUCT_NAME: 1,
        SearchField.BRAND: 2,
        SearchField.PACKAGING: 3,
        SearchField.DOSAGE_FORM: 4,
        SearchField.COMPOSITION: 5,
        SearchField.REGISTRANT_NAME: 6,
        SearchField.REGISTRANT_TAX_ID: 7,
    }
)

# Names used by the upstream site
FIELD_ALIASES: Mapping[str, SearchField] = MappingProxyType(
    {
        "nomor_registrasi": SearchField.REGISTRATION_NUMBER,
        "nama_produk": SearchField.PRODUCT_NAME,
        "merk": SearchField.BRAND,
        "jumlah_dan_kemasan": SearchField.PACKAGING,
        "bentuk_sediaan": SearchField.DOSAGE_FORM,
        "komposisi": SearchField.COMPOSITION,
        "nama_pendaftar": SearchField.REGISTRANT_NAME,
        "npwp_pendaftar": SearchField.REGISTRANT_TAX_ID,
    }
)

DEFAULT_FIELDS: Tuple[SearchField, ...] = (SearchField.PRODUCT_NAME, SearchField.BRAND)


@dataclass
class ResultRow:
    registration_id: str
    registration_number: str
    product_name: str
    brand: str
    packaging: str
    registrant_name: str
    registrant_city: str
    issue_date: Optional[str] = None
    manufacturer_id: Optional[str] = None
    manufacturer_name: Optional[str] = None
    manufacturer_country: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in FIELD_ORDER}


FIELD_ORDER: Tuple[str, ...] = (
    "registration_id",
    "registration_number",
    "issue_date",
    "product_name",
    "brand",
    "packaging",
    "registrant_name",
    "registrant_city",
    "manufacturer_id",
    "manufacturer_name",
    "manufacturer_country",
)


@dataclass(frozen=True)
class ExtractionShortfall:
    """Fewer rows were parsed than the count banner announced for the page."""

    field: SearchField
    query: str
    parsed: int
    expected: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field.value,
            "query": self.query,
            "parsed": self.parsed,
            "expected": self.expected,
        }


@dataclass
class SearchPage:
    rows: List[ResultRow]
    declared_total: int
    rounds: int
    shortfall: Optional[ExtractionShortfall] = None


@dataclass(frozen=True)
class RunTiming:
    started_at: float
    finished_at: float
    query_duration: float = 0.0

    @property
    def duration(self) -> float:
        return self.finished_at - self.started_at


@dataclass(frozen=True)
class ResultEnvelope:
    status: int
    message: str
    data: Tuple[ResultRow, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)
    timing: Optional[RunTiming] = None

    @property
    def ok(self) -> bool:
        return self.status == 200

    def to_list(self) -> list:
        """Return the ``[status, message, rows, metadata]`` form used by dumps."""
        return [
            self.status,
            self.message,
            [row.to_dict() for row in self.data],
            dict(self.metadata),
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "data": [row.to_dict() for row in self.data],
            "metadata": dict(self.metadata),
        }


def parse_search_field(name: str) -> SearchField:
    """Resolve an English or upstream (Indonesian) field name.

    Raises InputError for unknown names.
    """
    key = (name or "").strip().lower().replace("-", "_")
    if key in FIELD_ALIASES:
        return FIELD_ALIASES[key]
    try:
        return SearchField(key)
    except ValueError:
        raise InputError(f"Unknown search field '{name}'") from None
