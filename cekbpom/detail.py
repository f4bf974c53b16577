from __future__ import annotations

import logging
from typing import List, Optional

import requests

from .config import DEFAULT_BASE_URL
from .errors import TransportError
from .extract import parse_manufacturer
from .fetch import fetch_html
from .types import ResultRow


logger = logging.getLogger(__name__)


def build_detail_url(base_url: str, session_token: str, registration_id: str) -> str:
    return f"{base_url}/home/detil/{session_token}/produk/{registration_id}"


class DetailEnricher:
    """Fills in manufacturer fields from each row's product detail page.

    One GET per row. A failed fetch or a page without the manufacturer line
    leaves that row's manufacturer fields unset and moves on.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: Optional[float] = None,
        pause_seconds: float = 0.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.pause_seconds = pause_seconds

    def enrich(self, http: requests.Session, session_token: str, rows: List[ResultRow]) -> List[ResultRow]:
        total = len(rows)
        for idx, row in enumerate(rows, start=1):
            logger.debug(
                "[%d/%d] Getting product detail for %s (%s) ...",
                idx, total, row.registration_id, row.product_name,
            )
            url = build_detail_url(self.base_url, session_token, row.registration_id)
            try:
                _, html = fetch_html(
                    url, session=http, timeout_seconds=self.timeout_seconds, pause_seconds=self.pause_seconds
                )
            except TransportError as exc:
                logger.warning(
                    "Cannot get product detail for %s (%s), skipped: %s",
                    row.registration_id, row.product_name, exc,
                )
                continue

            manufacturer = parse_manufacturer(html)
            if manufacturer is None:
                logger.warning(
                    "Cannot get manufacturer detail for %s (%s), skipped",
                    row.registration_id, row.product_name,
                )
                continue
            row.manufacturer_id = manufacturer.id
            row.manufacturer_name = manufacturer.name
            row.manufacturer_country = manufacturer.country
        return rows
