from __future__ import annotations

import enum
import logging
from typing import Mapping, Optional
from urllib.parse import quote

import requests

from .config import DEFAULT_BASE_URL
from .errors import ProtocolError, TransportError
from .extract import CountBanner, extract_rows, parse_count_banner
from .fetch import fetch_html
from .types import FIELD_CODES, ExtractionShortfall, SearchField, SearchPage


logger = logging.getLogger(__name__)

INITIAL_PAGE_SIZE = 100
# The upstream never serves more than this many rows for one search
RESULT_CEILING = 5000
MAX_ROUNDS = 2


class SearchState(enum.Enum):
    PROBING = "probing"
    CONVERGED = "converged"
    FAILED = "failed"


def build_search_url(
    base_url: str, session_token: str, field_code: int, query: str, page_size: int, page_num: int = 0
) -> str:
    return (
        f"{base_url}/home/produk/{session_token}/all/row/{page_size}/page/{page_num}"
        f"/order/4/DESC/search/{field_code}/{quote(query, safe='')}"
    )


class PaginatedSearch:
    """Runs one (field, query) search until the page size covers every row.

    Round 1 asks for page 0 with ``INITIAL_PAGE_SIZE`` rows. When the count
    banner says more rows exist (and fewer than ``RESULT_CEILING``), page 0 is
    requested again with the page size set to the declared total. At most
    ``MAX_ROUNDS`` rounds are made.

    ``strict_count`` turns a parsed-vs-declared row shortfall into a
    ProtocolError; by default it is only logged and reported on the page.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        field_codes: Mapping[SearchField, int] = FIELD_CODES,
        strict_count: bool = False,
        timeout_seconds: Optional[float] = None,
        pause_seconds: float = 0.0,
        trace_content: bool = False,
    ):
        self.base_url = base_url.rstrip("/")
        self.field_codes = field_codes
        self.strict_count = strict_count
        self.timeout_seconds = timeout_seconds
        self.pause_seconds = pause_seconds
        self.trace_content = trace_content

    def _fetch_round(
        self, http: requests.Session, session_token: str, field: SearchField, query: str, page_size: int
    ) -> tuple[str, Optional[CountBanner]]:
        url = build_search_url(self.base_url, session_token, self.field_codes[field], query, page_size)
        logger.debug("Querying cekbpom (%s=%s, %d result(s)) ...", field.value, query, page_size)
        try:
            _, html = fetch_html(
                url, session=http, timeout_seconds=self.timeout_seconds, pause_seconds=self.pause_seconds
            )
        except TransportError as exc:
            raise TransportError(exc.status, f"Can't get result page: {exc.message}", url) from exc
        return html, parse_count_banner(html)

    def search(self, http: requests.Session, session_token: str, field: SearchField, query: str) -> SearchPage:
        state = SearchState.PROBING
        page_size = INITIAL_PAGE_SIZE
        rounds = 0
        html = ""
        banner: Optional[CountBanner] = None

        while state is SearchState.PROBING:
            rounds += 1
            html, banner = self._fetch_round(http, session_token, field, query, page_size)
            if banner is None:
                state = SearchState.FAILED
            elif banner.end >= banner.total or banner.total >= RESULT_CEILING:
                state = SearchState.CONVERGED
            elif rounds >= MAX_ROUNDS:
                logger.warning(
                    "Page size %d still shows %d of %d result(s) for %s=%r, accepting",
                    page_size, banner.end, banner.total, field.value, query,
                )
                state = SearchState.CONVERGED
            else:
                page_size = banner.total

        if state is SearchState.FAILED or banner is None:
            raise ProtocolError("signature not found")

        if self.trace_content:
            logger.debug("%s", html)

        rows = list(extract_rows(html))
        # rows past the ceiling are never served, so only count what the page holds
        expected = min(banner.total, banner.end)
        shortfall = None
        if len(rows) < expected:
            shortfall = ExtractionShortfall(field=field, query=query, parsed=len(rows), expected=expected)
            if self.strict_count:
                raise ProtocolError(
                    f"Some results cannot be parsed (only got {len(rows)} out of {expected})"
                )
            logger.warning(
                "Some results cannot be parsed (only got %d out of %d)", len(rows), expected
            )
        else:
            logger.debug("Got %d result(s)", banner.total)

        return SearchPage(rows=rows, declared_total=banner.total, rounds=rounds, shortfall=shortfall)
