from __future__ import annotations

import logging
import time
from typing import Dict, Hashable, Iterable, List, Optional, Sequence, TypeVar, Union

import requests

from .config import Settings
from .detail import DetailEnricher
from .errors import CekBpomError, InputError
from .fetch import acquire_session, create_session
from .search import PaginatedSearch
from .types import (
    DEFAULT_FIELDS,
    FIELD_ORDER,
    ExtractionShortfall,
    ResultEnvelope,
    ResultRow,
    RunTiming,
    SearchField,
    parse_search_field,
)


logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Hashable)
FieldLike = Union[SearchField, str]


def _dedupe_keep_order(items: Iterable[T]) -> List[T]:
    seen = set()
    result: List[T] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result


def resolve_fields(fields: Optional[Sequence[FieldLike]]) -> List[SearchField]:
    """None selects the default fields; an empty sequence is an error."""
    if fields is None:
        return list(DEFAULT_FIELDS)
    resolved = [f if isinstance(f, SearchField) else parse_search_field(f) for f in fields]
    if not resolved:
        raise InputError("Please specify search fields")
    return _dedupe_keep_order(resolved)


def resolve_queries(queries: Optional[Union[str, Sequence[str]]]) -> List[str]:
    if queries is None:
        raise InputError("Please specify queries")
    if isinstance(queries, str):
        queries = [queries]
    queries = list(queries)
    if not queries:
        raise InputError("Please specify queries")
    return queries


def no_results_hint(queries: Sequence[str], fields: Sequence[SearchField]) -> str:
    return (
        f"No results found for {', '.join(queries)} "
        f"(search types: {', '.join(f.value for f in fields)}). "
        "Perhaps try other spelling variations or additional search types."
    )


class SearchOrchestrator:
    """Searches every (query, field) pair and merges the rows of one run.

    Queries form the outer loop and fields the inner one. A row is kept only
    the first time its registration id is seen, so that order decides which
    duplicate survives. All requests of a run share one HTTP client and one
    session token.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http: Optional[requests.Session] = None,
        search: Optional[PaginatedSearch] = None,
        enricher: Optional[DetailEnricher] = None,
    ):
        self.settings = settings or Settings()
        self.http = http
        self.search = search or PaginatedSearch(
            base_url=self.settings.base_url,
            strict_count=self.settings.strict_count,
            timeout_seconds=self.settings.timeout,
            pause_seconds=self.settings.delay,
            trace_content=self.settings.trace_content,
        )
        self.enricher = enricher or DetailEnricher(
            base_url=self.settings.base_url,
            timeout_seconds=self.settings.timeout,
            pause_seconds=self.settings.delay,
        )

    def _http_client(self) -> requests.Session:
        if self.http is not None:
            return self.http
        return create_session(user_agent=self.settings.user_agent, total_retries=self.settings.retries)

    def run(
        self,
        fields: Optional[Sequence[FieldLike]] = None,
        queries: Optional[Union[str, Sequence[str]]] = None,
        enrich: bool = False,
    ) -> ResultEnvelope:
        started_at = time.time()
        query_duration = 0.0

        def envelope(status: int, message: str, rows=(), metadata=None) -> ResultEnvelope:
            timing = RunTiming(started_at=started_at, finished_at=time.time(), query_duration=query_duration)
            return ResultEnvelope(
                status=status,
                message=message,
                data=tuple(rows),
                metadata=metadata if metadata is not None else {"field_order": list(FIELD_ORDER)},
                timing=timing,
            )

        try:
            search_fields = resolve_fields(fields)
            search_queries = resolve_queries(queries)
        except InputError as exc:
            return envelope(exc.status, exc.message)

        http = self._http_client()
        seen_ids: set = set()
        all_rows: List[ResultRow] = []
        shortfalls: List[ExtractionShortfall] = []

        try:
            logger.debug("Requesting cekbpom front page ...")
            session_token = acquire_session(http, self.settings.base_url, timeout_seconds=self.settings.timeout)

            time_before_query = time.time()
            for query in search_queries:
                for field in search_fields:
                    page = self.search.search(http, session_token, field, query)
                    if page.shortfall is not None:
                        shortfalls.append(page.shortfall)
                    for row in page.rows:
                        if row.registration_id in seen_ids:
                            continue
                        seen_ids.add(row.registration_id)
                        all_rows.append(row)
            query_duration = time.time() - time_before_query

            if len(search_fields) > 1 or len(search_queries) > 1:
                logger.debug("Got a total of %d result(s)", len(all_rows))

            if enrich:
                self.enricher.enrich(http, session_token, all_rows)
        except CekBpomError as exc:
            logger.error("Search aborted: %s", exc)
            return envelope(exc.status, exc.message)
        finally:
            if self.http is None:
                http.close()

        metadata: Dict[str, object] = {"field_order": list(FIELD_ORDER)}
        if not all_rows:
            metadata["no_results_hint"] = no_results_hint(search_queries, search_fields)
        if shortfalls:
            metadata["shortfalls"] = [s.to_dict() for s in shortfalls]
        return envelope(200, "OK", all_rows, metadata)
