from __future__ import annotations

import logging
import re
import time
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import ProtocolError, TransportError


logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

SESSION_TOKEN_RE = re.compile(r'/home/produk/(\w{26})"')


def create_session(user_agent: Optional[str] = None, total_retries: int = 5) -> requests.Session:
    """Cookie-bearing session shared by every request of one run.

    Retry and backoff are handled here by urllib3, never by the engine.
    """
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": user_agent or DEFAULT_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "id-ID,id;q=0.9,en-US;q=0.8,en;q=0.7",
            "Connection": "keep-alive",
        }
    )

    retry = Retry(
        total=total_retries,
        backoff_factor=0.7,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET", "HEAD"),
        raise_on_status=False,
        respect_retry_after_header=True,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def fetch_html(
    url: str,
    session: requests.Session,
    timeout_seconds: Optional[float] = None,
    pause_seconds: float = 0.0,
) -> tuple[str, str]:
    """
    Fetch HTML document. Returns (final_url, html_text).
    Raises TransportError for non-2xx responses and connection failures.
    """
    if pause_seconds > 0:
        time.sleep(pause_seconds)
    logger.debug("GET %s", url)
    try:
        response = session.get(url, timeout=timeout_seconds, allow_redirects=True)
        response.raise_for_status()
    except requests.HTTPError as exc:
        resp = exc.response
        raise TransportError(resp.status_code, resp.reason or "HTTP error", url) from exc
    except requests.RequestException as exc:
        # no response to relay; report like an internal server error
        raise TransportError(500, str(exc), url) from exc
    return response.url, response.text


def acquire_session(
    session: requests.Session,
    base_url: str,
    timeout_seconds: Optional[float] = None,
) -> str:
    """Fetch the landing page and return the session token embedded in it."""
    logger.debug("Requesting front page %s", base_url)
    try:
        _, html = fetch_html(base_url, session=session, timeout_seconds=timeout_seconds)
    except TransportError as exc:
        raise TransportError(
            exc.status, f"Can't get front page ({base_url}): {exc.message}", base_url
        ) from exc
    m = SESSION_TOKEN_RE.search(html)
    if not m:
        raise ProtocolError("session token not found")
    return m.group(1)
