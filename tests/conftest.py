"""
Shared fixtures: a fake upstream site standing in for requests.Session, and
builders for the HTML pages it serves.
"""

import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union
from urllib.parse import unquote

import pytest
import requests

from cekbpom.config import Settings

BASE_URL = "https://cekbpom.test/index.php"
TOKEN = "abcdefghijklmnopqrstuvwxyz"  # 26 chars

SEARCH_URL_RE = re.compile(
    r"/home/produk/(?P<token>\w+)/all/row/(?P<size>\d+)/page/(?P<page>\d+)"
    r"/order/4/DESC/search/(?P<code>\d+)/(?P<query>.*)$"
)
DETAIL_URL_RE = re.compile(r"/home/detil/(?P<token>\w+)/produk/(?P<reg_id>.+)$")


def make_response(url: str, body: str = "", status: int = 200, reason: str = "OK") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.reason = reason
    resp.url = url
    resp.encoding = "utf-8"
    resp._content = body.encode("utf-8")
    return resp


SearchHandler = Union[str, int, Callable[[int], str]]
DetailHandler = Union[str, int]


class FakeUpstream:
    """Serves the landing, search and detail pages of the site and records every GET."""

    def __init__(self, landing: Optional[str] = None, landing_status: int = 200):
        self.landing = landing_page() if landing is None else landing
        self.landing_status = landing_status
        self.searches: Dict[Tuple[int, str], SearchHandler] = {}
        self.details: Dict[str, DetailHandler] = {}
        self.calls: List[str] = []
        self.closed = False

    def add_search(self, code: int, query: str, handler: SearchHandler) -> None:
        self.searches[(code, query)] = handler

    def add_detail(self, reg_id: str, handler: DetailHandler) -> None:
        self.details[reg_id] = handler

    def search_calls(self) -> List[re.Match]:
        return [m for m in (SEARCH_URL_RE.search(u) for u in self.calls) if m]

    def get(self, url, timeout=None, allow_redirects=True):
        self.calls.append(url)
        if url == BASE_URL:
            reason = "OK" if self.landing_status == 200 else "Service Unavailable"
            return make_response(url, self.landing, self.landing_status, reason)

        m = SEARCH_URL_RE.search(url)
        if m:
            handler = self.searches.get((int(m.group("code")), unquote(m.group("query"))))
            if handler is None:
                return make_response(url, result_page([]))
            if isinstance(handler, int):
                return make_response(url, "error", status=handler, reason="Internal Server Error")
            body = handler(int(m.group("size"))) if callable(handler) else handler
            return make_response(url, body)

        m = DETAIL_URL_RE.search(url)
        if m:
            handler = self.details.get(m.group("reg_id"))
            if handler is None:
                return make_response(url, "<html><body>Data tidak ditemukan</body></html>")
            if isinstance(handler, int):
                return make_response(url, "error", status=handler, reason="Internal Server Error")
            return make_response(url, handler)

        return make_response(url, "not found", status=404, reason="Not Found")

    def close(self):
        self.closed = True


def landing_page(token: str = TOKEN) -> str:
    return (
        "<html><body><nav>"
        f'<a href="/index.php/home/produk/{token}" class="menu">Produk</a>'
        "</nav></body></html>"
    )


def result_row(
    reg_id: str,
    number: str = "MD 123456789012",
    issue_date: Optional[str] = "01-02-2020",
    name: str = "HI-CHEW STRAWBERRY",
    brand: str = "HI-CHEW",
    packaging: str = "Dus, 10 Sachet @ 35 Gram",
    registrant: str = "PT. MORINAGA INDONESIA",
    city: str = "KOTA JAKARTA TIMUR",
) -> str:
    date_html = f"<div>Terbit: {issue_date}</div>" if issue_date else ""
    return (
        f'<tr title="Klik untuk detail" style="cursor:pointer" urldetil="/{reg_id}">'
        f'<td width="20%">\n  {number}\n  {date_html}</td>'
        f'<td width="50%">\n  {name}\n  <div>Merk: {brand}<br>Kemasan: {packaging}\n  </div></td>'
        f'<td width="30%">\n  {registrant}\n  <div>\n  {city}\n  </div></td>'
        "</tr>\n"
    )


def result_page(rows: Sequence[str], total: Optional[int] = None, end: Optional[int] = None) -> str:
    if total is None:
        total = len(rows)
    if end is None:
        end = len(rows)
    start = 1 if total else 0
    return (
        "<html><body>"
        f'<div class="info">Menampilkan {start} - {end} Dari {total} data</div>'
        '<table id="tabel"><tbody>\n'
        + "".join(rows)
        + "</tbody></table></body></html>"
    )


def paged(rows: Sequence[str], total: Optional[int] = None) -> Callable[[int], str]:
    """Search handler that serves at most ``page_size`` rows, like the real site."""
    if total is None:
        total = len(rows)

    def handler(page_size: int) -> str:
        shown = list(rows[:page_size])
        return result_page(shown, total=total, end=min(page_size, total))

    return handler


def detail_page(sarana_id: str = "12345", name: str = "MORINAGA CO., LTD", country: str = "JEPANG") -> str:
    return (
        "<html><body><table>"
        "<tr><td>Nomor Registrasi</td><td>MD 123456789012</td></tr>"
        '<tr><td class="label">Diproduksi Oleh</td><td>'
        f'<a href="https://cekbpom.test/index.php/home/sarana/{TOKEN}/id/{sarana_id}" target="_blank"> {name} </a>'
        f" - {country} </td></tr>"
        "</table></body></html>"
    )


@pytest.fixture
def settings():
    return Settings(base_url=BASE_URL)


@pytest.fixture
def upstream():
    return FakeUpstream()
