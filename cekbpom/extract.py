from __future__ import annotations

import re
from typing import Iterator, List, NamedTuple, Optional

from bs4 import BeautifulSoup, NavigableString, Tag

from .types import ResultRow


COUNT_BANNER_RE = re.compile(r"(\d+) - (\d+) Dari (\d+)")
LINE_BREAK_RE = re.compile(r"[\r\n]+")
ISSUE_DATE_RE = re.compile(r"^\s*Terbit:\s*(.*?)\s*$", re.S)
BRAND_RE = re.compile(r"^\s*Merk:\s*(.*?)\s*$", re.S)
PACKAGING_RE = re.compile(r"^\s*Kemasan:(.*)$", re.S)
MANUFACTURER_HREF_RE = re.compile(r"sarana/.+/id/([^\"/?#]+)")
MANUFACTURER_COUNTRY_RE = re.compile(r"^\s*-\s*(\S.*?)\s*$", re.S)
MANUFACTURER_LABEL = "Diproduksi Oleh"


class CountBanner(NamedTuple):
    start: int
    end: int
    total: int


class Manufacturer(NamedTuple):
    id: str
    name: str
    country: str


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def _text(el) -> str:
    return (el.get_text(separator=" ", strip=True) if el else "").strip()


def _own_text(el: Tag) -> str:
    """Text of the direct string children of ``el``, nested tags excluded."""
    parts = [s.strip() for s in el.find_all(string=True, recursive=False)]
    return " ".join(p for p in parts if p)


def _br_segments(el: Tag) -> List[str]:
    segments: List[List[str]] = [[]]
    for child in el.children:
        if isinstance(child, Tag) and child.name == "br":
            segments.append([])
        elif isinstance(child, NavigableString):
            segments[-1].append(str(child))
        else:
            segments[-1].append(child.get_text())
    return ["".join(seg) for seg in segments]


def strip_line_breaks(value: str) -> str:
    return LINE_BREAK_RE.sub("", value).strip()


def _parse_row(tr: Tag) -> Optional[ResultRow]:
    reg_id = (tr.get("urldetil") or "").strip().lstrip("/")
    cells = tr.find_all("td", recursive=False)
    if not reg_id or len(cells) < 3:
        return None
    number_cell, product_cell, registrant_cell = cells[:3]

    issue_date = None
    date_div = number_cell.find("div")
    if date_div is not None:
        m = ISSUE_DATE_RE.match(date_div.get_text())
        if m and m.group(1):
            issue_date = m.group(1)

    brand = packaging = None
    product_div = product_cell.find("div")
    if product_div is not None:
        for segment in _br_segments(product_div):
            m = BRAND_RE.match(segment)
            if m and brand is None:
                brand = m.group(1)
                continue
            m = PACKAGING_RE.match(segment)
            if m and packaging is None:
                packaging = strip_line_breaks(m.group(1))

    city_div = registrant_cell.find("div")

    row = ResultRow(
        registration_id=reg_id,
        registration_number=_own_text(number_cell),
        issue_date=issue_date,
        product_name=_own_text(product_cell),
        brand=brand or "",
        packaging=packaging or "",
        registrant_name=_own_text(registrant_cell),
        registrant_city=_text(city_div),
    )
    required = (
        row.registration_number,
        row.product_name,
        row.brand,
        row.packaging,
        row.registrant_name,
        row.registrant_city,
    )
    if not all(required):
        return None
    return row


def extract_rows(html: str) -> Iterator[ResultRow]:
    """Yield the result-table rows of a search result page.

    Rows that don't have the full shape (detail id, registration number,
    product/brand/packaging, registrant/city) are skipped. Every call parses
    ``html`` afresh, so the sequence can be produced again from the same page.
    """
    soup = _soup(html)
    for tr in soup.find_all("tr", attrs={"urldetil": True}):
        row = _parse_row(tr)
        if row is not None:
            yield row


def parse_count_banner(html: str) -> Optional[CountBanner]:
    m = COUNT_BANNER_RE.search(html)
    if not m:
        return None
    return CountBanner(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def parse_manufacturer(html: str) -> Optional[Manufacturer]:
    """Find the "Diproduksi Oleh" line of a product detail page."""
    soup = _soup(html)
    label = soup.find("td", string=lambda s: bool(s) and s.strip() == MANUFACTURER_LABEL)
    if label is None:
        return None
    cell = label.find_next_sibling("td")
    if cell is None:
        return None
    anchor = cell.find("a", href=MANUFACTURER_HREF_RE)
    if anchor is None:
        return None
    name = _text(anchor)
    m_id = MANUFACTURER_HREF_RE.search(anchor["href"])
    tail = "".join(
        str(s) if isinstance(s, NavigableString) else s.get_text() for s in anchor.next_siblings
    )
    m_country = MANUFACTURER_COUNTRY_RE.match(tail)
    if not name or not m_id or not m_country:
        return None
    return Manufacturer(id=m_id.group(1), name=name, country=m_country.group(1))
