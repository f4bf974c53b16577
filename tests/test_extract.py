"""
Tests for result-row, count-banner and manufacturer extraction.
"""

import types

from cekbpom.extract import (
    CountBanner,
    extract_rows,
    parse_count_banner,
    parse_manufacturer,
    strip_line_breaks,
)

from conftest import detail_page, result_page, result_row


class TestExtractRows:
    def test_parses_all_fields(self):
        html = result_page([result_row("PRDK-0001")])

        rows = list(extract_rows(html))

        assert len(rows) == 1
        row = rows[0]
        assert row.registration_id == "PRDK-0001"
        assert row.registration_number == "MD 123456789012"
        assert row.issue_date == "01-02-2020"
        assert row.product_name == "HI-CHEW STRAWBERRY"
        assert row.brand == "HI-CHEW"
        assert row.packaging == "Dus, 10 Sachet @ 35 Gram"
        assert row.registrant_name == "PT. MORINAGA INDONESIA"
        assert row.registrant_city == "KOTA JAKARTA TIMUR"
        assert row.manufacturer_id is None
        assert row.manufacturer_name is None
        assert row.manufacturer_country is None

    def test_issue_date_is_optional(self):
        html = result_page([result_row("PRDK-0002", issue_date=None)])

        (row,) = extract_rows(html)

        assert row.issue_date is None
        assert row.registration_number == "MD 123456789012"

    def test_packaging_line_breaks_are_removed(self):
        html = result_page(
            [
                result_row("A", packaging="Dus,\n 10 Sachet"),
                result_row("B", packaging="Botol\r\nPlastik @ 1 L"),
            ]
        )

        rows = list(extract_rows(html))

        assert [r.packaging for r in rows] == ["Dus, 10 Sachet", "BotolPlastik @ 1 L"]
        for row in rows:
            assert "\n" not in row.packaging
            assert "\r" not in row.packaging

    def test_keeps_document_order(self):
        html = result_page([result_row("C"), result_row("A"), result_row("B")])

        assert [r.registration_id for r in extract_rows(html)] == ["C", "A", "B"]

    def test_skips_rows_without_full_shape(self):
        broken = [
            # no detail url
            '<tr><td>MD 1</td><td>X<div>Merk: Y<br>Kemasan: Z</div></td><td>R<div>C</div></td></tr>',
            # only two cells
            '<tr urldetil="/ONLY-TWO"><td>MD 1</td><td>X<div>Merk: Y<br>Kemasan: Z</div></td></tr>',
            # no brand/packaging block
            '<tr urldetil="/NO-BRAND"><td>MD 1</td><td>X</td><td>R<div>C</div></td></tr>',
            # empty detail id
            '<tr urldetil="/"><td>MD 1</td><td>X<div>Merk: Y<br>Kemasan: Z</div></td><td>R<div>C</div></td></tr>',
        ]
        html = result_page([result_row("GOOD-1")] + broken + [result_row("GOOD-2")], total=6)

        rows = list(extract_rows(html))

        assert [r.registration_id for r in rows] == ["GOOD-1", "GOOD-2"]

    def test_empty_page_yields_nothing(self):
        assert list(extract_rows(result_page([]))) == []
        assert list(extract_rows("")) == []

    def test_is_lazy_and_restartable(self):
        html = result_page([result_row("A"), result_row("B", brand="MORINAGA")])

        rows = extract_rows(html)
        assert isinstance(rows, types.GeneratorType)

        first = list(extract_rows(html))
        second = list(extract_rows(html))
        assert first == second
        assert len(first) == 2


class TestCountBanner:
    def test_parses_banner(self):
        html = result_page([result_row("A")], total=250, end=100)

        assert parse_count_banner(html) == CountBanner(start=1, end=100, total=250)

    def test_missing_banner(self):
        assert parse_count_banner("<html><body>Maintenance</body></html>") is None


class TestManufacturer:
    def test_parses_manufacturer_line(self):
        manufacturer = parse_manufacturer(detail_page(sarana_id="987", name="MORINAGA CO., LTD", country="JEPANG"))

        assert manufacturer is not None
        assert manufacturer.id == "987"
        assert manufacturer.name == "MORINAGA CO., LTD"
        assert manufacturer.country == "JEPANG"

    def test_missing_line(self):
        assert parse_manufacturer("<html><body><table><tr><td>Nomor</td><td>1</td></tr></table></body></html>") is None

    def test_missing_country(self):
        html = (
            "<table><tr><td>Diproduksi Oleh</td><td>"
            '<a href="/index.php/home/sarana/tok/id/55">PT. ABC</a></td></tr></table>'
        )

        assert parse_manufacturer(html) is None


def test_strip_line_breaks():
    assert strip_line_breaks(" a\nb\r\nc \n") == "abc"
