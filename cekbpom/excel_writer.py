from __future__ import annotations

import os
from typing import Iterable, Optional, Sequence

from openpyxl import Workbook, load_workbook
from openpyxl.worksheet.worksheet import Worksheet

from .types import FIELD_ORDER, ResultRow


DEFAULT_HEADERS_ID = [
    "ID Registrasi",
    "Nomor Registrasi",
    "Tanggal Terbit",
    "Nama Produk",
    "Merk",
    "Kemasan",
    "Pendaftar",
    "Kota Pendaftar",
    "ID Sarana",
    "Nama Sarana",
    "Negara Sarana",
]


def _ensure_sheet(wb_path: Optional[str]) -> tuple[Workbook, Worksheet, bool]:
    """
    Returns (workbook, sheet, is_new_file)
    """
    if wb_path and os.path.exists(wb_path):
        wb = load_workbook(wb_path)
        return wb, wb.active, False
    wb = Workbook()
    return wb, wb.active, True


def write_rows_to_excel(
    rows: Iterable[ResultRow],
    out_path: str,
    template_path: Optional[str] = None,
    headers: Optional[Sequence[str]] = None,
    field_order: Sequence[str] = FIELD_ORDER,
) -> int:
    """Append ``rows`` to the first sheet and save to ``out_path``. Returns rows written."""
    headers = headers or DEFAULT_HEADERS_ID

    wb_path_to_open = template_path if (template_path and os.path.exists(template_path)) else None
    wb, ws, _ = _ensure_sheet(wb_path_to_open)

    # Empty sheet: write the header row first
    if ws.max_row == 1 and ws.max_column == 1 and ws.cell(row=1, column=1).value is None:
        for col_idx, title in enumerate(headers, start=1):
            ws.cell(row=1, column=col_idx).value = title

    start_row = ws.max_row + 1
    written = 0
    for idx, row in enumerate(rows, start=start_row):
        values = row.to_dict()
        for col_idx, name in enumerate(field_order, start=1):
            ws.cell(row=idx, column=col_idx).value = values.get(name)
        written += 1

    # the template is never overwritten
    wb.save(out_path)
    return written
