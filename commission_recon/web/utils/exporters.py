"""CSV/XLSX export utilities."""

from __future__ import annotations

import csv
import io
from decimal import Decimal
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font

AMOUNT_FORMAT = "#,##0.00"


def to_csv(data: list[dict[str, Any]], columns: list[str]) -> str:
    """Convert data to CSV string.

    Args:
        data: List of dictionaries to export
        columns: Column names to include (in order)

    Returns:
        CSV string

    """
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=columns, extrasaction="ignore")
    writer.writeheader()
    writer.writerows(data)
    return output.getvalue()


def to_xlsx(data: list[dict[str, Any]], columns: list[str], sheet_name: str = "Data") -> bytes:
    """Convert data to XLSX bytes.

    Args:
        data: List of dictionaries to export
        columns: Column names to include (in order)
        sheet_name: Name for the Excel sheet (max 31 chars)

    Returns:
        XLSX file as bytes

    """
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name[:31]

    header_font = Font(bold=True)
    for col_idx, name in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=col_idx, value=name)
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center")

    for row_idx, row in enumerate(data, start=2):
        for col_idx, name in enumerate(columns, start=1):
            value = row.get(name)
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            if isinstance(value, (Decimal, float, int)) and not isinstance(value, bool):
                cell.number_format = AMOUNT_FORMAT

    for col_idx, name in enumerate(columns, start=1):
        width = max([len(name)] + [len(str(r.get(name, ""))) for r in data])
        ws.column_dimensions[ws.cell(row=1, column=col_idx).column_letter].width = min(width + 2, 50)

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()
