"""
app/mappers/column_resolver.py

Header resolution for invoice workbooks.
"""

from __future__ import annotations

from typing import Sequence

from app.domain.invoice_aggregate import (
    FIELD_COUNTRY,
    FIELD_CUSTOMER_ID,
    FIELD_INVOICE_DATE,
    CellValue,
    HeaderIndex,
    cell_text,
)


def normalize_header(cell: CellValue) -> str:
    """
    Stringify and trim one header cell.
    """

    return cell_text(cell).strip()


def resolve_header_index(header_row: Sequence[CellValue]) -> HeaderIndex:
    """
    Locate the logical fields in the header row by exact, case-sensitive name.

    The first occurrence of a repeated name wins. Names that are not present
    resolve to ``None``; that is not an error.
    """

    positions: dict[str, int] = {}
    for position, cell in enumerate(header_row):
        name = normalize_header(cell)
        if name and name not in positions:
            positions[name] = position

    return HeaderIndex(
        country=positions.get(FIELD_COUNTRY),
        customer_id=positions.get(FIELD_CUSTOMER_ID),
        invoice_date=positions.get(FIELD_INVOICE_DATE),
    )
