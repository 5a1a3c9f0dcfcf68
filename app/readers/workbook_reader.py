"""
app/readers/workbook_reader.py

Decodes an uploaded spreadsheet into rows of tagged cells.

xlsx/xlsm payloads (zip containers) are read with openpyxl; anything else is
treated as a UTF-8 CSV export. Only the first worksheet is read and the first
row is the header.
"""

from __future__ import annotations

import csv
import io
import re
import zipfile
from datetime import date, datetime, time
from typing import Any, Iterable

from openpyxl import load_workbook
from openpyxl.utils.datetime import to_excel
from openpyxl.utils.exceptions import InvalidFileException

from app.domain.invoice_aggregate import EMPTY, CellValue, NumberCell, RawRow, TextCell

ZIP_SIGNATURE = b"PK\x03\x04"

_NUMERIC_TEXT = re.compile(r"-?\d+(\.\d+)?")


class WorkbookFormatError(ValueError):
    """
    Raised when the payload is neither a readable workbook nor UTF-8 CSV.
    """


def to_cell(value: Any) -> CellValue:
    """
    Convert one decoded cell value into the tagged cell variant.

    Date and datetime cells become 1900-system serials, the representation a
    sheet exposes for unformatted date cells.
    """

    if value is None:
        return EMPTY
    if isinstance(value, bool):
        return TextCell("TRUE" if value else "FALSE")
    if isinstance(value, (int, float)):
        return NumberCell(value)
    if isinstance(value, (datetime, date, time)):
        return NumberCell(to_excel(value))
    text = str(value)
    if text == "":
        return EMPTY
    return TextCell(text)


def _csv_number(text: str) -> int | float | None:
    """
    Parse ``text`` as a number only when it is the number's own rendering.

    ``17850`` and ``17850.0`` parse; ``00123`` and ``1.50`` stay text so
    distinct identifiers are not merged.
    """

    if not _NUMERIC_TEXT.fullmatch(text):
        return None
    if "." in text:
        number = float(text)
        return number if repr(number) == text else None
    integer = int(text)
    return integer if str(integer) == text else None


def _csv_cell(raw: str) -> CellValue:
    if raw == "":
        return EMPTY
    number = _csv_number(raw.strip())
    if number is not None:
        return NumberCell(number)
    return TextCell(raw)


def _pad_rows(rows: Iterable[RawRow]) -> list[RawRow]:
    padded: list[RawRow] = []
    width = 0
    for position, row in enumerate(rows):
        if position == 0:
            width = len(row)
        elif len(row) < width:
            row = row + (EMPTY,) * (width - len(row))
        padded.append(row)
    return padded


def read_xlsx_rows(data: bytes) -> list[RawRow]:
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise WorkbookFormatError(f"Unreadable workbook: {exc}") from exc

    try:
        if not workbook.worksheets:
            return []
        worksheet = workbook.worksheets[0]
        rows = (
            tuple(to_cell(value) for value in values)
            for values in worksheet.iter_rows(values_only=True)
        )
        return _pad_rows(rows)
    finally:
        workbook.close()


def read_csv_rows(data: bytes) -> list[RawRow]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise WorkbookFormatError("CSV must be UTF-8 encoded.") from exc

    try:
        reader = csv.reader(io.StringIO(text, newline=""))
        rows = (tuple(_csv_cell(value) for value in values) for values in reader)
        return _pad_rows(rows)
    except csv.Error as exc:
        raise WorkbookFormatError(f"Invalid CSV format: {exc}") from exc


def read_workbook_rows(data: bytes) -> list[RawRow]:
    """
    Decode the first sheet of a workbook (or a CSV file) into rows.
    """

    if data.startswith(ZIP_SIGNATURE):
        return read_xlsx_rows(data)
    return read_csv_rows(data)
