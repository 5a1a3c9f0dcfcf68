from __future__ import annotations

import io
from datetime import datetime
from typing import Any, Sequence

import pytest
from openpyxl import Workbook

INVOICE_HEADER = ["InvoiceNo", "StockCode", "Country", "CustomerID", "InvoiceDate"]

INVOICE_VALUES: list[list[Any]] = [
    ["536365", "85123A", "United Kingdom", 17850, datetime(2010, 12, 1, 8, 26)],
    ["536366", "22633", "United Kingdom", 17850, datetime(2010, 12, 1, 8, 28)],
    ["536367", "84879", "United Kingdom", 13047, datetime(2010, 12, 2, 9, 1)],
    ["536368", "22960", "France", 12583, "2010-12-02"],
    ["536369", "21756", "France", None, "not a date"],
    ["536370", "22728", "Germany", 12662, "2011/1/5"],
    ["536371", "22727", None, 99999, "1/5/2011 10:30"],
    ["536372", "22726", "France", 12583, datetime(2011, 2, 14, 12, 0)],
]


def build_xlsx(rows: Sequence[Sequence[Any]], *, extra_sheet: bool = False) -> bytes:
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = "Online Retail"
    for row in rows:
        worksheet.append(list(row))
    if extra_sheet:
        other = workbook.create_sheet("Ignored")
        other.append(["Country", "CustomerID", "InvoiceDate"])
        other.append(["Spain", 1, "2012-01-01"])
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture()
def invoice_xlsx() -> bytes:
    return build_xlsx([INVOICE_HEADER, *INVOICE_VALUES])


@pytest.fixture()
def invoice_csv() -> bytes:
    lines = [
        "InvoiceNo,Country,CustomerID,InvoiceDate",
        "536365,United Kingdom,17850,12/1/2010 8:26",
        "536366,United Kingdom,17850.0,12/1/2010 8:28",
        "536367,United Kingdom,13047,12/2/2010 9:01",
        "536368,France,12583,2010-12-02",
        "536369,France,,not a date",
        "536370,Germany,12662,2011/1/5",
        "536371,,99999,1/5/2011 10:30",
        "536372,France,12583,2/14/2011 12:00",
    ]
    return ("\ufeff" + "\r\n".join(lines) + "\r\n").encode("utf-8")


EXPECTED_COUNTRY_COUNTS = {"United Kingdom": 2, "France": 1, "Germany": 1}
EXPECTED_DATE_COUNTS = {
    "2010-12-01": 2,
    "2010-12-02": 2,
    "2011-01-05": 2,
    "2011-02-14": 1,
}
EXPECTED_MONTH_COUNTS = {"2010-12": 4, "2011-01": 2, "2011-02": 1}


@pytest.fixture()
def xlsx_factory():
    return build_xlsx


@pytest.fixture()
def expected_aggregates() -> dict[str, dict[str, int]]:
    return {
        "country_customer_counts": dict(EXPECTED_COUNTRY_COUNTS),
        "date_counts": dict(EXPECTED_DATE_COUNTS),
        "month_counts": dict(EXPECTED_MONTH_COUNTS),
    }
