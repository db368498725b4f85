from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

import pytest

from fastapi_field_filter.core.config import FilterSettings
from fastapi_field_filter.features.export import _columns, _safe, export_csv, export_excel, export_rows

SETTINGS = FilterSettings()


@dataclass
class Invoice:
    number: str = field(default="", metadata={"export": "Invoice #"})
    issued: date = field(default=date(2024, 1, 1), metadata={"export": "Issued"})
    paid:   bool = False
    margin: float = field(default=0.0, metadata={"pex": "finance:r"})
    notes:  str = field(default="", metadata={"export": "-"})


INVOICES = [
    Invoice(number="A-1", issued=date(2024, 2, 3), paid=True, margin=0.2, notes="x"),
    Invoice(number="A-2", issued=date(2024, 2, 4), paid=False, margin=0.3),
]


async def _body(resp) -> str:
    chunks = []
    async for chunk in resp.body_iterator:
        chunks.append(chunk if isinstance(chunk, str) else chunk.decode())
    return "".join(chunks)


def test_export_rows_apply_export_names_and_formatting() -> None:
    assert export_rows(INVOICES, "sales", settings=SETTINGS) == [
        {"Invoice #": "A-1", "Issued": "03-02-2024", "paid": "Yes"},
        {"Invoice #": "A-2", "Issued": "04-02-2024", "paid": "No"},
    ]


def test_export_rows_include_fields_granted_to_role() -> None:
    rows = export_rows(INVOICES[:1], "finance", settings=SETTINGS)

    assert rows[0]["margin"] == 0.2


def test_columns_are_the_union_in_first_seen_order() -> None:
    assert _columns([{"a": 1}, {"b": 2, "a": 3}, {}]) == ["a", "b"]


def test_safe_stringifies_non_primitive_values() -> None:
    assert _safe(None) == ""
    assert _safe(3) == 3
    assert _safe(date(2024, 1, 1)) == "2024-01-01"


@pytest.mark.asyncio
async def test_export_csv_streams_filtered_rows() -> None:
    resp = export_csv("invoices", INVOICES, "sales", settings=SETTINGS)

    assert resp.headers["content-disposition"] == 'attachment; filename="invoices.csv"'
    body = await _body(resp)
    assert body.splitlines() == [
        "Invoice #,Issued,paid",
        "A-1,03-02-2024,Yes",
        "A-2,04-02-2024,No",
    ]


@pytest.mark.asyncio
async def test_export_csv_with_no_items_has_empty_header() -> None:
    resp = export_csv("invoices", [], "sales", settings=SETTINGS)

    assert (await _body(resp)).strip() == ""


def test_export_excel_sets_attachment_header() -> None:
    pytest.importorskip("openpyxl")

    resp = export_excel("invoices", INVOICES, "sales", settings=SETTINGS)

    assert resp.headers["content-disposition"] == 'attachment; filename="invoices.xlsx"'
