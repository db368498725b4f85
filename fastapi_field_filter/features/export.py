from __future__ import annotations
import csv
import io
from typing import Any, Iterable

from fastapi.responses import StreamingResponse

from ..core.config import FilterSettings
from ..core.constants import Action
from ..core.extract import extract


def export_rows(
    items: Iterable[Any],
    role: Any,
    *,
    settings: FilterSettings | None = None,
) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for item in items:
        row = extract(item, role, Action.EXPORT, settings=settings)
        rows.append(row if isinstance(row, dict) else {})
    return rows


def export_csv(
    filename: str,
    items: Iterable[Any],
    role: Any,
    *,
    settings: FilterSettings | None = None,
) -> StreamingResponse:
    rows = export_rows(items, role, settings=settings)
    cols = _columns(rows)

    def generate():
        buf    = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=cols)
        writer.writeheader()
        yield buf.getvalue()
        buf.seek(0)
        buf.truncate(0)
        for row in rows:
            writer.writerow({c: _safe(row.get(c)) for c in cols})
            yield buf.getvalue()
            buf.seek(0)
            buf.truncate(0)

    return StreamingResponse(
        generate(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}.csv"'},
    )


def export_excel(
    filename: str,
    items: Iterable[Any],
    role: Any,
    *,
    settings: FilterSettings | None = None,
) -> StreamingResponse:
    try:
        import openpyxl
    except ImportError:
        raise RuntimeError(
            "openpyxl is required for Excel export. "
            "Install with: pip install 'fastapi-field-filter[excel]'"
        )

    rows = export_rows(items, role, settings=settings)
    cols = _columns(rows)

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = filename[:31]
    if cols:
        ws.append(cols)
    for row in rows:
        ws.append([_safe(row.get(c)) for c in cols])

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    return StreamingResponse(
        iter([buf.read()]),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}.xlsx"'},
    )


def _columns(rows: list[dict[str, Any]]) -> list[str]:
    cols: dict[str, None] = {}
    for row in rows:
        for key in row:
            cols.setdefault(str(key), None)
    return list(cols)


def _safe(val: Any) -> Any:
    if val is None:
        return ""
    return str(val) if not isinstance(val, (int, float, bool)) else val
