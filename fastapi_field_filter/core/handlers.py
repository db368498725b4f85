from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .exceptions import FieldFilterException, PermissionDeniedException


def build_error_payload(exc: FieldFilterException) -> dict[str, Any]:
    detail: dict[str, Any] = {"message": exc.detail}
    if isinstance(exc, PermissionDeniedException) and exc.fields:
        detail["fields"] = exc.fields
    return detail


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(FieldFilterException)
    async def _field_filter_exception_handler(_: Request, exc: FieldFilterException):
        return JSONResponse(status_code=exc.status_code, content=build_error_payload(exc))
