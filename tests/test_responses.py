from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date

import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient

from fastapi_field_filter.core.constants import Action
from fastapi_field_filter.core.exceptions import PermissionDeniedException
from fastapi_field_filter.core.handlers import register_exception_handlers
from fastapi_field_filter.responses import (
    filter_payload,
    filtered_response,
    role_from_request,
    writable_fields,
)


@dataclass
class Audit:
    created_by: str = field(default="", metadata={"pex": "admin:rw,user:rw"})
    updated_by: str = field(default="", metadata={"pex": "admin:r"})


@dataclass
class Customer:
    id:      int = field(default=0, metadata={"pex": "admin:r,user:r"})
    name:    str = field(default="", metadata={"pex": "admin:rw,user:rw"})
    credit:  int = field(default=0, metadata={"pex": "admin:rw", "json": "creditLimit"})
    since:   date = field(default=date(2020, 1, 1))
    audit:   Audit = field(default_factory=Audit, metadata={"embed": True})
    _hash:   str = "x"


CUSTOMER = Customer(id=1, name="ann", credit=500, since=date(2021, 5, 4))


def test_filtered_response_encodes_permitted_fields() -> None:
    resp = filtered_response(CUSTOMER, "user")

    assert resp.status_code == 200
    assert json.loads(resp.body) == {
        "id": 1,
        "name": "ann",
        "since": "2021-05-04",
        "created_by": "",
    }


def test_filtered_response_accepts_status_code_and_action() -> None:
    resp = filtered_response([CUSTOMER], "admin", Action.WRITE, status_code=201)

    assert resp.status_code == 201
    assert json.loads(resp.body) == [
        {"name": "ann", "creditLimit": 500, "since": "2021-05-04", "created_by": ""}
    ]


def test_writable_fields_flatten_embedded_records() -> None:
    assert writable_fields(Customer, "admin") == {"name", "creditLimit", "since", "created_by"}
    assert writable_fields(Customer, "user") == {"name", "since", "created_by"}
    assert writable_fields(Customer, "guest") == {"since"}


def test_writable_fields_rejects_non_records() -> None:
    with pytest.raises(TypeError):
        writable_fields(dict, "admin")


def test_filter_payload_drops_unwritable_keys() -> None:
    payload = {"name": "bob", "creditLimit": 9000, "id": 7, "unknown": True}

    assert filter_payload(Customer, payload, "user") == {"name": "bob"}
    assert filter_payload(Customer, payload, "admin") == {"name": "bob", "creditLimit": 9000}


def test_filter_payload_strict_raises_with_rejected_keys() -> None:
    with pytest.raises(PermissionDeniedException) as exc_info:
        filter_payload(Customer, {"name": "bob", "creditLimit": 1, "id": 2}, "user", strict=True)

    assert exc_info.value.fields == ["creditLimit", "id"]


def _build_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.middleware("http")
    async def _role_from_header(request: Request, call_next):
        request.state.role = request.headers.get("X-Role")
        return await call_next(request)

    @app.get("/customer")
    async def read_customer(request: Request):
        return filtered_response(CUSTOMER, role_from_request(request))

    @app.post("/customer")
    async def write_customer(request: Request):
        payload = await request.json()
        data = filter_payload(Customer, payload, role_from_request(request), strict=True)
        return filtered_response(Customer(**data), "admin", status_code=201)

    return app


@pytest.mark.asyncio
async def test_endpoint_filters_by_request_role() -> None:
    transport = ASGITransport(app=_build_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        admin = await client.get("/customer", headers={"X-Role": "admin"})
        guest = await client.get("/customer")

    assert admin.json() == {
        "id": 1,
        "name": "ann",
        "creditLimit": 500,
        "since": "2021-05-04",
        "created_by": "",
        "updated_by": "",
    }
    assert guest.json() == {"since": "2021-05-04"}


@pytest.mark.asyncio
async def test_registered_handler_reports_rejected_fields() -> None:
    transport = ASGITransport(app=_build_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        ok = await client.post("/customer", json={"name": "bob"}, headers={"X-Role": "user"})
        denied = await client.post(
            "/customer",
            json={"name": "bob", "creditLimit": 10},
            headers={"X-Role": "user"},
        )

    assert ok.status_code == 201
    assert ok.json()["name"] == "bob"
    assert denied.status_code == 403
    assert denied.json() == {
        "message": "Permission denied. Fields: creditLimit.",
        "fields": ["creditLimit"],
    }


@pytest.mark.parametrize(("state", "expected"), [({"role": 0}, 0), ({"role": "admin"}, "admin"), ({}, "guest")])
def test_role_from_request_keeps_falsy_roles(state: dict, expected: object) -> None:
    request = Request({"type": "http", "state": state})

    assert role_from_request(request) == expected
