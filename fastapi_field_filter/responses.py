from __future__ import annotations

import logging
from typing import Any, Mapping

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .core.config import FilterSettings, get_settings
from .core.constants import Action
from .core.descriptors import describe, record_target
from .core.exceptions import PermissionDeniedException
from .core.extract import extract
from .core.permissions import has_permission

logger = logging.getLogger(__name__)


def role_from_request(request: Request, default: Any = "guest") -> Any:
    """Role stored on ``request.state.role`` by an upstream auth dependency."""
    role = getattr(request.state, "role", None)
    return default if role is None else role


def filtered_response(
    value: Any,
    role: Any,
    action: Any = Action.READ,
    *,
    status_code: int = 200,
    settings: FilterSettings | None = None,
) -> JSONResponse:
    data = extract(value, role, action, settings=settings)
    return JSONResponse(content=jsonable_encoder(data), status_code=status_code)


def writable_fields(
    model: type,
    role: Any,
    *,
    settings: FilterSettings | None = None,
) -> set[str]:
    """Serialized names ``role`` may write on ``model``, embedded fields flattened."""
    schema = describe(model)
    if schema is None:
        raise TypeError(f"{model!r} is not a dataclass, pydantic model or mapped class.")

    settings = settings or get_settings()
    keys: set[str] = set()
    for fd in schema.fields:
        if not fd.exported:
            continue
        if not has_permission(fd.permission, role, Action.WRITE, settings=settings):
            continue
        key = fd.key_for(Action.WRITE)
        if key is None:
            continue
        target = record_target(fd.annotation) if fd.embedded else None
        if target is not None:
            keys |= writable_fields(target.cls, role, settings=settings)
        else:
            keys.add(key)
    return keys


def filter_payload(
    model: type,
    payload: Mapping[str, Any],
    role: Any,
    *,
    strict: bool = False,
    settings: FilterSettings | None = None,
) -> dict[str, Any]:
    """
    Keep only the keys of an incoming payload that ``role`` may write.

    With ``strict=True`` any rejected key raises PermissionDeniedException.
    """
    allowed = writable_fields(model, role, settings=settings)
    filtered = {k: v for k, v in payload.items() if k in allowed}
    forbidden = set(payload) - set(filtered)
    if forbidden:
        if strict:
            raise PermissionDeniedException(fields=forbidden)
        logger.debug("Dropping unwritable fields %s for role %r.", sorted(forbidden), role)
    return filtered
