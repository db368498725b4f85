from importlib.metadata import PackageNotFoundError, version

from .core import (
    Action,
    FieldFilterException,
    FilterSettings,
    Nullable,
    PermissionDeniedException,
    PermissionLevel,
    clean_object,
    extract,
    field_display_name,
    has_permission,
    register_exception_handlers,
)
from .responses import filter_payload, filtered_response, role_from_request, writable_fields

try:
    __version__ = version("fastapi-field-filter")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "Action",
    "FieldFilterException",
    "FilterSettings",
    "Nullable",
    "PermissionDeniedException",
    "PermissionLevel",
    "clean_object",
    "extract",
    "field_display_name",
    "filter_payload",
    "filtered_response",
    "has_permission",
    "register_exception_handlers",
    "role_from_request",
    "writable_fields",
]
