from .config import FilterSettings, get_settings
from .constants import (
    EMBED_KEY,
    EXPORT_NAME_KEY,
    NAME_KEY,
    OMIT_NAME,
    PERMISSION_KEY,
    Action,
    PermissionLevel,
)
from .descriptors import FieldDescriptor, RecordSchema, describe, is_record_type
from .exceptions import FieldFilterException, PermissionDeniedException, ReconstructionError
from .extract import extract
from .handlers import register_exception_handlers
from .nullable import Nullable
from .permissions import has_permission
from .reconstruct import clean_object
from .tags import PermissionSpec, field_display_name, parse_specifier

__all__ = [
    "EMBED_KEY",
    "EXPORT_NAME_KEY",
    "NAME_KEY",
    "OMIT_NAME",
    "PERMISSION_KEY",
    "Action",
    "FieldDescriptor",
    "FieldFilterException",
    "FilterSettings",
    "Nullable",
    "PermissionDeniedException",
    "PermissionLevel",
    "PermissionSpec",
    "ReconstructionError",
    "RecordSchema",
    "clean_object",
    "describe",
    "extract",
    "field_display_name",
    "get_settings",
    "has_permission",
    "is_record_type",
    "parse_specifier",
    "register_exception_handlers",
]
