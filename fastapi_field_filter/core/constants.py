from __future__ import annotations

from enum import IntEnum
from typing import Any

# Keys looked up in dataclass metadata, pydantic json_schema_extra and
# SQLAlchemy column/relationship info.
PERMISSION_KEY = "pex"
NAME_KEY = "json"
EXPORT_NAME_KEY = "export"
EMBED_KEY = "embed"

# Serialized name that always omits the field.
OMIT_NAME = "-"


class Action(IntEnum):
    READ = 0
    WRITE = 1
    EXPORT = 2

    @classmethod
    def coerce(cls, value: Any) -> "Action | None":
        """Return the matching action, or None when the value is not one."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return None
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


class PermissionLevel(IntEnum):
    NONE = 0
    READ = 1
    WRITE = 2
    READ_WRITE = 3
