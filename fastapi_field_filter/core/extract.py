"""extract.py — the recursive, role-aware field walk.

Shapes handled:
  None                      -> None
  Nullable                  -> underlying value, or None when invalid
  record                    -> dict of permitted fields
  mapping                   -> dict, same keys, values walked
  list/tuple/set/frozenset  -> list, elements walked when any is structured
  anything else             -> unchanged (bool and dates formatted under Export)

Usage:
    extract(user, "admin", Action.READ)
    extract([user, other], 1, Action.WRITE)
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping

from .config import FilterSettings, get_settings
from .constants import Action
from .descriptors import RecordSchema, describe
from .nullable import Nullable
from .permissions import has_permission

logger = logging.getLogger(__name__)

_COLLECTIONS = (list, tuple, set, frozenset)


def extract(
    value: Any,
    role: Any,
    action: Any,
    *,
    settings: FilterSettings | None = None,
) -> Any:
    walker = _Walker(role, action, settings or get_settings())
    return walker.walk(value)


def extract_unformatted(
    value: Any,
    role: Any,
    action: Any,
    *,
    settings: FilterSettings | None = None,
) -> Any:
    """Like ``extract`` but scalars keep their type under Export."""
    walker = _Walker(role, action, settings or get_settings(), format_export=False)
    return walker.walk(value)


class _Walker:
    def __init__(
        self,
        role: Any,
        action: Any,
        settings: FilterSettings,
        *,
        format_export: bool = True,
    ) -> None:
        self.role     = role
        self.action   = action
        self.resolved = Action.coerce(action)
        self.settings = settings
        self.format   = format_export and self.resolved is Action.EXPORT
        self._path: set[int] = set()
        if self.resolved is None:
            logger.warning(
                "Unrecognized action %r, tagged fields will be %s.",
                action, "allowed" if settings.allow_unknown_action else "denied",
            )

    def walk(self, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, Nullable):
            return self._scalar(value.value) if value.valid else None

        schema = describe(type(value))
        if schema is not None:
            return self._record(value, schema)
        if isinstance(value, Mapping):
            return {k: self.walk(v) for k, v in value.items()}
        if isinstance(value, _COLLECTIONS):
            items = list(value)
            if not any(_is_structured(item) for item in items):
                return items
            return [self.walk(item) for item in items]
        return self._scalar(value)

    def _scalar(self, value: Any) -> Any:
        if not self.format:
            return value
        if isinstance(value, bool):
            return self.settings.export_true if value else self.settings.export_false
        if isinstance(value, date):
            return value.strftime(self.settings.export_date_format)
        return value

    def _record(self, value: Any, schema: RecordSchema) -> dict[str, Any] | None:
        marker = id(value)
        if marker in self._path:
            logger.debug("Reference cycle through %s, emitting None.", schema.cls.__name__)
            return None

        self._path.add(marker)
        try:
            result: dict[str, Any] = {}
            direct: set[str] = set()
            for fd, raw in schema.read(value):
                if not has_permission(fd.permission, self.role, self.action, settings=self.settings):
                    logger.debug(
                        "Field '%s' of %s denied for role %r.",
                        fd.name, schema.cls.__name__, self.role,
                    )
                    continue
                key = fd.key_for(self.resolved if self.resolved is not None else Action.READ)
                if key is None:
                    continue

                sub = self.walk(raw)
                if fd.embedded and isinstance(sub, dict):
                    for k, v in sub.items():
                        if k not in direct:
                            result[k] = v
                else:
                    result[key] = sub
                    direct.add(key)
            return result
        finally:
            self._path.discard(marker)


def _is_structured(value: Any) -> bool:
    if isinstance(value, (Nullable, Mapping, list, tuple, set, frozenset)):
        return True
    return describe(type(value)) is not None
