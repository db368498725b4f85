from __future__ import annotations

import logging
from typing import Any

from .config import FilterSettings, get_settings
from .constants import Action, PermissionLevel
from .tags import parse_specifier

logger = logging.getLogger(__name__)

_READS  = (PermissionLevel.READ, PermissionLevel.READ_WRITE)
_WRITES = (PermissionLevel.WRITE, PermissionLevel.READ_WRITE)


def has_permission(
    specifier: str | None,
    role: Any,
    action: Any,
    *,
    settings: FilterSettings | None = None,
) -> bool:
    """
    Decide whether ``role`` may perform ``action`` on a field tagged ``specifier``.

    An empty specifier grants everything. Export is checked like Read.
    """
    if not specifier or not specifier.strip():
        return True

    act = Action.coerce(action)
    if act is None:
        allowed = (settings or get_settings()).allow_unknown_action
        logger.debug("Unrecognized action %r, %s.", action, "allowing" if allowed else "denying")
        return allowed

    level = parse_specifier(specifier).level_for(role)
    if act is Action.WRITE:
        return level in _WRITES
    return level in _READS
