from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

_ALLOW = {"allow", "true", "1", "yes", "open"}


@dataclass(frozen=True)
class FilterSettings:
    """
    Behavioural knobs of the field filter.

    Environment variables read by ``from_env``:
        FIELD_FILTER_EXPORT_DATE_FORMAT   strftime pattern for dates under Export
        FIELD_FILTER_EXPORT_TRUE          rendering of True under Export
        FIELD_FILTER_EXPORT_FALSE         rendering of False under Export
        FIELD_FILTER_UNKNOWN_ACTION       "allow" or "deny" (default)
    """

    export_date_format:   str  = "%d-%m-%Y"
    export_true:          str  = "Yes"
    export_false:         str  = "No"
    allow_unknown_action: bool = False

    @classmethod
    def from_env(cls) -> "FilterSettings":
        unknown = os.getenv("FIELD_FILTER_UNKNOWN_ACTION", "deny")
        return cls(
            export_date_format=os.getenv("FIELD_FILTER_EXPORT_DATE_FORMAT", cls.export_date_format),
            export_true=os.getenv("FIELD_FILTER_EXPORT_TRUE", cls.export_true),
            export_false=os.getenv("FIELD_FILTER_EXPORT_FALSE", cls.export_false),
            allow_unknown_action=unknown.strip().lower() in _ALLOW,
        )


@lru_cache(maxsize=1)
def get_settings() -> FilterSettings:
    return FilterSettings.from_env()
