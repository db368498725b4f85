"""tags.py — parsing of the per-field annotation strings.

Two permission specifier schemes are understood:

  keyed (canonical)   "admin:rw,user:r"   roles are strings
  positional          "310"               roles are integer indices,
                                          digits 0 none / 1 read / 2 write / 3 read-write

Parsing never raises: malformed pieces simply grant nothing.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from .constants import PermissionLevel


def field_display_name(tag: str | None) -> str:
    if not tag:
        return ""
    return tag.split(",", 1)[0]


@dataclass(frozen=True)
class PermissionSpec:
    # One of the two is populated, depending on the scheme.
    levels: tuple[PermissionLevel, ...] | None = None
    flags:  dict[str, frozenset[str]] | None = None

    @property
    def positional(self) -> bool:
        return self.levels is not None

    def level_for(self, role: object) -> PermissionLevel:
        if self.levels is not None:
            if isinstance(role, bool) or not isinstance(role, int):
                return PermissionLevel.NONE
            index = int(role)
            if index < 0 or index >= len(self.levels):
                return PermissionLevel.NONE
            return self.levels[index]

        key = getattr(role, "value", role)
        if not isinstance(key, str):
            return PermissionLevel.NONE
        granted = (self.flags or {}).get(key.strip(), frozenset())
        level = PermissionLevel.NONE
        if "r" in granted:
            level |= PermissionLevel.READ
        if "w" in granted:
            level |= PermissionLevel.WRITE
        return PermissionLevel(level)


@lru_cache(maxsize=1024)
def parse_specifier(specifier: str) -> PermissionSpec:
    text = specifier.strip()
    if text.isdigit() and text.isascii():
        return PermissionSpec(levels=tuple(_digit_level(ch) for ch in text))

    flags: dict[str, frozenset[str]] = {}
    for pair in text.split(","):
        role, _, granted = pair.partition(":")
        role = role.strip()
        if not role:
            continue
        flags[role] = flags.get(role, frozenset()) | frozenset(granted.strip().lower())
    return PermissionSpec(flags=flags)


def _digit_level(ch: str) -> PermissionLevel:
    value = ord(ch) - ord("0")
    if value in (PermissionLevel.READ, PermissionLevel.WRITE, PermissionLevel.READ_WRITE):
        return PermissionLevel(value)
    return PermissionLevel.NONE
