"""reconstruct.py — rebuild a redacted copy of a typed value.

The value is first extracted, then every record in the extracted tree is
re-materialized as a fresh instance of its original class. Fields missing
from the extracted form get their zero value, which is how denied fields
disappear. The caller's value is never touched.

Usage:
    safe_user  = clean_object(user, "user", Action.READ)
    safe_users = clean_object([u1, u2], "user", Action.READ)
"""
from __future__ import annotations

import copy
import logging
import types
from collections import abc
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Mapping, TypeVar, Union, get_args, get_origin

from .config import FilterSettings, get_settings
from .constants import Action
from .descriptors import FieldDescriptor, RecordSchema, describe, record_target, unwrap_optional
from .exceptions import ReconstructionError
from .extract import extract_unformatted
from .nullable import Nullable
from .permissions import has_permission

logger = logging.getLogger(__name__)

# Checked in order: bool is an int subclass.
_ZEROS: tuple[tuple[type, Any], ...] = (
    (bool,      bool),
    (int,       int),
    (float,     float),
    (Decimal,   Decimal),
    (str,       str),
    (bytes,     bytes),
    (list,      list),
    (tuple,     tuple),
    (frozenset, frozenset),
    (set,       set),
    (dict,      dict),
)
_ABC_ZEROS: dict[Any, Any] = {
    abc.Sequence:        list,
    abc.MutableSequence: list,
    abc.Iterable:        list,
    abc.Collection:      list,
    abc.Set:             set,
    abc.MutableSet:      set,
    abc.Mapping:         dict,
    abc.MutableMapping:  dict,
}
_SEQUENCE_ORIGINS = (list, tuple, set, frozenset, abc.Sequence, abc.MutableSequence,
                     abc.Iterable, abc.Collection, abc.Set, abc.MutableSet)
_MAPPING_ORIGINS = (dict, abc.Mapping, abc.MutableMapping)


def clean_object(
    value: Any,
    role: Any,
    action: Any,
    *,
    settings: FilterSettings | None = None,
) -> Any:
    """
    Return a new value shaped like ``value`` holding only the permitted fields.

    Returns None if the filtered form cannot be rebuilt.
    """
    settings = settings or get_settings()
    try:
        generic = copy.deepcopy(extract_unformatted(value, role, action, settings=settings))
        return _Rebuilder(role, action, settings).like(value, generic)
    except Exception:
        logger.warning("Could not rebuild filtered %s.", type(value).__name__, exc_info=True)
        return None


class _Rebuilder:
    """
    Turns extracted data back into typed values.

    Field annotations drive the rebuild. Where an annotation says nothing
    useful (``Any``, an unresolved forward reference, a multi-member union)
    the original value stands in as the guide.
    """

    def __init__(self, role: Any, action: Any, settings: FilterSettings) -> None:
        self.role     = role
        self.action   = action
        self.resolved = Action.coerce(action) or Action.READ
        self.settings = settings

    def like(self, original: Any, generic: Any) -> Any:
        """Rebuild ``generic`` in the shape of ``original``."""
        if original is None or generic is None:
            return Nullable.null() if isinstance(original, Nullable) else None
        if isinstance(original, Nullable):
            return Nullable.of(generic)

        schema = describe(type(original))
        if schema is not None:
            return self.record(schema, generic, original)
        if isinstance(original, Mapping):
            if not isinstance(generic, dict):
                raise ReconstructionError(f"Expected a mapping, got {type(generic).__name__}.")
            return {k: self.like(v, generic.get(k)) for k, v in original.items()}
        if isinstance(original, (list, tuple, set, frozenset)):
            items = [self.like(o, g) for o, g in zip(list(original), generic)]
            return type(original)(items)
        return generic

    def record(self, schema: RecordSchema, data: Any, original: Any = None) -> Any:
        if not isinstance(data, dict):
            raise ReconstructionError(
                f"Expected a mapping for {schema.cls.__name__}, got {type(data).__name__}."
            )

        values: dict[str, Any] = {}
        populated: set[str] = set()
        for fd in schema.fields:
            guide = schema.peek(original, fd.name)
            key = fd.key_for(self.resolved)
            granted = (
                fd.exported
                and key is not None
                and has_permission(fd.permission, self.role, self.action, settings=self.settings)
            )
            if granted and key in data:
                values[fd.name] = self.decode(fd.annotation, data[key], guide)
                populated.add(fd.name)
                continue

            target = None
            if granted and fd.embedded:
                target = record_target(fd.annotation) or describe(type(guide))
            if target is not None:
                values[fd.name] = self.record(target, data, guide)
                populated.add(fd.name)
            else:
                values[fd.name] = self.zero(fd, guide)

        return schema.construct(values, populated)

    def decode(self, annotation: Any, value: Any, original: Any = None) -> Any:
        if value is None:
            return Nullable.null() if _is_nullable(unwrap_optional(annotation)) else None

        ann = unwrap_optional(annotation)
        if _is_opaque(ann):
            return value if original is None else self.like(original, value)
        if _is_nullable(ann):
            args = get_args(ann)
            inner = original.value if isinstance(original, Nullable) else None
            return Nullable.of(self.decode(args[0] if args else Any, value, inner))

        schema = describe(ann) if isinstance(ann, type) else None
        if schema is not None:
            return self.record(schema, value, original)

        origin = get_origin(ann)
        args = get_args(ann)
        if isinstance(value, list) and origin in _SEQUENCE_ORIGINS:
            item_anns = _item_annotations(origin, args, len(value))
            guides = _guides(original, len(value))
            items = [self.decode(a, v, g) for a, v, g in zip(item_anns, value, guides)]
            return origin(items) if origin in (list, tuple, set, frozenset) else items
        if isinstance(value, dict) and origin in _MAPPING_ORIGINS:
            value_ann = args[1] if len(args) == 2 else Any
            guides = original if isinstance(original, Mapping) else {}
            return {k: self.decode(value_ann, v, guides.get(k)) for k, v in value.items()}
        return value

    def zero(self, fd: FieldDescriptor, original: Any = None) -> Any:
        if fd.has_default():
            return fd.make_default()
        if _is_opaque(unwrap_optional(fd.annotation)) and not _is_optional(fd.annotation):
            return None if original is None else self.zero_for(type(original), original)
        return self.zero_for(fd.annotation)

    def zero_for(self, annotation: Any, original: Any = None) -> Any:
        if annotation is Any or annotation is None or _is_optional(annotation):
            return None
        ann = unwrap_optional(annotation)
        if _is_nullable(ann):
            return Nullable.null()

        base = get_origin(ann) or ann
        if base in _ABC_ZEROS:
            return _ABC_ZEROS[base]()
        if not isinstance(base, type) or issubclass(base, Enum):
            return None
        for tp, factory in _ZEROS:
            if issubclass(base, tp):
                return factory()
        schema = describe(base)
        if schema is not None:
            return self.record(schema, {}, original)
        return None


def _is_opaque(annotation: Any) -> bool:
    """True when an annotation cannot tell us what to rebuild."""
    if annotation is Any or isinstance(annotation, (str, TypeVar)):
        return True
    return get_origin(annotation) in (Union, types.UnionType)


def _is_optional(annotation: Any) -> bool:
    while get_origin(annotation) is Annotated:
        annotation = get_args(annotation)[0]
    return get_origin(annotation) in (Union, types.UnionType) and type(None) in get_args(annotation)


def _is_nullable(annotation: Any) -> bool:
    return annotation is Nullable or get_origin(annotation) is Nullable


def _guides(original: Any, count: int) -> list[Any]:
    if isinstance(original, (list, tuple, set, frozenset)) and len(original) == count:
        return list(original)
    return [None] * count


def _item_annotations(origin: Any, args: tuple[Any, ...], count: int) -> list[Any]:
    if origin is tuple and args and not (len(args) == 2 and args[1] is Ellipsis):
        return [args[i] if i < len(args) else Any for i in range(count)]
    return [args[0] if args else Any] * count
