"""descriptors.py — per-type field tables for the record kinds we understand.

A record is one of:
  - a dataclass              field(metadata={"pex": "admin:rw", "json": "label"})
  - a pydantic BaseModel     Field(alias="label", json_schema_extra={"pex": "admin:rw"})
  - a SQLAlchemy ORM class   mapped_column(info={"pex": "admin:rw", "json": "label"})

Tables are built once per class and cached, so the walk never re-inspects a
type on every call.
"""
from __future__ import annotations

import dataclasses
import logging
import types
import typing
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Iterator, Literal, Mapping

from pydantic import BaseModel
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import ColumnProperty, RelationshipProperty

from .constants import (
    EMBED_KEY,
    EXPORT_NAME_KEY,
    NAME_KEY,
    OMIT_NAME,
    PERMISSION_KEY,
    Action,
)
from .nullable import Nullable
from .tags import field_display_name

logger = logging.getLogger(__name__)

MISSING = dataclasses.MISSING


class _NoDefault:
    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT: Any = _NoDefault()

RecordKind = Literal["dataclass", "pydantic", "orm"]


@dataclass(frozen=True)
class FieldDescriptor:
    name:            str
    permission:      str  = ""
    name_tag:        str  = ""
    export_tag:      str  = ""
    embedded:        bool = False
    annotation:      Any  = Any
    default:         Any  = NO_DEFAULT
    default_factory: Callable[[], Any] | None = None
    init:            bool = True

    @property
    def exported(self) -> bool:
        return not self.name.startswith("_")

    def key_for(self, action: Action) -> str | None:
        """Result key for this field under ``action``; None means always omitted."""
        tag = self.export_tag if action is Action.EXPORT else self.name_tag
        if tag.strip() == OMIT_NAME:
            return None
        return field_display_name(tag) or self.name

    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT or self.default_factory is not None

    def make_default(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        return self.default


@dataclass(frozen=True)
class RecordSchema:
    cls:    type
    kind:   RecordKind
    fields: tuple[FieldDescriptor, ...]

    def read(self, obj: Any) -> Iterator[tuple[FieldDescriptor, Any]]:
        """Yield (descriptor, value) for every visible field present on ``obj``."""
        unloaded = self._unloaded(obj)
        for fd in self.fields:
            if not fd.exported:
                continue
            if fd.name in unloaded:
                logger.debug("Skipping unloaded attribute '%s' on %s.", fd.name, self.cls.__name__)
                continue
            yield fd, getattr(obj, fd.name, None)

    def peek(self, obj: Any, name: str) -> Any:
        """Value of ``name`` on ``obj``, or None when reading it would hit the database."""
        if obj is None or name in self._unloaded(obj):
            return None
        return getattr(obj, name, None)

    def _unloaded(self, obj: Any) -> frozenset[str]:
        if self.kind != "orm":
            return frozenset()
        state = sa_inspect(obj)
        return frozenset(state.unloaded) if state.has_identity else frozenset()

    def construct(self, values: Mapping[str, Any], populated: set[str]) -> Any:
        """Build a new instance from declared-name ``values``."""
        if self.kind == "pydantic":
            return self.cls.model_construct(_fields_set=set(populated), **values)
        if self.kind == "orm":
            return self.cls(**{k: v for k, v in values.items() if k in populated})
        kwargs = {fd.name: values[fd.name] for fd in self.fields if fd.init and fd.name in values}
        return self.cls(**kwargs)


def is_record_type(tp: Any) -> bool:
    if not isinstance(tp, type) or typing.get_origin(tp) is not None:
        return False
    if issubclass(tp, Nullable):
        return False
    if dataclasses.is_dataclass(tp) or issubclass(tp, BaseModel):
        return True
    return getattr(tp, "__mapper__", None) is not None


@lru_cache(maxsize=None)
def describe(cls: type) -> RecordSchema | None:
    if not is_record_type(cls):
        return None
    if dataclasses.is_dataclass(cls):
        return RecordSchema(cls, "dataclass", tuple(_dataclass_fields(cls)))
    if issubclass(cls, BaseModel):
        return RecordSchema(cls, "pydantic", tuple(_pydantic_fields(cls)))
    return RecordSchema(cls, "orm", tuple(_orm_fields(cls)))


def _tag(meta: Mapping[str, Any] | None, key: str) -> str:
    if not meta:
        return ""
    value = meta.get(key)
    return "" if value is None else str(value)


def _dataclass_fields(cls: type) -> Iterator[FieldDescriptor]:
    try:
        hints = typing.get_type_hints(cls)
    except (NameError, TypeError) as exc:
        logger.debug("Could not resolve annotations of %s: %s", cls.__name__, exc)
        hints = {}

    for f in dataclasses.fields(cls):
        annotation = hints.get(f.name, f.type)
        if isinstance(annotation, str):
            annotation = Any
        yield FieldDescriptor(
            name=f.name,
            permission=_tag(f.metadata, PERMISSION_KEY),
            name_tag=_tag(f.metadata, NAME_KEY),
            export_tag=_tag(f.metadata, EXPORT_NAME_KEY),
            embedded=bool(f.metadata.get(EMBED_KEY, False)),
            annotation=annotation,
            default=NO_DEFAULT if f.default is MISSING else f.default,
            default_factory=None if f.default_factory is MISSING else f.default_factory,
            init=f.init,
        )


def _pydantic_fields(cls: type[BaseModel]) -> Iterator[FieldDescriptor]:
    for name, info in cls.model_fields.items():
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        name_tag = _tag(extra, NAME_KEY) or info.serialization_alias or info.alias or ""
        yield FieldDescriptor(
            name=name,
            permission=_tag(extra, PERMISSION_KEY),
            name_tag=name_tag,
            export_tag=_tag(extra, EXPORT_NAME_KEY),
            embedded=bool(extra.get(EMBED_KEY, False)),
            annotation=info.annotation if info.annotation is not None else Any,
            default=NO_DEFAULT if info.is_required() or info.default_factory is not None else info.default,
            default_factory=info.default_factory,
        )


def _orm_fields(cls: type) -> Iterator[FieldDescriptor]:
    mapper = sa_inspect(cls)
    for prop in mapper.attrs:
        if isinstance(prop, ColumnProperty):
            info = {**prop.columns[0].info, **prop.info}
            try:
                annotation: Any = prop.columns[0].type.python_type
            except NotImplementedError:
                annotation = Any
        elif isinstance(prop, RelationshipProperty):
            info = dict(prop.info)
            target = prop.mapper.class_
            annotation = list[target] if prop.uselist else target | None
        else:
            continue

        yield FieldDescriptor(
            name=prop.key,
            permission=_tag(info, PERMISSION_KEY),
            name_tag=_tag(info, NAME_KEY),
            export_tag=_tag(info, EXPORT_NAME_KEY),
            embedded=bool(info.get(EMBED_KEY, False)),
            annotation=annotation,
            default=None,
        )


def unwrap_optional(annotation: Any) -> Any:
    """Strip Annotated[...] and Optional[...] down to the single underlying type."""
    while typing.get_origin(annotation) is typing.Annotated:
        annotation = typing.get_args(annotation)[0]
    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        members = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(members) == 1:
            return unwrap_optional(members[0])
    return annotation


def record_target(annotation: Any) -> RecordSchema | None:
    """Schema of the record type named by ``annotation``, if it names one."""
    ann = unwrap_optional(annotation)
    return describe(ann) if isinstance(ann, type) else None
