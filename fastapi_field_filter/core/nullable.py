from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Nullable(Generic[T]):
    """
    Boxed optional scalar that keeps "no value" distinct from a zero value.

    A valid ``Nullable`` extracts to its underlying value; an invalid one
    extracts to ``None``.

    Example:
        Nullable.of(3)       # valid, value 3
        Nullable.null()      # invalid
    """

    value: T | None = None
    valid: bool = False

    @classmethod
    def of(cls, value: T | None) -> "Nullable[T]":
        return cls(value=value, valid=value is not None)

    @classmethod
    def null(cls) -> "Nullable[Any]":
        return cls()

    def get(self, default: Any = None) -> Any:
        return self.value if self.valid else default
