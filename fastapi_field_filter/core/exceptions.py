from __future__ import annotations

from typing import Iterable


class FieldFilterException(Exception):
    status_code: int = 400
    default_detail: str = "Request failed."

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class PermissionDeniedException(FieldFilterException):
    status_code = 403
    default_detail = "Permission denied."

    def __init__(self, detail: str | None = None, *, fields: Iterable[str] = ()) -> None:
        self.fields = sorted(fields)
        if detail is None and self.fields:
            detail = f"{self.default_detail} Fields: {', '.join(self.fields)}."
        super().__init__(detail)


class ReconstructionError(FieldFilterException):
    """Raised when a filtered representation cannot be turned back into a record."""

    status_code = 500
    default_detail = "Could not rebuild the filtered record."
