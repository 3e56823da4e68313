"""Generic CRUD result envelope.

Every call into a backing service returns one of these, whatever the transport:
{ content, is_success, status_code, error_message, validation_errors, id }
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class ResultEnvelope(BaseModel, Generic[T]):
    """Outcome of a single CRUD call. Immutable once constructed."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    content: T | None = None
    is_success: bool = False
    status_code: int | None = None
    error_message: str | None = None
    validation_errors: dict[str, list[str]] | None = None
    id: int | None = None

    @classmethod
    def ok(
        cls,
        content: T | None = None,
        *,
        id: int | None = None,
        status_code: int | None = 200,
    ) -> ResultEnvelope[T]:
        """Build a successful envelope."""
        return cls(content=content, is_success=True, status_code=status_code, id=id)

    @classmethod
    def fail(
        cls,
        error_message: str | None,
        *,
        validation_errors: dict[str, list[str]] | None = None,
        status_code: int | None = None,
    ) -> ResultEnvelope[T]:
        """Build a failed envelope, optionally carrying field-level messages."""
        return cls(
            is_success=False,
            error_message=error_message,
            validation_errors=validation_errors,
            status_code=status_code,
        )
