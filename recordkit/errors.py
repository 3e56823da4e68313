"""Error hierarchy for recordkit.

CRUD failures reported by a backing service are *state* (``has_failed_operation``,
``error_message``) rather than exceptions. The errors below are reserved for
mistakes made by the program wiring the engine together: an inconsistent
configuration, a broken recordset invariant, or a lookup of an unknown field.
"""

from __future__ import annotations


class RecordkitError(Exception):
    """Base error for all recordkit-specific errors."""

    message: str = "Record engine error"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(RecordkitError):
    """The CRUD function slots of a configuration are inconsistent."""

    message = "Invalid recordset configuration"


class RecordsetInvariantError(RecordkitError):
    """A structural invariant of a recordset was violated (programming error)."""

    message = "Recordset invariant violated"


class FieldNotFoundError(RecordkitError):
    """The model does not declare a field with the requested name."""

    message = "Field not found"
