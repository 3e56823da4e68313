"""Record and recordset state machines."""

from recordkit.services.record import FORM_MESSAGES_KEY, Record
from recordkit.services.recordset import Recordset

__all__ = [
    "FORM_MESSAGES_KEY",
    "Record",
    "Recordset",
]
