"""Payloads carried by the events a record or recordset fires."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

TModel = TypeVar("TModel")


@dataclass(frozen=True)
class StateChangedEvent:
    """A record reports that its state has changed.

    ``save_records`` asks the recordset to run the auto-save cascade,
    ``set_focus`` says the record is becoming the current record, and
    ``no_focus`` forbids the recordset from moving the cursor to it.
    """

    record: Any
    save_records: bool = False
    set_focus: bool = False
    no_focus: bool = False


@dataclass
class BeforeCrudEvent(Generic[TModel]):
    """Fired before a CRUD call. Any handler may set ``cancel``."""

    model: TModel
    cancel: bool = False


@dataclass(frozen=True)
class RecordsChangedEvent:
    """Records were added to or removed from a recordset."""

    recordset: Any
