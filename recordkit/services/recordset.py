"""Recordset: an ordered collection of records bound to one configuration.

The recordset owns every piece of shared state: the model list (``data``), the
parallel record list (``records``), the current-record cursor, the single
pending new record and the derived "changed" and "invalid" membership lists.
Records never touch that state; they report transitions through
``state_changed`` and :meth:`Recordset.on_record_state_changed` reacts:

1. a new record that was touched for the first time is "spent" and, when
   ``add_new_record_automatic`` is on, replaced by a fresh new record;
2. a deleted record is removed;
3. a save cascade request saves every *other* changed record when
   ``save_changes_automatic`` is on;
4. changed / invalid membership is recomputed for the reporting record;
5. an edit elsewhere moves the cursor (and focus) to the reporting record;
6. a focus request moves the cursor without re-focusing;
7. ``changed`` is fired exactly once.

All mutations happen on one event loop; the busy flags are plain booleans
checked and set synchronously, not locks.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Generic, TypeVar

from recordkit.config.recordset_config import RecordsetConfiguration
from recordkit.errors import RecordsetInvariantError
from recordkit.events import EventHook
from recordkit.models.events import RecordsChangedEvent, StateChangedEvent
from recordkit.models.fields import FieldDescriptor
from recordkit.services.background import spawn
from recordkit.services.record import Record

logger = logging.getLogger(__name__)

TModel = TypeVar("TModel")


class Recordset(Generic[TModel]):
    """Records for one entity type, with navigation and cascades.

    Parameters
    ----------
    configuration:
        CRUD functions and policy flags shared by every record.
    data:
        Optional initial models. Without a bulk reader this gives an
        in-memory recordset.
    """

    def __init__(
        self,
        configuration: RecordsetConfiguration[TModel],
        data: Iterable[TModel] | None = None,
    ) -> None:
        self._configuration = configuration
        self._data: list[TModel] = list(data or ())
        self._records: list[Record[TModel]] = []
        self._changed_records: list[Record[TModel]] = []
        self._invalid_records: list[Record[TModel]] = []
        self._current_record: Record[TModel] | None = None
        self._new_record: Record[TModel] | None = None

        self._is_busy = False
        self._has_failed_operation = False
        self._error_message: str | None = None

        self.changed: EventHook[Recordset[TModel]] = EventHook()
        self.records_changed: EventHook[RecordsChangedEvent] = EventHook()
        self.crud_error: EventHook[str] = EventHook()

        if data is not None:
            self._rebuild_records()

    def __repr__(self) -> str:
        return (
            f"<Recordset records={len(self._records)} "
            f"changed={len(self._changed_records)} invalid={len(self._invalid_records)}>"
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def data(self) -> tuple[TModel, ...]:
        return tuple(self._data)

    @property
    def records(self) -> tuple[Record[TModel], ...]:
        return tuple(self._records)

    @property
    def record_count(self) -> int:
        return len(self._records)

    @property
    def current_record(self) -> Record[TModel] | None:
        return self._current_record

    @property
    def current_index(self) -> int:
        """1-based position of the current record, 0 when there is none."""
        if self._current_record is None:
            return 0
        return self._index_of(self._current_record) + 1

    @property
    def new_record(self) -> Record[TModel] | None:
        return self._new_record

    @property
    def changed_records(self) -> tuple[Record[TModel], ...]:
        return tuple(self._changed_records)

    @property
    def invalid_records(self) -> tuple[Record[TModel], ...]:
        return tuple(self._invalid_records)

    @property
    def changed_records_count(self) -> int:
        return len(self._changed_records)

    @property
    def invalid_records_count(self) -> int:
        return len(self._invalid_records)

    @property
    def is_busy(self) -> bool:
        return self._is_busy

    @property
    def has_failed_operation(self) -> bool:
        return self._has_failed_operation

    @property
    def error_message(self) -> str | None:
        return self._error_message

    @property
    def fields(self) -> tuple[FieldDescriptor, ...]:
        return self._configuration.fields

    @property
    def allow_refresh(self) -> bool:
        return self._configuration.allow_refresh

    @property
    def allow_create(self) -> bool:
        return self._configuration.allow_create

    @property
    def allow_read(self) -> bool:
        return self._configuration.allow_read

    @property
    def allow_update(self) -> bool:
        return self._configuration.allow_update

    @property
    def allow_delete(self) -> bool:
        return self._configuration.allow_delete

    @property
    def save_changes_automatic(self) -> bool:
        return self._configuration.save_changes_automatic

    @save_changes_automatic.setter
    def save_changes_automatic(self, value: bool) -> None:
        self._configuration.save_changes_automatic = value

    @property
    def add_new_record_automatic(self) -> bool:
        return self._configuration.add_new_record_automatic

    @add_new_record_automatic.setter
    def add_new_record_automatic(self, value: bool) -> None:
        self._configuration.add_new_record_automatic = value

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def refresh_data(self) -> asyncio.Task[None] | None:
        """Start :meth:`refresh_data_async` without waiting for it."""
        return spawn(self.refresh_data_async, "refresh data")

    async def refresh_data_async(self) -> None:
        """Reload every model and rebuild all records.

        Existing record objects are discarded, together with all tracked
        changed / invalid / new state.
        """
        if self._is_busy or not self.allow_refresh:
            return

        self._has_failed_operation = False
        self._is_busy = True
        self.changed.fire(self)
        try:
            if self._configuration.get_all is not None:
                result = await self._configuration.get_all()
            else:
                result = await self._configuration.get_all_where(  # type: ignore[misc]
                    self._configuration.where_string
                )

            if result.is_success and result.content is not None:
                where_filter = self._configuration.where_filter
                if where_filter is not None:
                    self._data = [model for model in result.content if where_filter(model)]
                else:
                    self._data = list(result.content)
            else:
                self._data = []
                self._fail(result.error_message or "No content returned")
            self._rebuild_records()
            logger.debug(
                "Refreshed recordset with %d models",
                len(self._data),
                extra={"operation": "refresh_data"},
            )
        except RecordsetInvariantError:
            raise
        except Exception as exc:
            logger.exception("Unhandled exception during refresh_data", extra={"operation": "refresh_data"})
            self._fail(str(exc))

        self._is_busy = False
        self.changed.fire(self)
        if self._has_failed_operation:
            self.crud_error.fire(f"Refresh was not successful: {self._error_message}")

    def save_all_changes(self) -> None:
        """Start a save for every changed record that is idle and valid.

        Saves are independent: no ordering, no all-or-nothing. Each record's
        own failure state reports its own outcome.
        """
        for record in self._saveable_records():
            record.save_changes()

    async def save_all_changes_async(self) -> None:
        """Like :meth:`save_all_changes`, but wait for every save to finish."""
        await asyncio.gather(*(record.save_changes_async() for record in self._saveable_records()))

    def try_add_new_record(self) -> bool:
        """Append a new record unless one is already pending.

        Returns ``True`` when a record was added.
        """
        if self._new_record is not None:
            return False
        if not self._append_new_record():
            return False
        self.changed.fire(self)
        return True

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def select_first(self) -> None:
        if self._records:
            self._select(self._records[0])

    def select_previous(self) -> None:
        index = self.current_index
        if index > 1:
            self._select(self._records[index - 2])

    def select_next(self) -> None:
        index = self.current_index
        if index < len(self._records):
            self._select(self._records[index])

    def select_last(self) -> None:
        if self._records:
            self._select(self._records[-1])

    def go_to_record(self, index: int) -> None:
        """Select the record at 1-based *index*. Out of range is a no-op."""
        if 1 <= index <= len(self._records):
            self._select(self._records[index - 1])

    def focus_or_add_new_record(self) -> None:
        """Move focus to the pending new record, adding one if needed."""
        self.try_add_new_record()
        if self._new_record is not None:
            self._select(self._new_record)

    # ------------------------------------------------------------------
    # Cascade router
    # ------------------------------------------------------------------

    def on_record_state_changed(self, event: StateChangedEvent) -> None:
        """React to a state transition reported by a member record."""
        record: Record[TModel] = event.record

        # A pending new record that gets touched is no longer "the" new record
        if (
            record is self._new_record
            and not record.is_changed
            and not record.is_deleted
            and not event.set_focus
        ):
            self._new_record = None
            if self.add_new_record_automatic:
                self._append_new_record()

        if record.is_deleted:
            self._remove_record(record)
        else:
            # Models are replaced wholesale on success; keep data in lock-step
            self._data[self._index_of(record)] = record.model

        if event.save_records and self.save_changes_automatic:
            for other in list(self._changed_records):
                if other is not record and not other.is_busy:
                    other.save_changes()

        if not record.is_deleted:
            self._update_membership(self._changed_records, record, record.is_changed)
            self._update_membership(self._invalid_records, record, record.has_validation_errors)

            if not event.set_focus and not event.no_focus and self._current_record is not record:
                self._current_record = record
                record.set_focus(True)

            if event.set_focus:
                self._current_record = record

        self.changed.fire(self)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _rebuild_records(self) -> None:
        # Discarded records may still have calls in flight; stop listening
        for stale in self._records:
            stale.state_changed.unsubscribe(self.on_record_state_changed)
        self._records = []
        self._changed_records = []
        self._invalid_records = []
        self._new_record = None
        for model in self._data:
            self._records.append(self._wrap(model))
        if self.add_new_record_automatic and self.allow_create:
            self._add_new_record()
        self._current_record = self._records[0] if self._records else None

    def _wrap(self, model: TModel, *, is_new_record: bool = False) -> Record[TModel]:
        record = Record(self, model, self._configuration, is_new_record=is_new_record)
        record.state_changed.subscribe(self.on_record_state_changed)
        return record

    def _add_new_record(self) -> Record[TModel] | None:
        """Append one new record to data and records. Fires nothing."""
        if not self.allow_create:
            return None
        model = self._configuration.model_factory()  # type: ignore[misc]
        record = self._wrap(model, is_new_record=True)
        self._data.append(model)
        self._records.append(record)
        self._new_record = record
        return record

    def _append_new_record(self) -> bool:
        # Structural change only; callers publish `changed` themselves
        if self._add_new_record() is None:
            return False
        self.records_changed.fire(RecordsChangedEvent(self))
        return True

    def _remove_record(self, record: Record[TModel]) -> None:
        """Drop a deleted record from every list.

        Raises
        ------
        RecordsetInvariantError
            If the record is not a member of this recordset.
        """
        index = self._index_of(record)
        del self._data[index]
        del self._records[index]
        self._discard(self._changed_records, record)
        self._discard(self._invalid_records, record)
        record.state_changed.unsubscribe(self.on_record_state_changed)

        if self._new_record is record:
            self._new_record = None
        if self._current_record is record:
            if self._records:
                self._current_record = self._records[min(index, len(self._records) - 1)]
            else:
                self._current_record = None

        logger.debug("Removed deleted record at position %d", index + 1, extra={"record_index": index + 1})
        self.records_changed.fire(RecordsChangedEvent(self))

    def _index_of(self, record: Record[TModel]) -> int:
        # Identity, not equality: two records may wrap equal models
        for index, member in enumerate(self._records):
            if member is record:
                return index
        raise RecordsetInvariantError(
            "The record does not exist in the list of records of this recordset"
        )

    def _select(self, record: Record[TModel]) -> None:
        self._current_record = record
        record.set_focus(True)

    def _saveable_records(self) -> list[Record[TModel]]:
        # Snapshot: saves finishing mid-iteration mutate the changed list
        return [
            record
            for record in list(self._changed_records)
            if not record.is_busy and not record.has_validation_errors
        ]

    def _fail(self, message: str) -> None:
        self._has_failed_operation = True
        self._error_message = message
        logger.warning(
            "Refresh failed: %s", message, extra={"operation": "refresh_data", "error_reason": message}
        )

    @staticmethod
    def _update_membership(
        members: list[Record[TModel]], record: Record[TModel], should_be_member: bool
    ) -> None:
        is_member = any(member is record for member in members)
        if should_be_member and not is_member:
            members.append(record)
        elif is_member and not should_be_member:
            Recordset._discard(members, record)

    @staticmethod
    def _discard(members: list[Record[TModel]], record: Record[TModel]) -> None:
        for index, member in enumerate(members):
            if member is record:
                del members[index]
                return
