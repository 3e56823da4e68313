"""Single-entity record state machine.

A Record wraps one model snapshot and drives the single-entity CRUD calls of
its recordset's configuration. State is a set of orthogonal flags rather than
one enum: a record can be new *and* changed, or changed *and* failed.

Every CRUD operation follows one template:

    guard -> set busy + notify -> fire "before" (cancellable) -> call
    -> interpret envelope -> clear busy -> fire "after" on success
    -> notify -> fire ``crud_error`` on failure

Guards make an operation a silent no-op (no state change, no notification)
while the record is busy, deleted, or lacks the backing function. Faults
raised by the backing function are captured into ``error_message`` and treated
exactly like a failed envelope; they never reach the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from recordkit.config.recordset_config import RecordsetConfiguration
from recordkit.errors import RecordsetInvariantError
from recordkit.events import EventHook
from recordkit.models.envelope import ResultEnvelope
from recordkit.models.events import BeforeCrudEvent, StateChangedEvent
from recordkit.services.background import spawn

if TYPE_CHECKING:
    from recordkit.services.recordset import Recordset

logger = logging.getLogger(__name__)

TModel = TypeVar("TModel")

# Validation key under which client-side form messages are stored
FORM_MESSAGES_KEY = "form"


class Record(Generic[TModel]):
    """One entity plus its CRUD state.

    Records are created by a :class:`~recordkit.services.recordset.Recordset`,
    which subscribes to ``state_changed`` and removes the record once it
    reports ``is_deleted``.

    Parameters
    ----------
    parent:
        The owning recordset (used for ``has_focus``).
    model:
        The model snapshot this record wraps.
    configuration:
        CRUD functions shared with the parent recordset.
    is_new_record:
        ``True`` for a record that does not exist server-side yet.
    """

    def __init__(
        self,
        parent: Recordset[TModel],
        model: TModel,
        configuration: RecordsetConfiguration[TModel],
        *,
        is_new_record: bool = False,
    ) -> None:
        self._parent = parent
        self._configuration = configuration
        self._model = model

        self._is_changed = False
        self._is_new_record = is_new_record
        self._is_deleted = False
        self._is_busy = False
        self._is_saved = False
        self._has_failed_operation = False
        self._delete_requested = False
        self._error_message: str | None = None
        self._validation_errors: dict[str, list[str]] = {}

        self.state_changed: EventHook[StateChangedEvent] = EventHook()
        self.crud_error: EventHook[str] = EventHook()
        self.focus: EventHook[bool] = EventHook()
        self.before_refresh: EventHook[BeforeCrudEvent[TModel]] = EventHook()
        self.before_undo: EventHook[BeforeCrudEvent[TModel]] = EventHook()
        self.before_update: EventHook[BeforeCrudEvent[TModel]] = EventHook()
        self.before_delete: EventHook[BeforeCrudEvent[TModel]] = EventHook()
        self.after_refresh: EventHook[TModel] = EventHook()
        self.after_undo: EventHook[TModel] = EventHook()
        self.after_update: EventHook[TModel] = EventHook()
        self.after_delete: EventHook[TModel] = EventHook()

    def __repr__(self) -> str:
        flags = [
            name
            for name, on in (
                ("new", self._is_new_record),
                ("changed", self._is_changed),
                ("busy", self._is_busy),
                ("deleted", self._is_deleted),
                ("failed", self._has_failed_operation),
            )
            if on
        ]
        return f"<Record {self._model!r} [{', '.join(flags) or 'clean'}]>"

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def model(self) -> TModel:
        return self._model

    @property
    def is_changed(self) -> bool:
        """Edits were made that are not saved yet."""
        return self._is_changed

    @property
    def is_new_record(self) -> bool:
        """Saving creates the entity instead of updating it."""
        return self._is_new_record

    @property
    def is_deleted(self) -> bool:
        return self._is_deleted

    @property
    def is_busy(self) -> bool:
        """A CRUD call is in flight."""
        return self._is_busy

    @property
    def is_saved(self) -> bool:
        """The last save succeeded and nothing was edited or reloaded since."""
        return self._is_saved

    @property
    def has_failed_operation(self) -> bool:
        return self._has_failed_operation

    @property
    def error_message(self) -> str | None:
        return self._error_message

    @property
    def delete_requested(self) -> bool:
        """Advisory flag for a pending delete confirmation."""
        return self._delete_requested

    @property
    def validation_errors(self) -> dict[str, list[str]]:
        return {key: list(messages) for key, messages in self._validation_errors.items()}

    @property
    def has_validation_errors(self) -> bool:
        return bool(self._validation_errors)

    @property
    def has_focus(self) -> bool:
        return self._parent.current_record is self

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

    # ------------------------------------------------------------------
    # CRUD operations
    # ------------------------------------------------------------------

    def save_changes(self) -> asyncio.Task[None] | None:
        """Start :meth:`save_changes_async` without waiting for it."""
        return spawn(self.save_changes_async, "save changes")

    async def save_changes_async(self) -> None:
        """Create (new record) or update the entity with the current model."""
        if self._is_busy or self._is_deleted or not self.allow_update:
            return
        if self._is_new_record and not self.allow_create:
            return
        if not self._is_changed:
            return

        self._validation_errors = {}
        self._begin()
        try:
            args = BeforeCrudEvent(self._model)
            self.before_update.fire(args)
            if args.cancel:
                self._end()
                return

            if self._is_new_record:
                call, operation = self._configuration.create, "create"
            else:
                call, operation = self._configuration.update, "update"
            result = await call(self._model)  # type: ignore[misc]

            self._is_busy = False
            if self._accept(result, operation, require_content=True):
                self._model = result.content  # type: ignore[assignment]
                self._is_changed = False
                self._is_new_record = False
                self._is_saved = True
                self.after_update.fire(self._model)
            elif result.validation_errors:
                self._validation_errors = {
                    key: list(messages) for key, messages in result.validation_errors.items()
                }
            self._notify(no_focus=True)
        except RecordsetInvariantError:
            raise
        except Exception as exc:
            self._fault(exc, "save")

        if self._has_failed_operation:
            self.crud_error.fire(f"Save Changes was not successful: {self._error_message}")

    def undo_changes(self) -> asyncio.Task[None] | None:
        """Start :meth:`undo_changes_async` without waiting for it."""
        return spawn(self.undo_changes_async, "undo changes")

    async def undo_changes_async(self) -> None:
        """Discard edits by reloading the entity.

        Undoing a new record deletes it: there is nothing to reload.
        """
        if self._is_busy or self._is_deleted or not self.allow_read:
            return
        if self._is_new_record:
            await self.delete_async()
            return
        if not self._is_changed:
            return

        self._begin()
        try:
            args = BeforeCrudEvent(self._model)
            self.before_undo.fire(args)
            if args.cancel:
                self._end()
                return

            result = await self._configuration.read(self._model)  # type: ignore[misc]

            self._is_busy = False
            if self._accept(result, "undo", require_content=True):
                self._model = result.content  # type: ignore[assignment]
                self._is_changed = False
                self.after_undo.fire(self._model)
            self._notify(no_focus=True)
        except RecordsetInvariantError:
            raise
        except Exception as exc:
            self._fault(exc, "undo")

        if self._has_failed_operation:
            self.crud_error.fire(f"Undo was not successful: {self._error_message}")

    def refresh(self) -> asyncio.Task[None] | None:
        """Start :meth:`refresh_async` without waiting for it."""
        return spawn(self.refresh_async, "refresh")

    async def refresh_async(self) -> None:
        """Reload the entity from the backing service.

        A changed record is undone instead, since reloading would silently
        overwrite the unsaved edits. A new record has nothing to reload.
        """
        if self._is_busy or self._is_deleted or self._is_new_record:
            return
        if self._is_changed:
            await self.undo_changes_async()
            return
        if not self.allow_read:
            return

        self._begin()
        try:
            args = BeforeCrudEvent(self._model)
            self.before_refresh.fire(args)
            if args.cancel:
                self._end()
                return

            result = await self._configuration.read(self._model)  # type: ignore[misc]

            self._is_busy = False
            if self._accept(result, "refresh", require_content=True):
                self._model = result.content  # type: ignore[assignment]
                self._is_saved = False
                self.after_refresh.fire(self._model)
            self._notify(no_focus=True)
        except RecordsetInvariantError:
            raise
        except Exception as exc:
            self._fault(exc, "refresh")

        if self._has_failed_operation:
            self.crud_error.fire(f"Refresh was not successful: {self._error_message}")

    def delete(self) -> asyncio.Task[None] | None:
        """Start :meth:`delete_async` without waiting for it."""
        return spawn(self.delete_async, "delete")

    async def delete_async(self) -> None:
        """Delete the entity. A new record is only dropped locally."""
        if self._is_busy or self._is_deleted or not self.allow_delete:
            return

        self._begin()
        try:
            args = BeforeCrudEvent(self._model)
            self.before_delete.fire(args)
            if args.cancel:
                self._end()
                return

            if self._is_new_record:
                self._is_deleted = True
            else:
                result = await self._configuration.delete(self._model)  # type: ignore[misc]
                if self._accept(result, "delete", require_content=False):
                    self._is_deleted = True

            self._is_busy = False
            if self._is_deleted:
                self.after_delete.fire(self._model)
            self._notify(no_focus=True)
        except RecordsetInvariantError:
            raise
        except Exception as exc:
            self._fault(exc, "delete")

        if self._has_failed_operation:
            self.crud_error.fire(f"Delete was not successful: {self._error_message}")

    def request_delete(self) -> None:
        """Stage a delete while a confirmation is pending. Changes no data."""
        if self._is_deleted:
            return
        self._delete_requested = True
        self._notify(no_focus=True)

    def cancel_delete(self) -> None:
        if self._is_deleted:
            return
        self._delete_requested = False
        self._notify(no_focus=True)

    # ------------------------------------------------------------------
    # Focus and edits
    # ------------------------------------------------------------------

    def set_focus(self, by_program: bool) -> None:
        """Ask the recordset to make this the current record.

        Moving focus is also the trigger for the auto-save cascade.
        """
        if self._is_deleted:
            return
        self.focus.fire(by_program)
        self._notify(set_focus=True, save_records=True)

    def on_field_changed(self, field_key: str) -> None:
        """Entry point for a UI that edited ``field_key`` of the model.

        The first edit of a new record notifies twice: once so the recordset
        can spawn a replacement new record, once to register this record for
        saving. Later edits are idempotent.
        """
        if self._is_deleted:
            return
        if not self._is_changed:
            if self._is_new_record:
                self._notify()
            self._is_changed = True
            self._is_saved = False
            self._notify(save_records=True)

        # Messages for an edited field are stale
        if field_key in self._validation_errors:
            del self._validation_errors[field_key]
            self._notify(save_records=True)

    def on_validation_state_changed(self, messages: Iterable[str] | None) -> None:
        """Replace the client-side form validation messages."""
        changed = self._validation_errors.pop(FORM_MESSAGES_KEY, None) is not None
        messages = list(messages or ())
        if messages:
            self._validation_errors[FORM_MESSAGES_KEY] = messages
            changed = True
        if changed:
            self._notify(no_focus=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _notify(
        self, *, save_records: bool = False, set_focus: bool = False, no_focus: bool = False
    ) -> None:
        self.state_changed.fire(
            StateChangedEvent(
                record=self,
                save_records=save_records,
                set_focus=set_focus,
                no_focus=no_focus,
            )
        )

    def _begin(self) -> None:
        self._has_failed_operation = False
        self._is_busy = True
        self._notify(no_focus=True)

    def _end(self) -> None:
        self._is_busy = False
        self._notify(no_focus=True)

    def _accept(
        self, result: ResultEnvelope[Any], operation: str, *, require_content: bool
    ) -> bool:
        """Return True for a usable envelope, else record the failure."""
        if result.is_success and (result.content is not None or not require_content):
            logger.debug(
                "%s succeeded for %s",
                operation,
                type(self._model).__name__,
                extra={"operation": operation, "model_type": type(self._model).__name__},
            )
            return True

        self._has_failed_operation = True
        if result.error_message:
            self._error_message = result.error_message
        else:
            self._error_message = "No content returned" if result.is_success else "Unknown error"
        logger.warning(
            "%s failed for %s: %s",
            operation,
            type(self._model).__name__,
            self._error_message,
            extra={
                "operation": operation,
                "model_type": type(self._model).__name__,
                "error_reason": self._error_message,
            },
        )
        return False

    def _fault(self, exc: Exception, operation: str) -> None:
        logger.exception(
            "Unhandled exception during %s of %s",
            operation,
            type(self._model).__name__,
            extra={"operation": operation, "model_type": type(self._model).__name__},
        )
        self._is_busy = False
        self._has_failed_operation = True
        self._error_message = str(exc)
        self._notify(no_focus=True)
