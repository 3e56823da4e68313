"""recordkit: a UI-agnostic record/recordset engine over pluggable CRUD services."""

from recordkit.bootstrap import ConfigurationFactory, setup
from recordkit.config import RecordkitSettings, RecordsetConfiguration
from recordkit.errors import (
    ConfigurationError,
    FieldNotFoundError,
    RecordkitError,
    RecordsetInvariantError,
)
from recordkit.events import EventHook
from recordkit.integration import CrudService, HttpCrudService
from recordkit.models import (
    BeforeCrudEvent,
    FieldDescriptor,
    RecordsChangedEvent,
    ResultEnvelope,
    StateChangedEvent,
    describe_model,
)
from recordkit.services import Record, Recordset

__all__ = [
    "BeforeCrudEvent",
    "ConfigurationError",
    "ConfigurationFactory",
    "CrudService",
    "EventHook",
    "FieldDescriptor",
    "FieldNotFoundError",
    "HttpCrudService",
    "Record",
    "RecordkitError",
    "RecordkitSettings",
    "Recordset",
    "RecordsetConfiguration",
    "RecordsChangedEvent",
    "RecordsetInvariantError",
    "ResultEnvelope",
    "StateChangedEvent",
    "describe_model",
    "setup",
]
