"""Public models for the record engine."""

from recordkit.models.envelope import ResultEnvelope
from recordkit.models.events import BeforeCrudEvent, RecordsChangedEvent, StateChangedEvent
from recordkit.models.fields import FieldDescriptor, describe_model, get_field

__all__ = [
    "BeforeCrudEvent",
    "FieldDescriptor",
    "RecordsChangedEvent",
    "ResultEnvelope",
    "StateChangedEvent",
    "describe_model",
    "get_field",
]
