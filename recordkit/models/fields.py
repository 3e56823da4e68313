"""Read-only field descriptors derived from a model's declared schema.

Descriptors are computed once per model class from its pydantic field
declarations and then handed to a recordset as plain configuration. UI layers
read them to label, order and lock inputs; the engine never mutates them.

Display metadata that pydantic has no slot for travels in ``json_schema_extra``::

    class Customer(BaseModel):
        id: int | None = Field(default=None, json_schema_extra={"key": True, "editable": False})
        name: str = Field(title="Customer name", max_length=80)
        created: date | None = Field(default=None, json_schema_extra={"display_format": "{:%d-%m-%Y}"})
"""

from __future__ import annotations

import datetime as dt
import types
from collections.abc import Iterable
from decimal import Decimal
from functools import lru_cache
from typing import Any, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict

from recordkit.errors import FieldNotFoundError

_NUMERIC_TYPES = (int, float, Decimal)
_DATE_TYPES = (dt.datetime, dt.date, dt.time)


def _unwrap_optional(annotation: Any) -> Any:
    """Return ``X`` for ``X | None`` / ``Optional[X]``; anything else unchanged."""
    if get_origin(annotation) in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


class FieldDescriptor(BaseModel):
    """Metadata for one declared field of a model."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    display: str
    required: bool = False
    key: bool = False
    editable: bool = True
    max_length: int | None = None
    display_format: str | None = None
    data_type: str | None = None
    annotation: Any = None

    @property
    def is_numeric(self) -> bool:
        base = _unwrap_optional(self.annotation)
        return isinstance(base, type) and issubclass(base, _NUMERIC_TYPES) and base is not bool

    @property
    def is_date(self) -> bool:
        base = _unwrap_optional(self.annotation)
        return isinstance(base, type) and issubclass(base, _DATE_TYPES)

    @property
    def is_boolean(self) -> bool:
        return _unwrap_optional(self.annotation) is bool


@lru_cache(maxsize=None)
def describe_model(model_cls: type[BaseModel]) -> tuple[FieldDescriptor, ...]:
    """Build the ordered descriptor list for a pydantic model class.

    The result is cached per class, so every recordset over the same model
    shares one tuple.
    """
    descriptors: list[FieldDescriptor] = []
    for name, info in model_cls.model_fields.items():
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}

        max_length = None
        for constraint in info.metadata:
            max_length = getattr(constraint, "max_length", None) or max_length

        descriptors.append(
            FieldDescriptor(
                name=name,
                display=info.title or name,
                required=info.is_required(),
                key=bool(extra.get("key", False)),
                editable=bool(extra.get("editable", True)),
                max_length=max_length,
                display_format=extra.get("display_format"),
                data_type=extra.get("data_type"),
                annotation=info.annotation,
            )
        )
    return tuple(descriptors)


def get_field(fields: Iterable[FieldDescriptor], name: str) -> FieldDescriptor:
    """Return the descriptor called *name*.

    Raises
    ------
    FieldNotFoundError
        If no descriptor has that name.
    """
    for descriptor in fields:
        if descriptor.name == name:
            return descriptor
    raise FieldNotFoundError(f"The model does not have a field named '{name}'", field=name)
