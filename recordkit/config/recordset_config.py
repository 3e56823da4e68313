"""CRUD configuration bound to one recordset.

A configuration bundles up to six optional async functions that talk to the
backing service, and derives which operations are permitted from which of them
are present. Permission switches can mask a supplied function so the matching
operation is disabled without rewiring the service.

Construction rejects inconsistent slot combinations:

- ``create`` without ``update``: saving a new record reuses the save path.
- ``update`` without ``read``: an updatable record must support undo/reload.
- ``create`` without ``model_factory``: a new record needs an empty model.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from recordkit.errors import ConfigurationError
from recordkit.models.envelope import ResultEnvelope
from recordkit.models.fields import FieldDescriptor

if TYPE_CHECKING:
    from recordkit.config.entity_policies import EntityPolicy
    from recordkit.integration.service import CrudService

TModel = TypeVar("TModel")

GetAllFn = Callable[[], Awaitable[ResultEnvelope[list[TModel]]]]
GetAllWhereFn = Callable[[str | None], Awaitable[ResultEnvelope[list[TModel]]]]
ModelFn = Callable[[TModel], Awaitable[ResultEnvelope[TModel]]]
DeleteFn = Callable[[TModel], Awaitable[ResultEnvelope[bool]]]


class RecordsetConfiguration(Generic[TModel]):
    """Function slots and policy flags for one entity type.

    Parameters
    ----------
    get_all, get_all_where:
        Bulk readers. Either one enables refresh.
    create, read, update, delete:
        Single-entity calls.
    where_filter:
        Client-side predicate applied to every bulk result.
    where_string:
        Server-side filter passed to ``get_all_where``.
    model_factory:
        Zero-argument callable producing the empty model of a new record.
    fields:
        Field descriptors for the model, usually ``describe_model(Model)``.
    save_changes_automatic:
        Save other changed records whenever focus moves between records.
    add_new_record_automatic:
        Keep one empty new record at the end of the recordset.
    allow_refresh, allow_create, allow_read, allow_update, allow_delete:
        Permission switches. A switched-off slot is stored as ``None``.

    Raises
    ------
    ConfigurationError
        If the slots (after masking) violate a dependency rule.
    """

    def __init__(
        self,
        *,
        get_all: GetAllFn | None = None,
        get_all_where: GetAllWhereFn | None = None,
        create: ModelFn | None = None,
        read: ModelFn | None = None,
        update: ModelFn | None = None,
        delete: DeleteFn | None = None,
        where_filter: Callable[[TModel], bool] | None = None,
        where_string: str | None = None,
        model_factory: Callable[[], TModel] | None = None,
        fields: Iterable[FieldDescriptor] = (),
        save_changes_automatic: bool = False,
        add_new_record_automatic: bool = False,
        allow_refresh: bool = True,
        allow_create: bool = True,
        allow_read: bool = True,
        allow_update: bool = True,
        allow_delete: bool = True,
    ) -> None:
        self._get_all = get_all if allow_refresh else None
        self._get_all_where = get_all_where if allow_refresh else None
        self._create = create if allow_create else None
        self._read = read if allow_read else None
        self._update = update if allow_update else None
        self._delete = delete if allow_delete else None

        self.where_filter = where_filter
        self.where_string = where_string
        self.model_factory = model_factory
        self.fields: tuple[FieldDescriptor, ...] = tuple(fields)
        self.save_changes_automatic = save_changes_automatic
        self.add_new_record_automatic = add_new_record_automatic

        self._validate()

    def _validate(self) -> None:
        if self._create is not None and self._update is None:
            raise ConfigurationError(
                "The recordset configuration requires an update function "
                "if a create function is provided"
            )
        if self._update is not None and self._read is None:
            raise ConfigurationError(
                "The recordset configuration requires a read function "
                "if an update function is provided"
            )
        if self._create is not None and self.model_factory is None:
            raise ConfigurationError(
                "The recordset configuration requires a model factory "
                "if a create function is provided"
            )

    # ------------------------------------------------------------------
    # Alternate constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_service(
        cls, service: CrudService[TModel], **kwargs: Any
    ) -> RecordsetConfiguration[TModel]:
        """Bind all six slots to the methods of a CRUD service."""
        return cls(
            get_all=service.get_all,
            get_all_where=service.get_all_where,
            create=service.create,
            read=service.read,
            update=service.update,
            delete=service.delete,
            **kwargs,
        )

    @classmethod
    def from_policy(
        cls, policy: EntityPolicy, **kwargs: Any
    ) -> RecordsetConfiguration[TModel]:
        """Apply an entity policy's switches and flags to the given slots."""
        options = policy.model_dump()
        options.update(kwargs)
        return cls(**options)

    # ------------------------------------------------------------------
    # Function slots (read-only once validated)
    # ------------------------------------------------------------------

    @property
    def get_all(self) -> GetAllFn | None:
        return self._get_all

    @property
    def get_all_where(self) -> GetAllWhereFn | None:
        return self._get_all_where

    @property
    def create(self) -> ModelFn | None:
        return self._create

    @property
    def read(self) -> ModelFn | None:
        return self._read

    @property
    def update(self) -> ModelFn | None:
        return self._update

    @property
    def delete(self) -> DeleteFn | None:
        return self._delete

    # ------------------------------------------------------------------
    # Derived permissions
    # ------------------------------------------------------------------

    @property
    def allow_refresh(self) -> bool:
        return self._get_all is not None or self._get_all_where is not None

    @property
    def allow_create(self) -> bool:
        return self._create is not None

    @property
    def allow_read(self) -> bool:
        return self._read is not None

    @property
    def allow_update(self) -> bool:
        return self._update is not None

    @property
    def allow_delete(self) -> bool:
        return self._delete is not None
