"""CRUD service contract consumed by recordset configurations."""

from __future__ import annotations

from typing import Protocol, TypeVar

from recordkit.models.envelope import ResultEnvelope

TModel = TypeVar("TModel")


class CrudService(Protocol[TModel]):
    """Six async calls keyed to one model type.

    Implementations report failures through the envelope rather than by
    raising; anything they do raise is captured by the calling record.
    """

    async def get_all(self) -> ResultEnvelope[list[TModel]]: ...

    async def get_all_where(self, where: str | None) -> ResultEnvelope[list[TModel]]: ...

    async def create(self, model: TModel) -> ResultEnvelope[TModel]: ...

    async def read(self, model: TModel) -> ResultEnvelope[TModel]: ...

    async def update(self, model: TModel) -> ResultEnvelope[TModel]: ...

    async def delete(self, model: TModel) -> ResultEnvelope[bool]: ...
