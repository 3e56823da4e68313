"""Shared test fixtures and hypothesis strategies for the recordkit test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest
from hypothesis import strategies as st
from pydantic import BaseModel, Field

from recordkit.config.recordset_config import RecordsetConfiguration
from recordkit.config.settings import RecordkitSettings
from recordkit.models.envelope import ResultEnvelope
from recordkit.models.fields import describe_model
from recordkit.services.recordset import Recordset


# ---------------------------------------------------------------------------
# Test model
# ---------------------------------------------------------------------------


class Customer(BaseModel):
    id: int | None = Field(default=None, json_schema_extra={"key": True, "editable": False})
    name: str = Field(default="", title="Customer name", max_length=80)
    email: str | None = None
    active: bool = True


# ---------------------------------------------------------------------------
# In-memory CRUD service
# ---------------------------------------------------------------------------


class FakeCrudService:
    """CRUD service over a dict that records every call.

    ``responses[operation]`` holds envelopes returned (once each) instead of
    the normal result, ``errors[operation]`` exceptions raised once, and
    ``holds[operation]`` events a call waits on before answering.
    """

    def __init__(self, customers: list[Customer] | None = None) -> None:
        self.store: dict[int, Customer] = {c.id: c for c in customers or [] if c.id is not None}
        self.next_id = max(self.store, default=0) + 1
        self.calls: list[tuple[str, Any]] = []
        self.responses: dict[str, list[ResultEnvelope[Any]]] = {}
        self.errors: dict[str, Exception] = {}
        self.holds: dict[str, asyncio.Event] = {}

    def calls_for(self, operation: str) -> list[Any]:
        return [arg for op, arg in self.calls if op == operation]

    async def _enter(self, operation: str, arg: Any) -> ResultEnvelope[Any] | None:
        self.calls.append((operation, arg))
        if operation in self.holds:
            await self.holds[operation].wait()
        if operation in self.errors:
            raise self.errors.pop(operation)
        queued = self.responses.get(operation)
        if queued:
            return queued.pop(0)
        return None

    async def get_all(self) -> ResultEnvelope[list[Customer]]:
        override = await self._enter("get_all", None)
        if override is not None:
            return override
        return ResultEnvelope.ok([c.model_copy() for c in self.store.values()])

    async def get_all_where(self, where: str | None) -> ResultEnvelope[list[Customer]]:
        override = await self._enter("get_all_where", where)
        if override is not None:
            return override
        matches = [c.model_copy() for c in self.store.values() if not where or where in c.name]
        return ResultEnvelope.ok(matches)

    async def create(self, model: Customer) -> ResultEnvelope[Customer]:
        override = await self._enter("create", model)
        if override is not None:
            return override
        created = model.model_copy(update={"id": self.next_id})
        self.store[self.next_id] = created
        self.next_id += 1
        return ResultEnvelope.ok(created.model_copy(), id=created.id)

    async def read(self, model: Customer) -> ResultEnvelope[Customer]:
        override = await self._enter("read", model)
        if override is not None:
            return override
        if model.id not in self.store:
            return ResultEnvelope.fail("Not found", status_code=404)
        return ResultEnvelope.ok(self.store[model.id].model_copy(), id=model.id)

    async def update(self, model: Customer) -> ResultEnvelope[Customer]:
        override = await self._enter("update", model)
        if override is not None:
            return override
        self.store[model.id] = model.model_copy()  # type: ignore[index]
        return ResultEnvelope.ok(model.model_copy(), id=model.id)

    async def delete(self, model: Customer) -> ResultEnvelope[bool]:
        override = await self._enter("delete", model)
        if override is not None:
            return override
        self.store.pop(model.id, None)  # type: ignore[arg-type]
        return ResultEnvelope.ok(True)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clear_recordkit_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer RECORDKIT_* variables out of the settings tests."""
    for key in (
        "RECORDKIT_LOG_LEVEL",
        "RECORDKIT_ENTITY_POLICIES_PATH",
        "RECORDKIT_HTTP_BASE_URL",
        "RECORDKIT_HTTP_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings() -> RecordkitSettings:
    """Test settings with safe defaults."""
    return RecordkitSettings(http_base_url="http://localhost:5000/api")


@pytest.fixture
def customers() -> list[Customer]:
    return [Customer(id=1, name="Alice"), Customer(id=2, name="Bob")]


@pytest.fixture
def service(customers: list[Customer]) -> FakeCrudService:
    return FakeCrudService(customers)


@pytest.fixture
def make_configuration(service: FakeCrudService) -> Callable[..., RecordsetConfiguration[Customer]]:
    """Factory for a fully wired configuration; keyword overrides pass through."""

    def _make(**kwargs: Any) -> RecordsetConfiguration[Customer]:
        options: dict[str, Any] = {"model_factory": Customer, "fields": describe_model(Customer)}
        options.update(kwargs)
        return RecordsetConfiguration.from_service(service, **options)

    return _make


@pytest.fixture
def make_recordset(
    make_configuration: Callable[..., RecordsetConfiguration[Customer]],
) -> Callable[..., Any]:
    """Factory returning a refreshed recordset."""

    async def _make(**kwargs: Any) -> Recordset[Customer]:
        recordset = Recordset(make_configuration(**kwargs))
        await recordset.refresh_data_async()
        return recordset

    return _make


# ---------------------------------------------------------------------------
# Hypothesis strategies (reusable across property tests)
# ---------------------------------------------------------------------------

customer_names = st.text(min_size=1, max_size=20, alphabet="abcdefghijklmnopqrstuvwxyz")

customer_lists = st.lists(customer_names, min_size=0, max_size=6).map(
    lambda names: [Customer(id=i + 1, name=name) for i, name in enumerate(names)]
)

field_keys = st.sampled_from(["name", "email", "active"])

# Outcome of a single backing call
call_outcomes = st.sampled_from(["ok", "fail", "invalid", "raise"])
