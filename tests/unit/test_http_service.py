"""Unit tests for the httpx-backed CRUD service adapter."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from conftest import Customer
from recordkit.config.recordset_config import RecordsetConfiguration
from recordkit.integration.http_service import HttpCrudService
from recordkit.services.recordset import Recordset

BASE_URL = "http://localhost:5000/api/"


class CustomerHttpService(HttpCrudService[Customer]):
    model_type = Customer
    resource_path = "customers"

    def get_id(self, model: Customer) -> int | None:
        return model.id


def _service(
    handler: Callable[[httpx.Request], httpx.Response], **kwargs
) -> CustomerHttpService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CustomerHttpService(BASE_URL, client=client, **kwargs)


# ---------------------------------------------------------------------------
# Successful calls
# ---------------------------------------------------------------------------


class TestSuccessfulCalls:
    @pytest.mark.asyncio
    async def test_get_all(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}])

        result = await _service(handler).get_all()

        assert result.is_success is True
        assert [c.name for c in result.content] == ["Alice", "Bob"]
        assert seen[0].method == "GET"
        assert seen[0].url.path == "/api/customers"
        assert "where" not in seen[0].url.params

    @pytest.mark.asyncio
    async def test_get_all_where_passes_filter(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"id": 2, "name": "Bob"}])

        result = await _service(handler).get_all_where("name eq 'Bob'")

        assert len(result.content) == 1
        assert seen[0].url.params["where"] == "name eq 'Bob'"

    @pytest.mark.asyncio
    async def test_read_uses_item_url(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": 1, "name": "Alice"})

        result = await _service(handler).read(Customer(id=1))

        assert seen[0].url.path == "/api/customers/1"
        assert result.content == Customer(id=1, name="Alice")
        assert result.id == 1

    @pytest.mark.asyncio
    async def test_create_posts_json_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            body = json.loads(request.content)
            return httpx.Response(201, json={**body, "id": 3})

        result = await _service(handler).create(Customer(name="Carol"))

        assert seen[0].method == "POST"
        assert seen[0].url.path == "/api/customers"
        assert json.loads(seen[0].content) == {"id": None, "name": "Carol", "email": None, "active": True}
        assert result.content.id == 3
        assert result.id == 3
        assert result.status_code == 201

    @pytest.mark.asyncio
    async def test_update_puts_to_item_url(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=json.loads(request.content))

        result = await _service(handler).update(Customer(id=2, name="Robert"))

        assert seen[0].method == "PUT"
        assert seen[0].url.path == "/api/customers/2"
        assert result.content.name == "Robert"

    @pytest.mark.asyncio
    async def test_delete_without_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "DELETE"
            return httpx.Response(204)

        result = await _service(handler).delete(Customer(id=2))

        assert result.is_success is True
        assert result.content is True
        assert result.status_code == 204

    @pytest.mark.asyncio
    async def test_sends_configured_headers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        await _service(handler, headers={"Authorization": "Bearer abc"}).get_all()

        assert seen[0].headers["authorization"] == "Bearer abc"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    @pytest.mark.asyncio
    async def test_validation_errors_from_error_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"errors": {"Name": ["required"]}})

        result = await _service(handler).create(Customer())

        assert result.is_success is False
        assert result.status_code == 400
        assert result.error_message == "An error occurred while posting data to the server: Bad Request"
        assert result.validation_errors == {"Name": ["required"]}

    @pytest.mark.asyncio
    async def test_flat_validation_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"email": ["invalid address"]})

        result = await _service(handler).update(Customer(id=1))

        assert result.validation_errors == {"email": ["invalid address"]}
        assert result.error_message.startswith("An error occurred while writing data to the server")

    @pytest.mark.asyncio
    async def test_plain_error_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="kaboom")

        result = await _service(handler).get_all()

        assert result.is_success is False
        assert result.validation_errors is None
        assert result.error_message == (
            "An error occurred while requesting data from the server: Internal Server Error"
        )

    @pytest.mark.asyncio
    async def test_server_error_body_is_not_validation(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"errors": {"Name": ["required"]}})

        result = await _service(handler).update(Customer(id=1))

        assert result.is_success is False
        assert result.status_code == 503
        assert result.validation_errors is None

    @pytest.mark.asyncio
    async def test_delete_failure_message(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        result = await _service(handler).delete(Customer(id=9))

        assert result.error_message == "An error occurred while deleting data at the server: Not Found"

    @pytest.mark.asyncio
    async def test_transport_error_becomes_envelope(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = await _service(handler).get_all()

        assert result.is_success is False
        assert result.error_message == "Unhandled exception: connection refused"

    @pytest.mark.asyncio
    async def test_malformed_body_becomes_envelope(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>not json</html>")

        result = await _service(handler).get_all()

        assert result.is_success is False
        assert result.error_message.startswith("Unhandled exception:")
        assert result.status_code == 200


# ---------------------------------------------------------------------------
# As a recordset backend
# ---------------------------------------------------------------------------


class TestWithRecordset:
    @pytest.mark.asyncio
    async def test_refresh_and_save(self) -> None:
        store = {1: {"id": 1, "name": "Alice", "email": None, "active": True}}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET" and request.url.path == "/api/customers":
                return httpx.Response(200, json=list(store.values()))
            if request.method == "PUT":
                body = json.loads(request.content)
                store[body["id"]] = body
                return httpx.Response(200, json=body)
            return httpx.Response(405)

        config = RecordsetConfiguration.from_service(_service(handler), model_factory=Customer)
        rs = Recordset(config)
        await rs.refresh_data_async()

        record = rs.current_record
        record.model.name = "Alicia"
        record.on_field_changed("name")
        await record.save_changes_async()

        assert record.is_saved is True
        assert store[1]["name"] == "Alicia"
