"""HTTP transport adapter producing result envelopes.

Maps a REST resource onto the :class:`~recordkit.integration.service.CrudService`
contract using httpx:

    GET    {base}/{resource}            -> get_all / get_all_where (?where=...)
    GET    {base}/{resource}/{id}       -> read
    POST   {base}/{resource}            -> create
    PUT    {base}/{resource}/{id}       -> update
    DELETE {base}/{resource}/{id}       -> delete

Non-2xx responses become failed envelopes. For 4xx responses a JSON object
body of the shape ``{"field": ["message", ...]}`` (optionally nested under
``"errors"``) is surfaced as ``validation_errors``. Transport exceptions
never escape: they become failed envelopes with an "Unhandled exception"
message.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter

from recordkit.errors import ConfigurationError
from recordkit.models.envelope import ResultEnvelope

if TYPE_CHECKING:
    from recordkit.config.settings import RecordkitSettings

logger = logging.getLogger(__name__)

TModel = TypeVar("TModel", bound=BaseModel)


class HttpCrudService(ABC, Generic[TModel]):
    """Base class for REST-backed CRUD services.

    Subclasses MUST set ``model_type`` and ``resource_path`` as class
    attributes and implement :meth:`get_id`.

    Parameters
    ----------
    base_url:
        API root, e.g. "https://api.example.com/api".
    timeout_seconds:
        Per-request timeout (default 10).
    headers:
        Extra headers sent with every request (auth, tenant, ...).
    client:
        Optional shared ``httpx.AsyncClient``. When omitted a short-lived
        client is opened per request.
    """

    model_type: type[TModel]
    resource_path: str

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._headers = headers or {}
        self._client = client

    @classmethod
    def from_settings(cls, settings: RecordkitSettings, **kwargs: Any) -> HttpCrudService[TModel]:
        """Build a service for ``settings.http_base_url``.

        Raises
        ------
        ConfigurationError
            If no base URL is configured.
        """
        if not settings.http_base_url:
            raise ConfigurationError(
                "RECORDKIT_HTTP_BASE_URL must be set to use an HTTP service",
                setting="http_base_url",
            )
        kwargs.setdefault("timeout_seconds", settings.http_timeout_seconds)
        return cls(settings.http_base_url, **kwargs)

    @abstractmethod
    def get_id(self, model: TModel) -> int | None:
        """Return the identifier used in item URLs."""
        ...

    # ------------------------------------------------------------------
    # CrudService contract
    # ------------------------------------------------------------------

    async def get_all(self) -> ResultEnvelope[list[TModel]]:
        return await self.http_get(self._collection_url(), TypeAdapter(list[self.model_type]))

    async def get_all_where(self, where: str | None) -> ResultEnvelope[list[TModel]]:
        params = {"where": where} if where else None
        return await self.http_get(
            self._collection_url(), TypeAdapter(list[self.model_type]), params=params
        )

    async def create(self, model: TModel) -> ResultEnvelope[TModel]:
        return await self.http_post(self._collection_url(), model)

    async def read(self, model: TModel) -> ResultEnvelope[TModel]:
        return await self.http_get(self._item_url(model), TypeAdapter(self.model_type))

    async def update(self, model: TModel) -> ResultEnvelope[TModel]:
        return await self.http_put(self._item_url(model), model)

    async def delete(self, model: TModel) -> ResultEnvelope[bool]:
        return await self.http_delete(self._item_url(model))

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    async def http_get(
        self,
        url: str,
        adapter: TypeAdapter[Any],
        params: dict[str, str] | None = None,
    ) -> ResultEnvelope[Any]:
        return await self._exchange(
            "GET", url, "requesting data from", adapter=adapter, params=params
        )

    async def http_post(self, url: str, model: TModel) -> ResultEnvelope[TModel]:
        return await self._exchange(
            "POST",
            url,
            "posting data to",
            adapter=TypeAdapter(self.model_type),
            body=model.model_dump(mode="json"),
        )

    async def http_put(self, url: str, model: TModel) -> ResultEnvelope[TModel]:
        return await self._exchange(
            "PUT",
            url,
            "writing data to",
            adapter=TypeAdapter(self.model_type),
            body=model.model_dump(mode="json"),
        )

    async def http_delete(self, url: str) -> ResultEnvelope[bool]:
        return await self._exchange("DELETE", url, "deleting data at", adapter=None)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _collection_url(self) -> str:
        return f"{self._base_url}/{self.resource_path}"

    def _item_url(self, model: TModel) -> str:
        return f"{self._collection_url()}/{self.get_id(model)}"

    async def _send(
        self,
        method: str,
        url: str,
        body: Any = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(
                method, url, json=body, params=params,
                headers=self._headers, timeout=self._timeout_seconds,
            )
        async with httpx.AsyncClient() as client:
            return await client.request(
                method, url, json=body, params=params,
                headers=self._headers, timeout=self._timeout_seconds,
            )

    async def _exchange(
        self,
        method: str,
        url: str,
        verb: str,
        *,
        adapter: TypeAdapter[Any] | None,
        body: Any = None,
        params: dict[str, str] | None = None,
    ) -> ResultEnvelope[Any]:
        try:
            response = await self._send(method, url, body=body, params=params)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc, extra={"error_reason": str(exc)})
            return ResultEnvelope.fail(f"Unhandled exception: {exc}")

        if not response.is_success:
            logger.warning(
                "%s %s returned status %d", method, url, response.status_code,
                extra={"error_reason": response.reason_phrase},
            )
            return ResultEnvelope.fail(
                f"An error occurred while {verb} the server: {response.reason_phrase}",
                validation_errors=(
                    self._parse_validation_errors(response) if response.is_client_error else None
                ),
                status_code=response.status_code,
            )

        if adapter is None:
            return ResultEnvelope.ok(True, status_code=response.status_code)

        try:
            content = adapter.validate_python(response.json())
        except ValueError as exc:
            # pydantic.ValidationError and json.JSONDecodeError are both ValueErrors
            return ResultEnvelope.fail(
                f"Unhandled exception: {exc}", status_code=response.status_code
            )

        record_id = self.get_id(content) if isinstance(content, self.model_type) else None
        return ResultEnvelope.ok(content, id=record_id, status_code=response.status_code)

    @staticmethod
    def _parse_validation_errors(response: httpx.Response) -> dict[str, list[str]] | None:
        try:
            payload = response.json()
        except ValueError:
            return None
        if isinstance(payload, dict) and isinstance(payload.get("errors"), dict):
            payload = payload["errors"]
        if not isinstance(payload, dict) or not payload:
            return None
        errors: dict[str, list[str]] = {}
        for key, messages in payload.items():
            if not isinstance(messages, list):
                return None
            errors[str(key)] = [str(message) for message in messages]
        return errors
