"""Backing-service contract and the HTTP transport adapter."""

from recordkit.integration.http_service import HttpCrudService
from recordkit.integration.service import CrudService

__all__ = [
    "CrudService",
    "HttpCrudService",
]
