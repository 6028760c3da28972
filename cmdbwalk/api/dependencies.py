"""Shared FastAPI dependency injection."""

from __future__ import annotations

from cmdbwalk.config import Settings, get_settings
from cmdbwalk.servicenow.connection import ServiceNowClient
from cmdbwalk.services.traversal_service import TraversalService

_servicenow: ServiceNowClient | None = None
_settings: Settings | None = None


def set_servicenow(client: ServiceNowClient, settings: Settings) -> None:
    global _servicenow, _settings
    _servicenow = client
    _settings = settings


def get_servicenow() -> ServiceNowClient:
    if _servicenow is None:
        raise RuntimeError("ServiceNow client not initialized")
    return _servicenow


def get_traversal_service() -> TraversalService:
    settings = _settings or get_settings()
    return TraversalService(get_servicenow(), default_depth=settings.SN_REL_DEPTH)
