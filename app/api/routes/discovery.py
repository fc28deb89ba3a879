"""API endpoint dispatching media discovery actions."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from app.services.errors import DiscoveryError
from app.services.media_discovery import MediaDiscoveryService

router = APIRouter()
logger = logging.getLogger(__name__)

_SERVICE_INSTANCE: MediaDiscoveryService | None = None


class DiscoveryRequest(BaseModel):
    """Request envelope shared by every action."""

    action: str = Field(description="scrape_outlet, verify_contacts, categorize_contacts or monitor_updates.")
    tenant_id: str = Field(min_length=1)
    outlet_url: str | None = None
    contact_ids: list[str] | None = None


def get_discovery_service() -> MediaDiscoveryService:
    """Singleton accessor used by API routes."""
    global _SERVICE_INSTANCE  # noqa: PLW0603
    if _SERVICE_INSTANCE is None:
        _SERVICE_INSTANCE = MediaDiscoveryService.from_settings()
    return _SERVICE_INSTANCE


@router.post("/media-discovery")
async def media_discovery(
    payload: DiscoveryRequest,
    service: MediaDiscoveryService = Depends(get_discovery_service),
) -> dict[str, Any]:
    """Run one discovery action for a tenant."""
    try:
        return await service.dispatch(payload.model_dump())
    except DiscoveryError as exc:
        logger.error(
            "media_discovery.api_error",
            extra={"action": payload.action, "tenant_id": payload.tenant_id, "code": exc.code},
        )
        raise HTTPException(status_code=_map_error_code(exc.code), detail=str(exc)) from exc


def _map_error_code(code: str) -> int:
    if code.startswith("400_"):
        return status.HTTP_400_BAD_REQUEST
    if code.startswith("404_"):
        return status.HTTP_404_NOT_FOUND
    if code.startswith("422_"):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if code == "429_RATE_LIMIT":
        return status.HTTP_429_TOO_MANY_REQUESTS
    if code == "502_OPENAI_UPSTREAM":
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR
