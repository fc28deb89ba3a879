from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.api.routes.discovery import get_discovery_service
from app.config import settings
from app.services.media_discovery import MediaDiscoveryService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/ready")
async def readiness_check(service: MediaDiscoveryService = Depends(get_discovery_service)):
    """Readiness check endpoint that includes contact store connectivity."""
    if not await service.repository.ping():
        raise HTTPException(status_code=503, detail="Database is not available")

    return {
        "status": "ready",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if settings.database_url else "not configured",
    }
