"""
Health check and system status endpoints.
"""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from esmonitor.core.config import settings

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    version: str
    kibana_url: Optional[str] = None
    cluster_id: Optional[str] = None


@router.get("/healthz", response_model=HealthResponse)
async def health_check():
    """
    Basic health check endpoint.

    Returns the service status without calling Kibana.
    """
    return HealthResponse(
        status="healthy",
        version=settings.app.app_version,
        kibana_url=settings.kibana.base_url,
        cluster_id=settings.kibana.cluster_id or None,
    )


@router.get("/")
async def root():
    """
    Root endpoint with API information.
    """
    return {
        "name": settings.app.app_name,
        "version": settings.app.app_version,
        "environment": settings.app.app_env,
        "docs_url": "/docs" if settings.docs_enabled else None,
        "api_v1": "/api/v1",
        "monitor_api": "/api/monitor",
    }
