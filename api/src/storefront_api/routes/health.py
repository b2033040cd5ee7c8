"""Health check endpoints."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from storefront import __version__

router = APIRouter(tags=["health"])

SERVICE_NAME = "storefront-api"


@router.get("/ping")
async def ping() -> dict[str, Any]:
    """Liveness check matching the gateway path pattern /api/*."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": SERVICE_NAME,
        "version": __version__,
    }
