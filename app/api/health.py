"""Health check route."""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.config import Settings
from app.core.storage import StorageInterface
from app.dependencies import get_app_settings, get_storage

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(
    storage: StorageInterface = Depends(get_storage),
    settings: Settings = Depends(get_app_settings)
):
    """Health check endpoint."""
    storage_ok = await storage.ping()
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": settings.service_name,
        "storage": "ok" if storage_ok else "unavailable",
    }
