from fastapi import APIRouter

from config.config import settings

router = APIRouter(prefix="/health", tags=["Health"])

SERVICE_NAME = "Submission Flow API"
SERVICE_VERSION = "1.0.0"


@router.get("/status",
    summary="Application health status",
    description="Basic health check endpoint"
)
def health_status():
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "record_store": "memory" if settings.uses_memory_store() else "supabase",
    }
