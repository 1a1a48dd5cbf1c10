"""Health check endpoint: verifies the backend and its storage services."""

from fastapi import APIRouter, Request

from inventory_sync.core import redis_client

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check backend status and connectivity to the object store and Redis."""
    store = getattr(request.app.state, "object_store", None)
    settings = getattr(request.app.state, "settings", None)

    storage_ok = store is not None and store.check_connection()
    services = {"object_store": "ok" if storage_ok else "error"}
    all_ok = storage_ok

    if settings is not None and redis_client.uses_redis(settings):
        redis_ok = redis_client.check_connection()
        services["redis"] = "ok" if redis_ok else "error"
        all_ok = all_ok and redis_ok

    return {
        "status": "ok" if all_ok else "degraded",
        "services": services,
    }
