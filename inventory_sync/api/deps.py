"""FastAPI dependencies that hand out the app's pipeline collaborators."""

from fastapi import HTTPException, Request

from inventory_sync.core.object_store import LocalObjectStore
from inventory_sync.core.pipeline import PipelineOrchestrator


def get_pipeline(request: Request) -> PipelineOrchestrator:
    """Return the orchestrator built at startup.

    Raises 503 if the app started without one.
    """
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialized")
    return pipeline


def get_object_store(request: Request) -> LocalObjectStore:
    store = getattr(request.app.state, "object_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Object store not initialized")
    return store
