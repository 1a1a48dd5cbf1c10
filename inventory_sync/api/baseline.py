"""Baseline endpoint: inspect the currently stored comparison snapshot."""

from fastapi import APIRouter, Depends, HTTPException

from inventory_sync.api.deps import get_pipeline
from inventory_sync.core.errors import StorageError
from inventory_sync.core.models import BaselineResponse
from inventory_sync.core.pipeline import PipelineOrchestrator

router = APIRouter()


@router.get("/baseline", response_model=BaselineResponse)
async def get_baseline(pipeline: PipelineOrchestrator = Depends(get_pipeline)):
    """Return the stored baseline records (empty before the first run)."""
    try:
        records = pipeline.baseline_store.load()
    except StorageError as e:
        raise HTTPException(status_code=502, detail=f"Failed to load baseline: {e}")
    return BaselineResponse(record_count=len(records), records=records)
