"""Event endpoint: receives object-created notifications and runs the pipeline."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Response

from inventory_sync.api.deps import get_pipeline
from inventory_sync.core.errors import InvalidInputFormatError
from inventory_sync.core.models import BatchResult, BatchStatus
from inventory_sync.core.pipeline import PipelineOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()

_STATUS_CODES = {
    BatchStatus.COMPLETED: 200,
    BatchStatus.PARTIAL_FAILURE: 207,
    BatchStatus.FAILED: 500,
}


@router.post("/events", response_model=BatchResult)
async def handle_event(
    response: Response,
    event: dict[str, Any] = Body(...),
    pipeline: PipelineOrchestrator = Depends(get_pipeline),
):
    """Process every file named in an event's Records, in order.

    Responds 200 when all files succeed, 207 when some fail and 500 when all fail.
    """
    try:
        result = pipeline.handle_event(event)
    except InvalidInputFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))

    response.status_code = _STATUS_CODES[result.status]
    return result
