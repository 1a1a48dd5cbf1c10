"""Upload endpoint: store a workbook under incoming/ and process it immediately."""

import logging
from pathlib import PurePosixPath

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from inventory_sync.api.deps import get_object_store, get_pipeline
from inventory_sync.core.errors import StorageError
from inventory_sync.core.id_gen import UPLOAD_ID_PREFIX, generate_id
from inventory_sync.core.models import FileResult, RunStatus
from inventory_sync.core.object_store import LocalObjectStore
from inventory_sync.core.pipeline import PipelineOrchestrator
from inventory_sync.core.workbook_reader import is_valid_file

logger = logging.getLogger(__name__)

router = APIRouter()

INCOMING_PREFIX = "incoming/"


@router.post("/imports", response_model=FileResult)
async def create_import(
    file: UploadFile = File(...),
    pipeline: PipelineOrchestrator = Depends(get_pipeline),
    store: LocalObjectStore = Depends(get_object_store),
):
    """Upload an inventory workbook (.xlsx) and run the sync for it.

    - **file**: spreadsheet export; only the first sheet is read
    """
    filename = PurePosixPath(file.filename or "").name
    if not filename or not is_valid_file(filename):
        raise HTTPException(status_code=400, detail="Only Excel files (.xlsx, .xls) are supported")

    request_id = generate_id(UPLOAD_ID_PREFIX)
    key = f"{INCOMING_PREFIX}{filename}"
    content = await file.read()
    try:
        store.put(
            pipeline.config.bucket, key, content,
            content_type=file.content_type or "application/octet-stream",
            metadata={"request-id": request_id},
        )
    except StorageError as e:
        logger.error(f"[{request_id}] Failed to store upload {key}: {e}")
        raise HTTPException(status_code=502, detail=f"Failed to store upload: {e}")

    result = pipeline.run_file(pipeline.config.bucket, key, request_id)
    if result.status == RunStatus.FAILED:
        raise HTTPException(status_code=422, detail=result.model_dump(mode="json", by_alias=True))
    return result
