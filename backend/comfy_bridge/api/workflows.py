"""Workflow execution endpoint — runs input items against ComfyUI."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from comfy_bridge.schemas.job import ExecuteRequest, ExecuteResponse
from comfy_bridge.services.comfy_client import ComfyCredentials
from comfy_bridge.services.errors import ComfyError
from comfy_bridge.services.job_runner import run_items

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/execute", response_model=ExecuteResponse)
async def execute_workflows(body: ExecuteRequest):
    """Run every item sequentially and return the flattened output items."""
    try:
        items = await run_items(body.items, ComfyCredentials.from_settings())
    except ComfyError as e:
        logger.error("Execution error: %s", e)
        raise HTTPException(status_code=e.status_code, detail=f"ComfyUI API Error: {e}")
    return ExecuteResponse(items=items)
