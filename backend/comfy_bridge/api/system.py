"""System status endpoint — checks the ComfyUI server."""

from __future__ import annotations

import time
from typing import Any

import httpx
from fastapi import APIRouter

from comfy_bridge.services.comfy_client import ComfyClient, ComfyCredentials

router = APIRouter()


@router.get("/comfy")
async def check_comfy() -> dict[str, Any]:
    """Probe ``/system_stats`` on the configured ComfyUI server."""
    credentials = ComfyCredentials.from_settings()
    t0 = time.time()
    try:
        async with ComfyClient(credentials.base_url, credentials.build_headers()) as client:
            await client.check_connection()
        return {
            "status": "ok",
            "latency_ms": round((time.time() - t0) * 1000, 1),
            "url": credentials.base_url,
        }
    except httpx.HTTPError as e:
        return {
            "status": "error",
            "error": str(e),
            "url": credentials.base_url,
        }
