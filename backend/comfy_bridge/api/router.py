"""Master API router — mounts all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from comfy_bridge.api.system import router as system_router
from comfy_bridge.api.workflows import router as workflows_router

api_router = APIRouter(prefix="/api", redirect_slashes=False)

api_router.include_router(workflows_router, prefix="/workflows", tags=["Workflows"])
api_router.include_router(system_router, prefix="/system", tags=["System"])
