"""Thin async client for the ComfyUI REST API.

Endpoints consumed:
  GET  /system_stats          liveness probe
  POST /prompt                queue a workflow → prompt_id
  GET  /history/{prompt_id}   status + outputs
  GET  /view?filename=&subfolder=&type=   raw file bytes
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from comfy_bridge.config import get_settings
from comfy_bridge.schemas.history import OutputFileRef

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class ComfyCredentials:
    """Server address and optional bearer token."""

    api_url: str
    api_key: str = ""

    @classmethod
    def from_settings(cls) -> ComfyCredentials:
        return cls(api_url=settings.COMFY_API_URL, api_key=settings.COMFY_API_KEY)

    @property
    def base_url(self) -> str:
        return self.api_url.rstrip("/")

    def build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            logger.debug("Using API key authentication")
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers


class ComfyClient:
    """Request helpers bound to one server address and header set.

    An ``httpx.AsyncClient`` may be injected; otherwise one is created and
    closed with the ``ComfyClient``.
    """

    def __init__(
        self,
        server_address: str,
        headers: dict[str, str] | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.server_address = server_address.rstrip("/")
        self.headers = dict(headers or {})
        self._client = http_client or httpx.AsyncClient(timeout=settings.COMFY_HTTP_TIMEOUT)
        self._own_client = http_client is None

    async def __aenter__(self) -> ComfyClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._own_client:
            await self._client.aclose()

    async def check_connection(self) -> int:
        """Probe the server; any 2xx counts as alive. Returns the status code."""
        resp = await self._client.get(f"{self.server_address}/system_stats", headers=self.headers)
        resp.raise_for_status()
        return resp.status_code

    async def queue_prompt(self, workflow: dict[str, Any]) -> Any:
        resp = await self._client.post(
            f"{self.server_address}/prompt",
            json={"prompt": workflow},
            headers=self.headers,
        )
        resp.raise_for_status()
        return resp.json()

    async def get_history(self, prompt_id: str) -> Any:
        resp = await self._client.get(
            f"{self.server_address}/history/{prompt_id}", headers=self.headers,
        )
        resp.raise_for_status()
        return resp.json()

    def build_view_url(self, ref: OutputFileRef) -> str:
        query = urlencode({
            "filename": ref.filename,
            "subfolder": ref.subfolder or "",
            "type": ref.type or "",
        })
        return f"{self.server_address}/view?{query}"

    async def download(self, url: str) -> bytes:
        resp = await self._client.get(url, headers=self.headers)
        resp.raise_for_status()
        return resp.content
