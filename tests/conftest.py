"""Pytest configuration helpers.

This conftest ensures the ``backend`` directory is on `sys.path` so tests can
import the `comfy_bridge` package regardless of how pytest is invoked, and
provides an in-process fake ComfyUI server built on ``httpx.MockTransport``.
"""
import io
import json
import os
import sys
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from PIL import Image


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "backend"))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


SERVER = "http://comfy.test"


def make_image_bytes(fmt="PNG", mode="RGB", size=(4, 4)):
    buf = io.BytesIO()
    Image.new(mode, size, color=0).save(buf, format=fmt)
    return buf.getvalue()


class FakeComfyServer:
    """Scripted ComfyUI server.

    ``history`` is a list of history bodies returned one per poll; the last
    one repeats once the list is exhausted.
    """

    def __init__(self, prompt_id="abc"):
        self.prompt_id = prompt_id
        self.queue_body = {"prompt_id": prompt_id, "number": 1, "node_errors": {}}
        self.history = [{}]
        self.files = {}
        self.stats_status = 200
        self.history_calls = 0
        self.view_requests = []
        self.queued = []
        self.requests = []

    def reply_history(self, *bodies):
        self.history = list(bodies)

    def entry(self, completed=True, status_str="success", outputs=None):
        result = {"status": {"completed": completed, "status_str": status_str}}
        if outputs is not None:
            result["outputs"] = outputs
        return {self.prompt_id: result}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = urlsplit(str(request.url))

        if url.path == "/system_stats":
            return httpx.Response(self.stats_status, json={"system": {}})

        if url.path == "/prompt" and request.method == "POST":
            self.queued.append(json.loads(request.content))
            return httpx.Response(200, json=self.queue_body)

        if url.path.startswith("/history/"):
            idx = min(self.history_calls, len(self.history) - 1)
            self.history_calls += 1
            return httpx.Response(200, json=self.history[idx])

        if url.path == "/view":
            query = {k: v[0] for k, v in parse_qs(url.query, keep_blank_values=True).items()}
            self.view_requests.append(query)
            content = self.files.get(query.get("filename"))
            if content is None:
                return httpx.Response(404, text="not found")
            return httpx.Response(200, content=content)

        return httpx.Response(404)

    def client(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def comfy_server():
    return FakeComfyServer()


@pytest.fixture
def png_bytes():
    return make_image_bytes("PNG")


@pytest.fixture
def make_image():
    return make_image_bytes
