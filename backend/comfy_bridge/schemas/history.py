"""Pydantic v2 schemas for the ComfyUI REST payloads."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel

VIDEO_EXTENSIONS = (".mp4", ".webm")
FETCHABLE_TYPES = ("output", "temp")


class FileCategory(str, enum.Enum):
    """Format category inferred from the filename suffix."""

    IMAGE = "image"
    VIDEO = "video"


class JobStatus(str, enum.Enum):
    """Projection of a history entry onto the job lifecycle."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class QueueResponse(BaseModel):
    """Body returned by ``POST /prompt``."""

    prompt_id: str | None = None
    node_errors: dict[str, Any] | None = None

    model_config = {"extra": "ignore"}


class OutputFileRef(BaseModel):
    """One file produced by a workflow node."""

    filename: str
    subfolder: str | None = None
    type: str | None = None
    fullpath: str | None = None

    model_config = {"extra": "ignore"}

    @property
    def category(self) -> FileCategory:
        if self.filename.endswith(VIDEO_EXTENSIONS):
            return FileCategory.VIDEO
        return FileCategory.IMAGE

    @property
    def is_fetchable(self) -> bool:
        return self.type in FETCHABLE_TYPES


class NodeOutput(BaseModel):
    """Outputs of a single node; only ``images`` and ``gifs`` carry files."""

    images: list[OutputFileRef] | None = None
    gifs: list[OutputFileRef] | None = None

    model_config = {"extra": "ignore"}

    def files(self) -> list[OutputFileRef]:
        return [*(self.images or []), *(self.gifs or [])]


class PromptStatus(BaseModel):
    completed: bool | None = None
    status_str: str | None = None

    model_config = {"extra": "ignore"}


class PromptResult(BaseModel):
    """History entry for one prompt_id.

    ``status`` and ``outputs`` stay optional: the server writes the entry
    before execution has produced either.
    """

    status: PromptStatus | None = None
    outputs: dict[str, NodeOutput | None] | None = None

    model_config = {"extra": "ignore"}

    @property
    def job_status(self) -> JobStatus:
        if self.status is None or not self.status.completed:
            return JobStatus.PENDING
        if self.status.status_str == "error":
            return JobStatus.ERROR
        return JobStatus.SUCCESS

    def output_files(self) -> list[OutputFileRef]:
        """Flatten node outputs in response order, keeping output/temp files."""
        files: list[OutputFileRef] = []
        for node_output in (self.outputs or {}).values():
            if node_output is not None:
                files.extend(node_output.files())
        return [f for f in files if f.is_fetchable]
