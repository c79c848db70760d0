"""Pydantic v2 schemas package."""

from comfy_bridge.schemas.history import (
    FileCategory,
    JobStatus,
    NodeOutput,
    OutputFileRef,
    PromptResult,
    PromptStatus,
    QueueResponse,
)
from comfy_bridge.schemas.job import (
    ArtifactError,
    ArtifactResult,
    ExecuteRequest,
    ExecuteResponse,
    ProcessedArtifact,
    WorkflowItem,
)

__all__ = [
    "FileCategory",
    "JobStatus",
    "NodeOutput",
    "OutputFileRef",
    "PromptResult",
    "PromptStatus",
    "QueueResponse",
    "ArtifactError",
    "ArtifactResult",
    "ExecuteRequest",
    "ExecuteResponse",
    "ProcessedArtifact",
    "WorkflowItem",
]
