"""Pydantic v2 schemas for job input items and the artifacts they produce."""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, Field

from comfy_bridge.schemas.history import FileCategory, OutputFileRef


class WorkflowItem(BaseModel):
    """One input item: a workflow document and its polling budget."""

    workflow: str | dict[str, Any]
    timeout_minutes: int | None = Field(default=None, ge=1)


class ExecuteRequest(BaseModel):
    items: list[WorkflowItem]


class ExecuteResponse(BaseModel):
    items: list[dict[str, Any]]


class ProcessedArtifact(BaseModel):
    """A fetched and transcoded output file."""

    ref: OutputFileRef
    file_url: str
    data: str  # base64
    byte_size: int
    file_size: str
    category: FileCategory
    file_extension: str
    mime_type: str

    def to_item(self) -> dict[str, Any]:
        json_part: dict[str, Any] = {
            "filename": self.ref.filename,
            "type": self.ref.type,
            "subfolder": self.ref.subfolder or "",
            "fileUrl": self.file_url,
        }
        if self.ref.fullpath is not None:
            json_part["filePath"] = self.ref.fullpath
        json_part["data"] = self.data
        return {
            "json": json_part,
            "binary": {
                "data": {
                    "fileName": self.ref.filename,
                    "data": self.data,
                    "fileType": self.category.value,
                    "fileExtension": self.file_extension,
                    "mimeType": self.mime_type,
                    "fileSize": self.file_size,
                },
            },
        }


class ArtifactError(BaseModel):
    """Stand-in for an output file that could not be fetched or transcoded."""

    ref: OutputFileRef
    file_url: str
    error: str

    def to_item(self) -> dict[str, Any]:
        return {
            "json": {
                "filename": self.ref.filename,
                "type": self.ref.type,
                "subfolder": self.ref.subfolder or "",
                "error": self.error,
                "fileUrl": self.file_url,
            },
        }


ArtifactResult = Union[ProcessedArtifact, ArtifactError]
