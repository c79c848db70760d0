"""Structured errors raised by the ComfyUI job runner.

Every fatal error carries the HTTP status the host surface should answer with.
``PerFileFetchError`` never leaves the runner: it is folded into an
``ArtifactError`` record next to the successful artifacts.
"""

from __future__ import annotations


class ComfyError(Exception):
    """Base error for a failed ComfyUI job invocation."""

    status_code: int = 502

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class ConnectivityError(ComfyError):
    """The liveness probe against ``/system_stats`` failed."""

    status_code = 503


class SubmissionError(ComfyError):
    """The workflow could not be queued or no prompt_id came back."""


class ExecutionError(ComfyError):
    """The server reported that the workflow finished with an error."""


class JobTimeoutError(ComfyError, TimeoutError):
    """No terminal state was observed within the polling budget."""

    status_code = 504


class OutputError(ComfyError):
    """A completed job carries no ``outputs`` section."""


class MalformedResponseError(ComfyError):
    """A server payload does not have the expected structure."""


class PerFileFetchError(ComfyError):
    """Downloading or transcoding a single output file failed."""

    def __init__(self, message: str, file_url: str):
        super().__init__(message)
        self.file_url = file_url
