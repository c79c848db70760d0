"""ComfyUI job runner — probe → queue → poll history → fetch + transcode outputs.

One call to :func:`run_job` drives a single workflow to completion:

1. ``GET /system_stats`` must succeed, otherwise ``ConnectivityError``.
2. ``POST /prompt`` must return a ``prompt_id``, otherwise ``SubmissionError``.
3. After a grace period, ``GET /history/{prompt_id}`` once per poll interval,
   at most ``60 × timeout_minutes`` times. Missing entries or statuses mean
   "still running".
4. Output files (``images`` then ``gifs`` per node, ``output``/``temp`` only)
   are downloaded concurrently; one failing file becomes an ``ArtifactError``
   without affecting its siblings.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable

import httpx
from pydantic import ValidationError

from comfy_bridge.config import get_settings
from comfy_bridge.schemas.history import JobStatus, OutputFileRef, PromptResult, QueueResponse
from comfy_bridge.schemas.job import ArtifactError, ArtifactResult, ProcessedArtifact, WorkflowItem
from comfy_bridge.services.comfy_client import ComfyClient, ComfyCredentials
from comfy_bridge.services.errors import (
    ComfyError,
    ConnectivityError,
    ExecutionError,
    JobTimeoutError,
    MalformedResponseError,
    OutputError,
    PerFileFetchError,
    SubmissionError,
)
from comfy_bridge.services.media import DECODE_ERRORS, encode_media

logger = logging.getLogger(__name__)
settings = get_settings()

ATTEMPTS_PER_MINUTE = 60


def parse_workflow(submission: str | dict[str, Any]) -> dict[str, Any]:
    """Accept a workflow document as a dict or a JSON string."""
    if isinstance(submission, str):
        try:
            submission = json.loads(submission)
        except ValueError as e:
            raise SubmissionError(f"Workflow is not valid JSON: {e}") from e
    if not isinstance(submission, dict):
        raise SubmissionError("Workflow JSON must be an object")
    return submission


def max_attempts_for(timeout_minutes: int) -> int:
    return ATTEMPTS_PER_MINUTE * timeout_minutes


def parse_history_entry(history: Any, prompt_id: str) -> PromptResult | None:
    """Pick the entry for ``prompt_id`` out of a history response.

    Returns None while the server has not recorded the prompt yet.
    """
    if not isinstance(history, dict):
        raise MalformedResponseError(
            f"History response is not an object: {type(history).__name__}"
        )
    entry = history.get(prompt_id)
    if entry is None:
        return None
    try:
        return PromptResult.model_validate(entry)
    except ValidationError as e:
        raise MalformedResponseError(f"Malformed history entry for {prompt_id}: {e}") from e


async def run_job(
    server_address: str,
    auth_headers: dict[str, str],
    submission: str | dict[str, Any],
    timeout_minutes: int | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    poll_interval: float | None = None,
    grace_period: float | None = None,
) -> list[ArtifactResult]:
    """Run one workflow on a ComfyUI server and collect its output files.

    Args:
        server_address: Base URL of the ComfyUI server.
        auth_headers: Headers sent with every request.
        submission: Workflow document (dict or JSON string).
        timeout_minutes: Polling budget; defaults to COMFY_TIMEOUT_MINUTES.
        http_client: Optional shared httpx client.
        poll_interval: Seconds between history queries.
        grace_period: Seconds to wait before the first history query.

    Returns:
        One ``ProcessedArtifact`` or ``ArtifactError`` per kept output file.

    Raises:
        ComfyError: One of its subclasses for every fatal failure.
    """
    if timeout_minutes is None:
        timeout_minutes = settings.COMFY_TIMEOUT_MINUTES
    if poll_interval is None:
        poll_interval = settings.COMFY_POLL_INTERVAL
    if grace_period is None:
        grace_period = settings.COMFY_POLL_GRACE_PERIOD

    async with ComfyClient(server_address, auth_headers, http_client=http_client) as client:
        await _check_connection(client)
        workflow = parse_workflow(submission)
        prompt_id = await _queue_prompt(client, workflow)

        result = await _poll_until_complete(
            client, prompt_id, max_attempts_for(timeout_minutes),
            poll_interval=poll_interval, grace_period=grace_period,
        )

        if result.outputs is None:
            raise OutputError("No outputs found in workflow result")

        files = result.output_files()
        logger.info("Prompt %s produced %d file(s) to fetch", prompt_id, len(files))
        artifacts = await fetch_artifacts(client, files)

    failed = sum(isinstance(a, ArtifactError) for a in artifacts)
    if failed:
        logger.warning("Prompt %s: %d/%d file(s) failed to download", prompt_id, failed, len(artifacts))
    else:
        logger.info("Prompt %s: all files downloaded", prompt_id)
    return artifacts


async def _check_connection(client: ComfyClient) -> None:
    logger.info("Checking API connection to %s...", client.server_address)
    try:
        await client.check_connection()
    except httpx.HTTPError as e:
        raise ConnectivityError(f"Cannot reach ComfyUI at {client.server_address}: {e}") from e


async def _queue_prompt(client: ComfyClient, workflow: dict[str, Any]) -> str:
    logger.info("Queueing prompt...")
    try:
        body = await client.queue_prompt(workflow)
    except httpx.HTTPError as e:
        raise SubmissionError(f"Failed to queue prompt: {e}") from e
    except ValueError as e:
        raise SubmissionError(f"Queue response is not JSON: {e}") from e

    try:
        queued = QueueResponse.model_validate(body)
    except ValidationError:
        queued = None
    if queued is None or not queued.prompt_id:
        raise SubmissionError("Failed to get prompt ID from ComfyUI")

    if queued.node_errors:
        logger.warning("Prompt %s queued with node errors: %s", queued.prompt_id, queued.node_errors)
    logger.info("Prompt queued with ID: %s", queued.prompt_id)
    return queued.prompt_id


async def _poll_until_complete(
    client: ComfyClient,
    prompt_id: str,
    max_attempts: int,
    *,
    poll_interval: float,
    grace_period: float,
) -> PromptResult:
    """Poll history at a fixed interval until the prompt reaches a terminal state."""
    await asyncio.sleep(grace_period)

    attempts = 0
    while attempts < max_attempts:
        await asyncio.sleep(poll_interval)
        attempts += 1
        logger.debug("Checking execution status of %s (attempt %d/%d)", prompt_id, attempts, max_attempts)

        try:
            history = await client.get_history(prompt_id)
        except httpx.HTTPError as e:
            raise ComfyError(f"History query failed for {prompt_id}: {e}") from e
        except ValueError as e:
            raise MalformedResponseError(f"History response is not JSON: {e}") from e

        result = parse_history_entry(history, prompt_id)
        if result is None:
            logger.debug("Prompt %s not found in history", prompt_id)
            continue

        status = result.job_status
        if status is JobStatus.PENDING:
            continue
        if status is JobStatus.ERROR:
            logger.error("Prompt %s finished with an error (attempt %d)", prompt_id, attempts)
            raise ExecutionError("Workflow execution failed")

        logger.info("Prompt %s completed after %d attempt(s)", prompt_id, attempts)
        return result

    raise JobTimeoutError(f"Execution timeout after {attempts} attempts")


async def fetch_artifacts(
    client: ComfyClient, files: Iterable[OutputFileRef],
) -> list[ArtifactResult]:
    """Download and encode all files concurrently; results keep input order."""
    return list(await asyncio.gather(*(_fetch_artifact(client, ref) for ref in files)))


async def _fetch_artifact(client: ComfyClient, ref: OutputFileRef) -> ArtifactResult:
    file_url = client.build_view_url(ref)
    logger.info("Downloading %s file: %s", ref.type, ref.filename)
    try:
        return await _download_and_encode(client, ref, file_url)
    except PerFileFetchError as e:
        logger.warning("Failed to download file %s: %s", ref.filename, e)
        return ArtifactError(ref=ref, file_url=e.file_url, error=str(e))


async def _download_and_encode(
    client: ComfyClient, ref: OutputFileRef, file_url: str,
) -> ProcessedArtifact:
    try:
        data = await client.download(file_url)
        media = await encode_media(ref.filename, data, ref.category)
    except (httpx.HTTPError, *DECODE_ERRORS) as e:
        raise PerFileFetchError(str(e) or type(e).__name__, file_url=file_url) from e

    return ProcessedArtifact(
        ref=ref,
        file_url=file_url,
        data=media.base64,
        byte_size=len(media.data),
        file_size=media.file_size,
        category=media.category,
        file_extension=media.extension,
        mime_type=media.mime_type,
    )


async def run_items(
    items: Iterable[WorkflowItem],
    credentials: ComfyCredentials | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    **poll_options: Any,
) -> list[dict[str, Any]]:
    """Run each input item's job in turn and flatten the output items."""
    credentials = credentials or ComfyCredentials.from_settings()
    headers = credentials.build_headers()
    logger.info("Executing with API URL: %s", credentials.base_url)

    output_items: list[dict[str, Any]] = []
    for index, item in enumerate(items):
        logger.info("Running workflow item %d", index)
        artifacts = await run_job(
            credentials.base_url,
            headers,
            item.workflow,
            item.timeout_minutes,
            http_client=http_client,
            **poll_options,
        )
        output_items.extend(artifact.to_item() for artifact in artifacts)
    return output_items
