"""
Video Job Poller

Submits video jobs to the fal queue and turns raw status payloads into
GenerationResult objects. Polling is caller-driven: ``poll_status`` makes one
status check per call and never raises for queued or running jobs.

A completed job is only reported as completed when an artifact URL was
found. URL extraction is tried in order:
    1. the status payload itself
    2. the job's response_url (from the payload or the queue request
       handle), fetched with the fal credentials
    3. one explicit result() call
and reports artifact_extraction_failed when all three come up empty.
"""

import logging
from typing import Any, Dict, List, Optional

from ..models import (
    ErrorKind,
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
    JobHandle,
)
from ..providers.fal_provider import DEFAULT_VIDEO_MODEL, FalProvider
from ..providers.response_shapes import find_video_url, parse_video_response
from .generation_errors import raise_classified

logger = logging.getLogger(__name__)

COMPLETED_STATUSES = {"COMPLETED", "SUCCEEDED", "SUCCESS"}
FAILED_STATUSES = {"FAILED", "ERROR"}
QUEUED_STATUSES = {"IN_QUEUE", "QUEUED", "PENDING"}


def _log_messages(logs: Any) -> List[str]:
    messages = []
    for log in logs or []:
        if isinstance(log, dict):
            messages.append(str(log.get("message", "")))
        else:
            messages.append(str(log))
    return messages


def is_completed(payload: Dict[str, Any]) -> bool:
    """COMPLETED status, or a log line reading "Completed"."""
    if str(payload.get("status", "")).upper() in COMPLETED_STATUSES:
        return True
    return any(message.strip() == "Completed" for message in _log_messages(payload.get("logs")))


def _error_message(payload: Dict[str, Any]) -> Optional[str]:
    error = payload.get("error")
    if not error:
        return None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


class VideoJobPoller:
    """Submission and status polling for queue-based video models."""

    def __init__(
        self,
        fal: FalProvider,
        webhook_url: Optional[str] = None,
        default_model: str = DEFAULT_VIDEO_MODEL,
    ):
        self.fal = fal
        self.webhook_url = webhook_url
        self.default_model = default_model

    async def submit(self, request: GenerationRequest) -> JobHandle:
        """Enqueue a video job. Never waits for the render."""
        model_id = request.model_hint or self.default_model
        payload = self.fal.build_video_request(request, model_id)

        try:
            request_id = await self.fal.submit_video(model_id, payload, webhook_url=self.webhook_url)
        except Exception as e:
            logger.error(f"[JobPoller] Submission to {model_id} failed: {e}")
            raise_classified(e, f"{model_id}: {e}")

        return JobHandle(job_id=request_id, provider_model_id=model_id)

    async def poll_status(self, handle: JobHandle) -> GenerationResult:
        """One status check for a job."""
        model_id = handle.provider_model_id or self.default_model

        try:
            payload = await self.fal.get_status(model_id, handle.job_id)
        except Exception as e:
            logger.error(f"[JobPoller] Status check for {handle.job_id} failed: {e}")
            raise_classified(e, f"Status check failed for {handle.job_id}: {e}")

        status = str(payload.get("status", "")).upper()
        logs = payload.get("logs") or []

        if is_completed(payload):
            url, extraction_error = await self._extract_artifact(handle, model_id, payload)
            if url:
                logger.info(f"[JobPoller] {handle.job_id} completed: {url}")
                return GenerationResult(
                    status=GenerationStatus.COMPLETED,
                    artifact_url=url,
                    job_id=handle.job_id,
                    provider_model_id=model_id,
                )

            provider_error = _error_message(payload)
            if provider_error:
                return self._failed(handle, model_id, ErrorKind.GENERATION_FAILED, provider_error)

            diagnostic = "Job reported completion but no artifact URL was found"
            if extraction_error:
                diagnostic = f"{diagnostic} ({extraction_error})"
            logger.error(f"[JobPoller] {handle.job_id}: {diagnostic}. Status payload: {payload}")
            return self._failed(handle, model_id, ErrorKind.ARTIFACT_EXTRACTION_FAILED, diagnostic)

        provider_error = _error_message(payload)
        if status in FAILED_STATUSES or provider_error:
            return self._failed(
                handle,
                model_id,
                ErrorKind.GENERATION_FAILED,
                provider_error or f"Provider reported status {status}",
            )

        next_status = GenerationStatus.QUEUED if status in QUEUED_STATUSES else GenerationStatus.IN_PROGRESS
        return GenerationResult(
            status=next_status,
            job_id=handle.job_id,
            provider_model_id=model_id,
            logs=logs,
        )

    async def _extract_artifact(self, handle: JobHandle, model_id: str, payload: Dict[str, Any]):
        """Returns (url, last extraction error message)."""
        url = find_video_url(payload)
        if url:
            return url, None

        last_error = None

        response_url = payload.get("response_url") or self.fal.response_url_for(model_id, handle.job_id)
        if response_url:
            try:
                response = await self.fal.fetch_response(response_url)
                url = parse_video_response(response)
                if url:
                    return url, None
            except Exception as e:
                logger.warning(f"[JobPoller] response_url fetch failed for {handle.job_id}: {e}")
                last_error = str(e)

        try:
            result = await self.fal.get_result(model_id, handle.job_id)
            url = parse_video_response(result)
            if url:
                return url, None
        except Exception as e:
            logger.warning(f"[JobPoller] result() failed for {handle.job_id}: {e}")
            last_error = str(e)

        return None, last_error

    @staticmethod
    def _failed(handle: JobHandle, model_id: str, kind: ErrorKind, message: str) -> GenerationResult:
        return GenerationResult(
            status=GenerationStatus.FAILED,
            job_id=handle.job_id,
            provider_model_id=model_id,
            error_kind=kind,
            error=message,
        )
