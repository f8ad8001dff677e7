"""
fal.ai Provider - image and video generation through the fal queue.

Image models run through ``subscribe`` (enqueue and wait); video models are
only ever enqueued with ``submit`` and polled later, so no request is held
open for the minutes a video render can take.
"""

import logging
from typing import Any, Dict, Optional

import fal_client
import httpx

from ..models import GenerationRequest
from .fal_compat import call_with_request_id

logger = logging.getLogger(__name__)


IMAGE_PRIMARY_MODEL = "fal-ai/flux-pro/v1.1"
IMAGE_FALLBACK_MODEL = "fal-ai/flux/dev"
DEFAULT_VIDEO_MODEL = "fal-ai/luma-dream-machine"

# Aspect ratio -> fal image_size preset
IMAGE_SIZES = {
    "16:9": "landscape_16_9",
    "9:16": "portrait_16_9",
    "4:3": "landscape_4_3",
    "3:4": "portrait_4_3",
}
DEFAULT_IMAGE_SIZE = "square_hd"

# Models that only accept a duration of 5 or 10 seconds
FIXED_DURATION_MODEL_MARKERS = ("kling",)


def clamp_duration(model_id: str, duration: Any) -> str:
    """
    Map a requested duration onto what the model accepts.

    Kling models take "5" or "10": anything above 5 becomes "10",
    anything else "5". Other models get the value as a string.
    """
    if any(marker in model_id for marker in FIXED_DURATION_MODEL_MARKERS):
        return "10" if float(duration) > 5 else "5"
    return str(duration)


def normalize_status(status: Any) -> Dict[str, Any]:
    """Turn a fal status object (or raw dict) into a plain dict with a STATUS string."""
    if isinstance(status, dict):
        return dict(status)

    if isinstance(status, fal_client.Queued):
        return {"status": "IN_QUEUE", "queue_position": status.position}

    if isinstance(status, fal_client.InProgress):
        return {"status": "IN_PROGRESS", "logs": list(status.logs or [])}

    if isinstance(status, fal_client.Completed):
        payload = {
            "status": "COMPLETED",
            "logs": list(status.logs or []),
            "metrics": getattr(status, "metrics", None) or {},
        }
        error = getattr(status, "error", None)
        if error:
            payload["error"] = error
        return payload

    payload = dict(getattr(status, "__dict__", {}))
    payload["status"] = str(getattr(status, "status", "UNKNOWN")).upper()
    return payload


class FalProvider:
    """Request builder and client wrapper for fal.ai models."""

    def __init__(
        self,
        api_key: str,
        client: Optional[Any] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_key: fal.ai key (FAL_KEY)
            client: Optional pre-built fal client (tests inject a mock)
            transport: Optional httpx transport for the response_url fetch
        """
        self.api_key = api_key
        self._client = client
        self._transport = transport
        if not api_key and client is None:
            logger.warning("[FalProvider] FAL_KEY is missing, fal calls will fail")

    def _get_client(self):
        """Get or create the fal async client (lazy)."""
        if self._client is None:
            self._client = fal_client.AsyncClient(key=self.api_key)
        return self._client

    # =========================================================================
    # REQUEST BUILDERS
    # =========================================================================

    @staticmethod
    def build_image_request(request: GenerationRequest, model_id: Optional[str] = None) -> Dict[str, Any]:
        """Build the fal image input. Absent references are omitted, never null."""
        model_id = model_id or request.model_hint or IMAGE_PRIMARY_MODEL
        aspect_ratio = request.constraints.get("aspect_ratio")
        payload: Dict[str, Any] = {
            "prompt": request.prompt,
            "image_size": IMAGE_SIZES.get(aspect_ratio, DEFAULT_IMAGE_SIZE),
            "safety_tolerance": "2",
        }

        for name in ("style_ref", "char_ref"):
            value = request.reference_inputs.get(name)
            if value:
                payload[name] = value

        logger.debug(f"[FalProvider] Image input for {model_id}: {sorted(payload)}")
        return payload

    @staticmethod
    def build_video_request(request: GenerationRequest, model_id: str) -> Dict[str, Any]:
        """Build the fal video input, clamping duration for fixed-length models."""
        payload: Dict[str, Any] = {
            "prompt": request.prompt,
            "aspect_ratio": request.constraints.get("aspect_ratio") or "16:9",
        }

        for name in ("image_url", "image_end_url", "audio_url"):
            value = request.reference_inputs.get(name)
            if value:
                payload[name] = value

        duration = request.constraints.get("duration")
        if duration is not None:
            payload["duration"] = clamp_duration(model_id, duration)

        return payload

    # =========================================================================
    # CLIENT CALLS
    # =========================================================================

    async def generate_image(self, model_id: str, payload: Dict[str, Any]) -> Any:
        """Run an image model to completion and return its raw result."""
        logger.info(f"[FalProvider] Generating image with {model_id}")
        client = self._get_client()
        return await client.subscribe(
            model_id,
            arguments=payload,
            with_logs=True,
            on_queue_update=self._log_queue_update,
        )

    async def submit_video(
        self,
        model_id: str,
        payload: Dict[str, Any],
        webhook_url: Optional[str] = None,
    ) -> str:
        """Enqueue a video job and return its request id without waiting."""
        client = self._get_client()
        handle = await client.submit(model_id, arguments=payload, webhook_url=webhook_url)
        logger.info(f"[FalProvider] Queued {model_id} job {handle.request_id}")
        return handle.request_id

    async def get_status(self, model_id: str, request_id: str) -> Dict[str, Any]:
        """Raw job status (with logs) as a plain dict."""
        client = self._get_client()
        status = await call_with_request_id(client.status, model_id, request_id, with_logs=True)
        return normalize_status(status)

    async def get_result(self, model_id: str, request_id: str) -> Any:
        """Fetch the final job result."""
        client = self._get_client()
        return await call_with_request_id(client.result, model_id, request_id)

    async def fetch_response(self, response_url: str) -> Any:
        """GET a job's response_url with the fal credentials."""
        async with httpx.AsyncClient(timeout=60, transport=self._transport) as client:
            response = await client.get(
                response_url,
                headers={"Authorization": f"Key {self.api_key}"},
            )
            response.raise_for_status()
            return response.json()

    def response_url_for(self, model_id: str, request_id: str) -> Optional[str]:
        """
        Where the queue serves a finished job's output.

        fal status objects do not carry it, so it is derived from a request
        handle for the job. None when the client cannot build one.
        """
        try:
            handle = self._get_client().get_handle(model_id, request_id)
        except Exception as e:
            logger.debug(f"[FalProvider] No request handle for {request_id}: {e}")
            return None
        return getattr(handle, "response_url", None) or None

    @staticmethod
    def _log_queue_update(update: Any) -> None:
        if isinstance(update, fal_client.InProgress):
            for log in update.logs or []:
                logger.info(f"[FalProvider] {log.get('message', log) if isinstance(log, dict) else log}")
