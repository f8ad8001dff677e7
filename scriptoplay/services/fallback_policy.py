"""
Fallback Policy

Runs a primary model and, when it raises or returns nothing usable, exactly
one fallback model. Diagnostics from both attempts are kept; when both fail a
single aggregated GenerationFailedError is raised.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional

from ..models import ErrorKind
from .generation_errors import AttemptRecord, GenerationFailedError, classify_provider_error

logger = logging.getLogger(__name__)

RAW_SNIPPET_LENGTH = 500


@dataclass
class FallbackOutcome:
    """Successful result of a fallback chain."""
    url: str
    model_id: str
    attempts: List[AttemptRecord] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return bool(self.attempts)


def _snippet(raw: Any) -> str:
    try:
        text = json.dumps(raw, default=str)
    except (TypeError, ValueError):
        text = str(raw)
    return text[:RAW_SNIPPET_LENGTH]


class FallbackPolicy:
    """Primary-then-fallback execution with failure classification."""

    def __init__(self, label: str = "Generation"):
        self.label = label

    async def run(
        self,
        primary_model: str,
        fallback_model: Optional[str],
        call: Callable[[str], Awaitable[Any]],
        extract: Callable[[Any], Optional[str]],
    ) -> FallbackOutcome:
        """
        Attempt ``call(primary_model)``, then ``call(fallback_model)``.

        Args:
            primary_model: Model tried first
            fallback_model: Model tried when the primary fails or is empty
            call: Coroutine function issuing the provider request for a model
            extract: Pure function pulling the artifact URL out of a raw result

        Returns:
            FallbackOutcome with the URL and any failed attempts

        Raises:
            GenerationFailedError: both attempts failed
        """
        attempts: List[AttemptRecord] = []
        last_raw: Any = None

        models = [primary_model]
        if fallback_model:
            models.append(fallback_model)

        for model_id in models:
            if attempts:
                logger.info(f"[Fallback] {self.label}: retrying with fallback model {model_id}")
            else:
                logger.info(f"[Fallback] {self.label}: attempting {model_id}")

            try:
                raw = await call(model_id)
            except Exception as e:
                kind = classify_provider_error(e)
                if kind == ErrorKind.CREDIT_EXHAUSTED:
                    diagnostic = f"{model_id}: INSUFFICIENT CREDITS or API KEY LIMIT"
                else:
                    diagnostic = f"{model_id}: {e}"
                logger.warning(f"[Fallback] {diagnostic}")
                attempts.append(AttemptRecord(model_id, kind, diagnostic))
                continue

            last_raw = raw
            url = extract(raw)
            if url:
                return FallbackOutcome(url=url, model_id=model_id, attempts=attempts)

            diagnostic = f"{model_id}: response contained no artifact URL"
            logger.warning(f"[Fallback] {diagnostic}")
            attempts.append(AttemptRecord(model_id, ErrorKind.ARTIFACT_EXTRACTION_FAILED, diagnostic))

        joined = " | ".join(a.diagnostic for a in attempts)
        message = (
            f"{self.label} failed for {'both models' if len(models) > 1 else 'model'}. "
            f"Errors: [{joined}]. Last result: {_snippet(last_raw)}"
        )
        raise GenerationFailedError(message, attempts=attempts)
