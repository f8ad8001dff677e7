"""
Generation errors

Every error raised by the core carries an ErrorKind and a human readable
diagnostic, so callers can pick a message without parsing free text.
"""

from dataclasses import dataclass
from typing import List, Optional

from ..models import ErrorKind


CREDIT_STATUS_CODES = (402, 403)
CREDIT_MESSAGE_MARKERS = ("payment", "forbidden", "insufficient credits", "quota")


class GenerationError(Exception):
    """Base class for orchestration failures."""

    error_kind = ErrorKind.GENERATION_FAILED

    def __init__(self, diagnostic: str, error_kind: Optional[ErrorKind] = None):
        super().__init__(diagnostic)
        self.diagnostic = diagnostic
        if error_kind is not None:
            self.error_kind = error_kind

    def to_dict(self) -> dict:
        return {"error": self.diagnostic, "error_kind": self.error_kind.value}


class CreditExhaustedError(GenerationError):
    """Provider rejected the call for quota or payment reasons."""
    error_kind = ErrorKind.CREDIT_EXHAUSTED


@dataclass
class AttemptRecord:
    """One failed provider attempt inside a fallback chain."""
    model_id: str
    error_kind: ErrorKind
    diagnostic: str


class GenerationFailedError(GenerationError):
    """Provider reported failure or returned an unusable response."""
    error_kind = ErrorKind.GENERATION_FAILED

    def __init__(self, diagnostic: str, attempts: Optional[List[AttemptRecord]] = None):
        super().__init__(diagnostic)
        self.attempts = attempts or []

    @property
    def credit_exhausted(self) -> bool:
        """True when any attempt failed on credits."""
        return any(a.error_kind == ErrorKind.CREDIT_EXHAUSTED for a in self.attempts)

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.attempts:
            data["attempts"] = [
                {"model": a.model_id, "error_kind": a.error_kind.value, "diagnostic": a.diagnostic}
                for a in self.attempts
            ]
        return data


class ArtifactExtractionError(GenerationError):
    """Provider reported success but no artifact URL could be located."""
    error_kind = ErrorKind.ARTIFACT_EXTRACTION_FAILED


class GenerationTimeoutError(GenerationError):
    """A bounded poll loop ran out of attempts."""
    error_kind = ErrorKind.TIMEOUT


class AssemblyFailedError(GenerationError):
    """The media engine could not produce its expected output."""
    error_kind = ErrorKind.ASSEMBLY_FAILED


def _status_code_of(exc: BaseException) -> Optional[int]:
    for candidate in (exc, getattr(exc, "response", None)):
        if candidate is None:
            continue
        for attr in ("status_code", "status"):
            value = getattr(candidate, attr, None)
            if isinstance(value, int):
                return value
    return None


def classify_provider_error(exc: BaseException) -> ErrorKind:
    """Credit exhaustion (402/403 or a payment message) vs generic failure."""
    if isinstance(exc, GenerationError):
        return exc.error_kind

    if _status_code_of(exc) in CREDIT_STATUS_CODES:
        return ErrorKind.CREDIT_EXHAUSTED

    message = str(exc).lower()
    if any(marker in message for marker in CREDIT_MESSAGE_MARKERS):
        return ErrorKind.CREDIT_EXHAUSTED

    return ErrorKind.GENERATION_FAILED


def raise_classified(exc: BaseException, diagnostic: str) -> None:
    """Re-raise a provider exception as the matching GenerationError."""
    if classify_provider_error(exc) == ErrorKind.CREDIT_EXHAUSTED:
        raise CreditExhaustedError(diagnostic) from exc
    raise GenerationFailedError(diagnostic) from exc
