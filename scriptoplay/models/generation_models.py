"""
Generation models for the Scriptoplay orchestration core.

Requests, results and job handles exchanged with the orchestrator, plus the
scene and assembly plan types consumed by the media assembly engine.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GenerationKind(str, Enum):
    """Kind of artifact a request produces."""
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"    # Speech
    MUSIC = "music"


class GenerationStatus(str, Enum):
    """Job lifecycle: queued -> in_progress -> completed | failed."""
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (GenerationStatus.COMPLETED, GenerationStatus.FAILED)


class ErrorKind(str, Enum):
    """Structured failure classification surfaced to callers."""
    CREDIT_EXHAUSTED = "credit_exhausted"
    GENERATION_FAILED = "generation_failed"
    ARTIFACT_EXTRACTION_FAILED = "artifact_extraction_failed"
    TIMEOUT = "timeout"
    ASSEMBLY_FAILED = "assembly_failed"


class GenerationRequest(BaseModel):
    """A provider-agnostic generation request. Immutable once issued."""
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    kind: GenerationKind
    prompt: str = ""
    model_hint: Optional[str] = None
    reference_inputs: Dict[str, Optional[str]] = Field(
        default_factory=dict,
        description="Named reference inputs (image_url, style_ref, char_ref, ...)"
    )
    constraints: Dict[str, Any] = Field(
        default_factory=dict,
        description="Provider constraints such as aspect_ratio or duration"
    )


class GenerationResult(BaseModel):
    """Outcome of a generation or a status poll."""
    model_config = ConfigDict(protected_namespaces=())

    status: GenerationStatus
    artifact_url: Optional[str] = None
    job_id: Optional[str] = None
    provider_model_id: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None
    logs: List[Any] = Field(default_factory=list)

    @model_validator(mode="after")
    def _completed_requires_url(self) -> "GenerationResult":
        if self.status == GenerationStatus.COMPLETED and not self.artifact_url:
            raise ValueError("a completed result requires a non-empty artifact_url")
        return self

    def to_response(self) -> Dict[str, Any]:
        """Caller-facing {status, url?, error?} shape."""
        response: Dict[str, Any] = {"status": self.status.value}
        if self.artifact_url:
            response["url"] = self.artifact_url
        if self.error:
            response["error"] = self.error
        if self.error_kind:
            response["error_kind"] = self.error_kind.value
        if self.logs and not self.status.is_terminal:
            response["logs"] = self.logs
        return response


class JobHandle(BaseModel):
    """Reference to an asynchronous provider job."""
    model_config = ConfigDict(protected_namespaces=())

    job_id: str
    provider_model_id: str

    def to_response(self) -> Dict[str, Any]:
        return {
            "jobId": self.job_id,
            "providerModelId": self.provider_model_id,
            "status": GenerationStatus.QUEUED.value,
        }


class Scene(BaseModel):
    """Scene as produced by the upstream production phase. Read only."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    video_url: Optional[str] = Field(default=None, alias="videoUrl")
    dialogue_audio_url: Optional[str] = Field(default=None, alias="dialogueAudioUrl")

    @classmethod
    def from_project_scene(cls, data: Dict[str, Any]) -> "Scene":
        """
        Build a Scene from a project document scene.

        Project scenes store the rendered clip under ``production_video`` and
        their voice lines under ``dialogue``; only the first line's audio is
        paired with the clip.
        """
        dialogue = data.get("dialogue") or []
        audio_url = None
        if dialogue and isinstance(dialogue[0], dict):
            audio_url = dialogue[0].get("audio_url")

        return cls(
            id=str(data.get("id", "")),
            video_url=data.get("production_video") or data.get("video_url") or data.get("videoUrl"),
            dialogue_audio_url=audio_url or data.get("dialogue_audio_url") or data.get("dialogueAudioUrl"),
        )


class AssemblyPlan(BaseModel):
    """Ordered scenes plus optional background music for one assembly."""
    scenes: List[Scene] = Field(default_factory=list)
    background_music_url: Optional[str] = None

    def playable_scenes(self) -> List[Scene]:
        """Scenes with a video clip, in input order."""
        return [scene for scene in self.scenes if scene.video_url]


class FinalArtifact(BaseModel):
    """Public URL of a finished media artifact."""
    url: str


# ========================================
# Caller parameters
# ========================================

class ImageParams(BaseModel):
    """Parameters for image generation."""
    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    model: Optional[str] = None
    aspect_ratio: Optional[str] = Field(default=None, alias="aspectRatio")
    style_ref: Optional[str] = Field(default=None, alias="styleRef")
    char_ref: Optional[str] = Field(default=None, alias="charRef")

    def to_request(self) -> GenerationRequest:
        references = {}
        if self.style_ref:
            references["style_ref"] = self.style_ref
        if self.char_ref:
            references["char_ref"] = self.char_ref

        constraints = {}
        if self.aspect_ratio:
            constraints["aspect_ratio"] = self.aspect_ratio

        return GenerationRequest(
            kind=GenerationKind.IMAGE,
            prompt=self.prompt,
            model_hint=self.model,
            reference_inputs=references,
            constraints=constraints,
        )


class VideoParams(BaseModel):
    """Parameters for video generation."""
    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    model: Optional[str] = None
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    image_end_url: Optional[str] = Field(default=None, alias="imageEndUrl")
    audio_url: Optional[str] = Field(default=None, alias="audioUrl")
    duration: Optional[int] = None
    aspect_ratio: Optional[str] = Field(default=None, alias="aspectRatio")
    tags: List[str] = Field(default_factory=list)
    preference: Optional[str] = None

    def to_request(self, model_id: str) -> GenerationRequest:
        references = {}
        for name in ("image_url", "image_end_url", "audio_url"):
            value = getattr(self, name)
            if value:
                references[name] = value

        constraints: Dict[str, Any] = {}
        if self.aspect_ratio:
            constraints["aspect_ratio"] = self.aspect_ratio
        if self.duration is not None:
            constraints["duration"] = self.duration

        return GenerationRequest(
            kind=GenerationKind.VIDEO,
            prompt=self.prompt,
            model_hint=model_id,
            reference_inputs=references,
            constraints=constraints,
        )


class AudioParams(BaseModel):
    """Parameters for speech or music generation."""
    model_config = ConfigDict(populate_by_name=True)

    model: str
    prompt: Optional[str] = None
    text: Optional[str] = None
    voice: Optional[str] = None
    speed: Optional[float] = None
    duration: Optional[int] = None

    @property
    def content(self) -> str:
        """Text to speak or music prompt, whichever was given."""
        return self.text or self.prompt or ""
