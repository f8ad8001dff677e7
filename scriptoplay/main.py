"""
Scriptoplay Generation API

Thin HTTP layer over the generation orchestrator for the web application.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Annotated, Any, List, Optional
from urllib.parse import urlparse

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models import ErrorKind, Scene
from .services.generation_errors import GenerationError
from .services.orchestrator import GenerationOrchestrator, get_orchestrator

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ErrorKind.CREDIT_EXHAUSTED: 402,
    ErrorKind.TIMEOUT: 504,
}


# ========================================
# Request models
# ========================================

def remote_url(value: Optional[str]) -> Optional[str]:
    """Media sent over HTTP must be an http(s) URL, never a server path."""
    if value is None:
        return value
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Expected an http(s) URL, got {value!r}")
    return value


RemoteUrl = Annotated[str, AfterValidator(remote_url)]


class MuxRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_url: RemoteUrl = Field(alias="videoUrl")
    audio_url: Optional[RemoteUrl] = Field(default=None, alias="audioUrl")
    bgm_url: Optional[RemoteUrl] = Field(default=None, alias="bgmUrl")
    project_id: str = Field(default="default", alias="projectId")


class AssembleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId")
    scenes: List[Scene]
    bgm_url: Optional[RemoteUrl] = Field(default=None, alias="bgmUrl")

    @field_validator("scenes", mode="before")
    @classmethod
    def read_project_scenes(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [Scene.from_project_scene(scene) if isinstance(scene, dict) else scene for scene in value]

    @field_validator("scenes")
    @classmethod
    def check_scene_urls(cls, scenes: List[Scene]) -> List[Scene]:
        for scene in scenes:
            remote_url(scene.video_url)
            remote_url(scene.dialogue_audio_url)
        return scenes


# ========================================
# FastAPI Application
# ========================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("[STARTUP] Scriptoplay generation API starting...")
    yield
    logger.info("[SHUTDOWN] Scriptoplay generation API shutting down...")


app = FastAPI(
    title="Scriptoplay Generation API",
    description="Image, video, speech and music generation plus video assembly",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
    logger.error(f"[API] {request.url.path} failed ({exc.error_kind.value}): {exc.diagnostic}")
    return JSONResponse(status_code=ERROR_STATUS_CODES.get(exc.error_kind, 500), content=exc.to_dict())


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    problems = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "; ".join(problems)})


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


# ========================================
# API Endpoints
# ========================================

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "scriptoplay-generation",
        "timestamp": datetime.utcnow().isoformat(),
    }


@app.post("/api/orchestrator")
async def orchestrate(
    request: Request,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Dispatch on ``type``: image | video | audio | status."""
    try:
        body = await request.json()
    except ValueError:
        return _bad_request("Request body must be valid JSON")
    if not isinstance(body, dict):
        return _bad_request("Request body must be a JSON object")

    kind = body.pop("type", None)

    if not kind:
        return _bad_request("Missing 'type' parameter")

    if kind == "image":
        url = await orchestrator.generate_image(body)
        return {"url": url}

    if kind == "video":
        handle = await orchestrator.generate_video(body)
        response = handle.to_response()
        response["message"] = "Video generation started. Poll with type=status."
        return response

    if kind == "audio":
        audio = await orchestrator.generate_audio(body)
        return Response(content=audio, media_type="audio/mpeg")

    if kind == "status":
        job_id = body.get("requestId") or body.get("jobId")
        if not job_id:
            return _bad_request("Missing requestId")
        model_id = body.get("modelId") or body.get("providerModelId")
        result = await orchestrator.check_status(job_id, model_id)
        return result.to_response()

    return _bad_request(f"Invalid type: {kind}")


@app.post("/api/mux-video")
async def mux_video(
    request: MuxRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    url = await orchestrator.mux_single_clip(
        request.video_url,
        audio_url=request.audio_url,
        bgm_url=request.bgm_url,
        project_id=request.project_id,
    )
    return {"url": url}


@app.post("/api/assemble")
async def assemble(
    request: AssembleRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    url = await orchestrator.assemble_video(request.project_id, request.scenes, bgm_url=request.bgm_url)
    return {"url": url}
