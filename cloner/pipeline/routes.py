"""
FastAPI routes for the cloning pipeline.

Project Endpoints:
  POST   /projects                         — Create project (caller may supply id)
  POST   /projects/{id}/uploads/{kind}     — Upload source video / reference image
  GET    /projects                         — List projects, newest first
  GET    /projects/{id}                    — Get project
  GET    /projects/{id}/scenes             — Scenes in scene_number order
  DELETE /projects/{id}                    — Delete project (scenes cascade)
  POST   /projects/{id}/run                — Start full pipeline (background)
  POST   /projects/{id}/cancel             — Cancel run + pollers
  POST   /projects/{id}/reset              — Force a stuck project back to pending

Stage Endpoints (one call per stage, GET = task status query):
  POST     /api/analyze
  POST/GET /api/generate-image
  POST/GET /api/generate-video
  POST/GET /api/generate-music
"""

import uuid
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from .. import config
from ..provider_base import ProviderError
from .analyze import analyze_project
from .errors import InvalidStatusTransition, RunInProgress, StageError
from .image_gen import generate_scene_image, poll_scene_image
from .models import (
    AnalyzeRequest,
    ImageRequest,
    MusicRequest,
    Project,
    ProjectCreateRequest,
    Scene,
    StageResult,
    VideoAnalysis,
    VideoRequest,
)
from .music import generate_music, poll_music
from .orchestrator import CloneService
from .prompts import build_brief
from .transitions import ACTIVE_PROJECT_STATUSES
from .video_gen import generate_scene_video, poll_scene_video

logger = logging.getLogger(__name__)

# Singleton service instance
_service: Optional[CloneService] = None


def get_service() -> CloneService:
    global _service
    if _service is None:
        _service = CloneService()
    return _service


# kind → (bucket, object name template, project column)
UPLOAD_TARGETS = {
    "video": (config.VIDEO_BUCKET, "{name}", "input_video_url"),
    "image1": (config.IMAGE_BUCKET, "ref1-{name}", "input_image_1_url"),
    "image2": (config.IMAGE_BUCKET, "ref2-{name}", "input_image_2_url"),
}


def _require_task_id(task_id: Optional[str]) -> str:
    if not task_id:
        raise HTTPException(status_code=400, detail="Task ID required")
    return task_id


# ═════════════════════════════════════════════════════════════════════════════
# Project Router
# ═════════════════════════════════════════════════════════════════════════════

project_router = APIRouter(prefix="/projects", tags=["projects"])


@project_router.post("", response_model=Project, status_code=201)
async def create_project(request: ProjectCreateRequest, service: CloneService = Depends(get_service)):
    """
    Create a project in "pending".

    Errors:
      - 400: Missing name, or none of target brand / product / creative direction
    """
    if not request.project_name.strip():
        raise HTTPException(status_code=400, detail="Please enter a project name")
    if not (request.target_brand or request.product_description or request.creative_direction):
        raise HTTPException(
            status_code=400,
            detail="Please provide at least a target brand, product description, or creative direction",
        )

    row = request.model_dump(mode="json", exclude={"id"})
    row.update(
        id=request.id or str(uuid.uuid4()),
        input_request=build_brief(
            request.source_brand,
            request.target_brand,
            request.product_description,
            request.creative_direction,
        ),
        status="pending",
    )

    try:
        return service.store.insert_project(row)
    except Exception as e:
        logger.error(f"Project create failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@project_router.post("/{project_id}/uploads/{kind}")
async def upload_input(
    project_id: str,
    kind: str,
    file: UploadFile = File(...),
    service: CloneService = Depends(get_service),
):
    """Upload an input file keyed by project id and record its public URL on the project."""
    if kind not in UPLOAD_TARGETS:
        raise HTTPException(status_code=400, detail=f"Unknown upload kind '{kind}'")

    bucket, template, column = UPLOAD_TARGETS[kind]
    path = f"{project_id}/{template.format(name=file.filename or kind)}"
    data = await file.read()

    try:
        service.store.get_project(project_id)
        url = service.store.upload_file(bucket, path, data, file.content_type or "application/octet-stream")
        service.store.update_project(project_id, {column: url})
        return {"url": url, "bucket": bucket, "path": path}
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Upload failed for {project_id}/{kind}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@project_router.get("", response_model=list[Project])
async def list_projects(service: CloneService = Depends(get_service)):
    return service.store.list_projects()


@project_router.get("/{project_id}", response_model=Project)
async def get_project(project_id: str, service: CloneService = Depends(get_service)):
    try:
        return service.store.get_project(project_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@project_router.get("/{project_id}/scenes", response_model=list[Scene])
async def list_scenes(project_id: str, service: CloneService = Depends(get_service)):
    return service.store.list_scenes(project_id)


@project_router.delete("/{project_id}", status_code=204)
async def delete_project(project_id: str, service: CloneService = Depends(get_service)):
    service.cancel(project_id)
    service.store.delete_project(project_id)


@project_router.post("/{project_id}/run", status_code=202)
async def run_project(project_id: str, service: CloneService = Depends(get_service)):
    """
    Start the full pipeline in the background. Poll GET /projects/{id} and
    /projects/{id}/scenes for progress.

    Errors:
      - 404: Unknown project
      - 409: A run is live, or the project is mid-pipeline
    """
    try:
        project = service.store.get_project(project_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if project.status in ACTIVE_PROJECT_STATUSES:
        raise HTTPException(
            status_code=409,
            detail=f"Project is {project.status.value}; reset it before running again",
        )

    try:
        service.run_pipeline_background(project_id)
    except RunInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))

    return {"status": "started", "project_id": project_id}


@project_router.post("/{project_id}/cancel")
async def cancel_project(project_id: str, service: CloneService = Depends(get_service)):
    return service.cancel(project_id)


@project_router.post("/{project_id}/reset", response_model=Project)
async def reset_project(project_id: str, service: CloneService = Depends(get_service)):
    if service.is_running(project_id):
        raise HTTPException(status_code=409, detail="Cancel the live run first")
    try:
        service.store.reset_project(project_id)
        return service.store.get_project(project_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ═════════════════════════════════════════════════════════════════════════════
# Stage Router
# ═════════════════════════════════════════════════════════════════════════════

pipeline_router = APIRouter(prefix="/api", tags=["pipeline"])


@pipeline_router.post("/analyze")
async def analyze(request: AnalyzeRequest, service: CloneService = Depends(get_service)):
    """Analyze the source video into scenes. Marks the project "error" on failure."""
    try:
        analysis: VideoAnalysis = await analyze_project(
            service.store,
            request.project_id,
            request.video_url,
            request.user_prompt,
            request.source_brand,
            request.target_brand,
        )
        return {"success": True, "analysis": analysis}
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Analysis error: {e}", exc_info=True)
        service.mark_failed(request.project_id)
        raise HTTPException(status_code=500, detail=str(e))


@pipeline_router.post("/generate-image", response_model=StageResult)
async def generate_image(request: ImageRequest, service: CloneService = Depends(get_service)):
    try:
        return await generate_scene_image(
            service.store,
            request.scene_id,
            request.prompt,
            request.reference_images,
            request.aspect_ratio,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StageError as e:
        raise HTTPException(status_code=500, detail=str(e))


@pipeline_router.get("/generate-image", response_model=StageResult)
async def image_status(
    task_id: Optional[str] = Query(None, alias="taskId"),
    scene_id: Optional[str] = Query(None, alias="sceneId"),
    service: CloneService = Depends(get_service),
):
    try:
        return await poll_scene_image(service.store, _require_task_id(task_id), scene_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ProviderError as e:
        raise HTTPException(status_code=500, detail=str(e))


@pipeline_router.post("/generate-video", response_model=StageResult)
async def generate_video(request: VideoRequest, service: CloneService = Depends(get_service)):
    try:
        return await generate_scene_video(
            service.store,
            request.scene_id,
            request.image_url,
            request.prompt,
            request.aspect_ratio,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StageError as e:
        raise HTTPException(status_code=500, detail=str(e))


@pipeline_router.get("/generate-video", response_model=StageResult)
async def video_status(
    task_id: Optional[str] = Query(None, alias="taskId"),
    scene_id: Optional[str] = Query(None, alias="sceneId"),
    service: CloneService = Depends(get_service),
):
    try:
        return await poll_scene_video(service.store, _require_task_id(task_id), scene_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ProviderError as e:
        raise HTTPException(status_code=500, detail=str(e))


@pipeline_router.post("/generate-music", response_model=StageResult)
async def generate_music_track(request: MusicRequest, service: CloneService = Depends(get_service)):
    try:
        return await generate_music(
            service.store,
            request.project_id,
            request.prompt,
            style=request.style,
            duration=request.duration,
        )
    except StageError as e:
        raise HTTPException(status_code=500, detail=str(e))


@pipeline_router.get("/generate-music", response_model=StageResult)
async def music_status(
    task_id: Optional[str] = Query(None, alias="taskId"),
    project_id: Optional[str] = Query(None, alias="projectId"),
    provider: str = Query("kie"),
    service: CloneService = Depends(get_service),
):
    try:
        return await poll_music(service.store, _require_task_id(task_id), project_id, provider)
    except ProviderError as e:
        raise HTTPException(status_code=500, detail=str(e))
