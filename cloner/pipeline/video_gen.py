"""
Stage 3: Scene clip — Kling v2.6 Pro image-to-video via WaveSpeed.

Animates a scene's start image with its motion prompt into a fixed 5 s
clip. The caller guarantees the start image exists; this stage does not
check it.
"""

import logging
from typing import Optional

from .. import metrics, wavespeed
from ..provider_base import ProviderError
from .errors import StageError
from .models import AssetStatus, StageResult
from .store import ProjectStore

logger = logging.getLogger(__name__)

STAGE = "video"
FIELD = "status_video"


async def generate_scene_video(
    store: ProjectStore,
    scene_id: str,
    image_url: str,
    prompt: str,
    aspect_ratio,
) -> StageResult:
    """Submit one image-to-video job for a scene."""
    metrics.inc_counter(f"requests.{STAGE}")
    store.set_scene_status(scene_id, FIELD, AssetStatus.GENERATING)

    ratio = getattr(aspect_ratio, "value", aspect_ratio)
    try:
        task = await wavespeed.submit_video(image_url, prompt, ratio)
    except ProviderError as e:
        logger.error(f"Video generation error for scene {scene_id}: {e}")
        store.set_scene_status(scene_id, FIELD, AssetStatus.ERROR)
        raise StageError(STAGE, str(e)) from e

    if task.is_failed:
        logger.error(f"Scene {scene_id} video task {task.task_id} rejected: {task.status}")
        store.set_scene_status(scene_id, FIELD, AssetStatus.ERROR)
        raise StageError(STAGE, f"task {task.task_id} failed: {task.status}")

    if task.is_completed:
        store.set_scene_status(scene_id, FIELD, AssetStatus.COMPLETED, scene_video_url=task.output_url)
        logger.info(f"Scene {scene_id} video ready: {task.output_url[:80]}")
        return StageResult(status="completed", url=task.output_url, provider=task.provider)

    logger.info(f"Scene {scene_id} video task started: {task.task_id}")
    return StageResult(status="processing", task_id=task.task_id, provider=task.provider)


async def poll_scene_video(
    store: ProjectStore,
    task_id: str,
    scene_id: Optional[str] = None,
) -> StageResult:
    task = await wavespeed.get_result(task_id)

    if task.is_completed and task.output_url:
        if scene_id:
            store.set_scene_status(scene_id, FIELD, AssetStatus.COMPLETED, scene_video_url=task.output_url)
        return StageResult(status="completed", task_id=task_id, url=task.output_url, provider=task.provider)

    return StageResult(status=task.status, task_id=task_id, provider=task.provider)
