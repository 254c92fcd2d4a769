"""
Stage 2: Scene start image — Nano Banana Pro via WaveSpeed.

The first reference image is the edit target; with two references both are
passed along. Async provider answers leave the scene in "generating" until a
status query reports completion.
"""

import logging
from typing import Optional

from .. import metrics, wavespeed
from ..provider_base import ProviderError
from .errors import StageError
from .models import DEFAULT_IMAGE_SIZE, IMAGE_SIZES, AssetStatus, StageResult
from .store import ProjectStore

logger = logging.getLogger(__name__)

STAGE = "image"
FIELD = "status_image"


def image_size(aspect_ratio) -> str:
    """16:9 → 1280x720, 9:16 → 720x1280, 4:5 → 864x1080, else 1024x1024."""
    value = getattr(aspect_ratio, "value", aspect_ratio)
    return IMAGE_SIZES.get(value, DEFAULT_IMAGE_SIZE)


async def generate_scene_image(
    store: ProjectStore,
    scene_id: str,
    prompt: str,
    reference_images: Optional[list[str]],
    aspect_ratio,
) -> StageResult:
    """
    Submit one start-image job for a scene.

    Returns {status: "completed", url} for a direct result (scene updated),
    or {status: "processing", task_id} for an async task (scene untouched
    beyond "generating").
    """
    metrics.inc_counter(f"requests.{STAGE}")
    store.set_scene_status(scene_id, FIELD, AssetStatus.GENERATING)

    try:
        task = await wavespeed.submit_image(prompt, image_size(aspect_ratio), reference_images)
    except ProviderError as e:
        logger.error(f"Image generation error for scene {scene_id}: {e}")
        store.set_scene_status(scene_id, FIELD, AssetStatus.ERROR)
        raise StageError(STAGE, str(e)) from e

    if task.is_failed:
        logger.error(f"Scene {scene_id} image task {task.task_id} rejected: {task.status}")
        store.set_scene_status(scene_id, FIELD, AssetStatus.ERROR)
        raise StageError(STAGE, f"task {task.task_id} failed: {task.status}")

    if task.is_completed:
        store.set_scene_status(scene_id, FIELD, AssetStatus.COMPLETED, start_image_url=task.output_url)
        logger.info(f"Scene {scene_id} image ready: {task.output_url[:80]}")
        return StageResult(status="completed", url=task.output_url, provider=task.provider)

    logger.info(f"Scene {scene_id} image task started: {task.task_id}")
    return StageResult(status="processing", task_id=task.task_id, provider=task.provider)


async def poll_scene_image(
    store: ProjectStore,
    task_id: str,
    scene_id: Optional[str] = None,
) -> StageResult:
    """Check an image task; persist the URL on completion, otherwise pass the status through."""
    task = await wavespeed.get_result(task_id)

    if task.is_completed and task.output_url:
        if scene_id:
            store.set_scene_status(scene_id, FIELD, AssetStatus.COMPLETED, start_image_url=task.output_url)
        return StageResult(status="completed", task_id=task_id, url=task.output_url, provider=task.provider)

    return StageResult(status=task.status, task_id=task_id, provider=task.provider)
