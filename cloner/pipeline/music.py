"""
Stage 4 (optional): Backing track — Suno via Kie.ai, WaveSpeed as fallback.

Independent of the scenes; only needs the mood prompt. The fallback is a
single attempt with the style folded into the prompt text.
"""

import logging
from typing import Optional

from .. import kie, metrics, wavespeed
from ..provider_base import ProviderError
from .errors import StageError
from .models import StageResult
from .store import ProjectStore

logger = logging.getLogger(__name__)

STAGE = "music"
DEFAULT_DURATION = 30


async def generate_music(
    store: ProjectStore,
    project_id: str,
    prompt: str,
    style: Optional[str] = None,
    duration: Optional[int] = DEFAULT_DURATION,
) -> StageResult:
    """
    Start a music track for a project.

    Returns a completed result (music_url persisted) or a processing result
    with the task id and the provider that owns it.
    """
    metrics.inc_counter(f"requests.{STAGE}")
    duration = duration or DEFAULT_DURATION

    try:
        task = await kie.submit_music(prompt, style=style, duration=duration, instrumental=True)
    except ProviderError as e:
        logger.warning(f"[{project_id}] Primary music provider failed, trying fallback: {e}")
        try:
            task = await wavespeed.submit_music(prompt, style, duration)
        except ProviderError as fallback_error:
            logger.error(f"[{project_id}] Music generation error: {fallback_error}")
            raise StageError(STAGE, f"Suno API error: {fallback_error.text}") from fallback_error

    if task.is_failed:
        logger.error(f"[{project_id}] Music task {task.task_id} rejected on {task.provider}: {task.status}")
        raise StageError(STAGE, f"task {task.task_id} failed: {task.status}")

    if task.is_completed:
        store.update_project(project_id, {"music_url": task.output_url})
        logger.info(f"[{project_id}] Music ready: {task.output_url[:80]}")
        return StageResult(status="completed", url=task.output_url, provider=task.provider)

    logger.info(f"[{project_id}] Music task started on {task.provider}: {task.task_id}")
    return StageResult(status="processing", task_id=task.task_id, provider=task.provider)


async def poll_music(
    store: ProjectStore,
    task_id: str,
    project_id: Optional[str] = None,
    provider: str = kie.PROVIDER,
) -> StageResult:
    """Check a music task on whichever provider accepted it."""
    if provider == wavespeed.PROVIDER:
        task = await wavespeed.get_result(task_id)
    else:
        task = await kie.get_task(task_id)

    if task.is_completed and task.output_url:
        if project_id:
            store.update_project(project_id, {"music_url": task.output_url})
        return StageResult(status="completed", task_id=task_id, url=task.output_url, provider=task.provider)

    return StageResult(status=task.status, task_id=task_id, provider=task.provider)
