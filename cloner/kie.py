"""
Kie.ai adapter — primary Suno music generation.

Submission goes to /suno/generate, status to /tasks/{task_id}.
"""

import logging
from typing import Optional

from . import config
from .provider_base import (
    ProviderError,
    ProviderTask,
    first_output,
    normalize_status,
    request_json,
)

logger = logging.getLogger(__name__)

PROVIDER = "kie"

DEFAULT_STYLE = "cinematic advertising music"
DEFAULT_DURATION = 30


def _headers() -> dict:
    if not config.KIE_API_KEY:
        raise ProviderError(PROVIDER, "KIE_API_KEY not set")
    return {
        "Authorization": f"Bearer {config.KIE_API_KEY}",
        "Content-Type": "application/json",
    }


def _audio_url(payload: dict) -> Optional[str]:
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    return first_output(
        data.get("audio_url"),
        data.get("audioUrl"),
        payload.get("audio_url"),
        data.get("outputs"),
        data.get("sunoData"),
    )


def _task_id(payload: dict) -> Optional[str]:
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    return data.get("taskId") or data.get("task_id") or data.get("id") or payload.get("id")


async def submit_music(
    prompt: str,
    style: Optional[str] = None,
    duration: Optional[int] = None,
    instrumental: bool = True,
) -> ProviderTask:
    """Start a Suno generation. Instrumental by default; ads carry their own VO."""
    body = {
        "prompt": prompt,
        "style": style or DEFAULT_STYLE,
        "duration": duration or DEFAULT_DURATION,
        "instrumental": instrumental,
    }

    logger.info(f"Kie.ai music request: style={body['style']}, duration={body['duration']}s")
    payload = await request_json(
        PROVIDER, "POST", f"{config.KIE_API_BASE}/suno/generate", headers=_headers(), json=body
    )

    audio_url = _audio_url(payload)
    task_id = _task_id(payload)
    if audio_url:
        return ProviderTask(provider=PROVIDER, task_id=task_id, status="completed", output_url=audio_url)
    if task_id:
        return ProviderTask(provider=PROVIDER, task_id=task_id, status="processing")

    raise ProviderError(PROVIDER, f"response carried neither a task id nor audio: {str(payload)[:200]}")


async def get_task(task_id: str) -> ProviderTask:
    """Check a Suno task; the audio URL is only read once completed."""
    payload = await request_json(
        PROVIDER, "GET", f"{config.KIE_API_BASE}/tasks/{task_id}", headers=_headers()
    )

    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    status = normalize_status(payload.get("status") or data.get("status"))
    output_url = _audio_url(payload) if status == "completed" else None

    return ProviderTask(provider=PROVIDER, task_id=task_id, status=status, output_url=output_url)
