"""
WaveSpeed AI adapter.

Models used:
  - google/nano-banana-pro/edit           — scene start image (with reference images)
  - google/nano-banana-pro/text-to-image  — scene start image (no references)
  - kwaivgi/kling-v2.6-pro/image-to-video — scene clip
  - suno/generate                         — fallback music endpoint

All submissions return a ProviderTask. WaveSpeed answers either with a
prediction id (async) or, in sync mode, with the outputs inline.
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

PROVIDER = "wavespeed"

IMAGE_EDIT_MODEL = "google/nano-banana-pro/edit"
IMAGE_T2I_MODEL = "google/nano-banana-pro/text-to-image"
VIDEO_MODEL = "kwaivgi/kling-v2.6-pro/image-to-video"
MUSIC_PATH = "suno/generate"

VIDEO_DURATION_SECONDS = 5


def _headers() -> dict:
    if not config.WAVESPEED_API_KEY:
        raise ProviderError(PROVIDER, "WAVESPEED_API_KEY not set")
    return {
        "Authorization": f"Bearer {config.WAVESPEED_API_KEY}",
        "Content-Type": "application/json",
    }


def to_task(payload: dict, *url_keys: str) -> ProviderTask:
    """
    Map a WaveSpeed submission/result body onto a ProviderTask.

    Shapes seen in the wild:
      {"code": 200, "data": {"id": "...", "status": "created", "outputs": []}}
      {"id": "...", "outputs": ["https://..."]}
      {"data": {"image_url": "https://..."}}
    """
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}

    output_url = first_output(
        data.get("outputs"),
        payload.get("outputs"),
        *(data.get(key) for key in url_keys),
        *(payload.get(key) for key in url_keys),
    )
    task_id = data.get("id") or payload.get("id")
    raw_status = data.get("status") or payload.get("status")

    if output_url:
        return ProviderTask(provider=PROVIDER, task_id=task_id, status="completed", output_url=output_url)
    if task_id:
        status = normalize_status(raw_status)
        # "created" is WaveSpeed's label for a freshly queued prediction
        if status in ("created", "completed"):
            status = "processing"
        return ProviderTask(provider=PROVIDER, task_id=task_id, status=status)

    raise ProviderError(PROVIDER, f"response carried neither a task id nor an output: {str(payload)[:200]}")


async def submit_image(
    prompt: str,
    size: str,
    reference_images: Optional[list[str]] = None,
) -> ProviderTask:
    """Submit a Nano Banana Pro image job."""
    body: dict = {
        "prompt": prompt,
        "size": size,
        "num_images": 1,
    }

    refs = [url for url in (reference_images or []) if url]
    if refs:
        # First reference is the edit target; the full set rides along as references
        body["image"] = refs[0]
        if len(refs) > 1:
            body["reference_images"] = refs
        model = IMAGE_EDIT_MODEL
    else:
        model = IMAGE_T2I_MODEL

    logger.info(f"WaveSpeed image request: model={model}, size={size}, refs={len(refs)}")
    payload = await request_json(
        PROVIDER, "POST", f"{config.WAVESPEED_API_BASE}/{model}", headers=_headers(), json=body
    )
    return to_task(payload, "image_url")


async def submit_video(image_url: str, prompt: str, aspect_ratio: str = "16:9") -> ProviderTask:
    """Submit a Kling v2.6 Pro image-to-video job (fixed 5 s)."""
    body = {
        "image": image_url,
        "prompt": prompt,
        "aspect_ratio": aspect_ratio or "16:9",
        "duration": VIDEO_DURATION_SECONDS,
    }

    logger.info(f"WaveSpeed video request: aspect_ratio={body['aspect_ratio']}, prompt={prompt[:60]}...")
    payload = await request_json(
        PROVIDER, "POST", f"{config.WAVESPEED_API_BASE}/{VIDEO_MODEL}", headers=_headers(), json=body
    )
    return to_task(payload, "video_url")


async def submit_music(prompt: str, style: Optional[str], duration: int) -> ProviderTask:
    """Fallback Suno endpoint: no instrumental flag, style folded into the prompt."""
    body = {
        "prompt": f"{style or 'cinematic'} {prompt}",
        "duration": duration or 30,
    }

    logger.info(f"WaveSpeed music fallback request: {body['prompt'][:60]}...")
    payload = await request_json(
        PROVIDER, "POST", f"{config.WAVESPEED_API_BASE}/{MUSIC_PATH}", headers=_headers(), json=body
    )
    return to_task(payload, "audio_url")


async def get_result(task_id: str) -> ProviderTask:
    """Query a prediction's status; outputs are only read once completed."""
    payload = await request_json(
        PROVIDER,
        "GET",
        f"{config.WAVESPEED_API_BASE}/predictions/{task_id}/result",
        headers=_headers(),
    )

    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    status = normalize_status(data.get("status") or payload.get("status"))

    output_url = None
    if status == "completed":
        output_url = first_output(
            data.get("outputs"),
            payload.get("outputs"),
            data.get("audio_url"),
            payload.get("audio_url"),
        )

    return ProviderTask(provider=PROVIDER, task_id=task_id, status=status, output_url=output_url)
