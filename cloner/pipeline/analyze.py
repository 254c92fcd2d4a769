"""
Stage 1: Analysis — Gemini 2.0 Flash.

Turns the source video and the creative brief into a storyboard: a music
prompt, a script, and 3–8 scenes each carrying a SEALCaM still-frame prompt
and a SEALCaM motion prompt.

If the video request fails, one text-only request is made in its place and
the model invents the storyboard from the brief. Malformed output is
terminal.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from .. import gemini, metrics
from ..provider_base import ProviderError
from .errors import StageError
from .models import AssetStatus, ProjectStatus, VideoAnalysis
from .prompts import build_analysis_prompt, build_text_fallback_prompt, flatten_sealcam
from .store import ProjectStore

logger = logging.getLogger(__name__)

STAGE = "analysis"


async def _request_analysis(
    project_id: str,
    video_url: Optional[str],
    brief: str,
    analysis_prompt: str,
) -> str:
    """Video request first; on failure (or no video) exactly one text-only request."""
    if video_url:
        try:
            return await gemini.analyze_video(video_url, analysis_prompt)
        except ProviderError as e:
            logger.warning(f"[{project_id}] Video analysis failed, using text-based generation: {e}")
    else:
        logger.info(f"[{project_id}] No source video, using text-based generation")

    try:
        return await gemini.generate_storyboard(build_text_fallback_prompt(analysis_prompt, brief))
    except ProviderError as e:
        raise StageError(STAGE, str(e)) from e


def decode_analysis(text: str) -> VideoAnalysis:
    try:
        return VideoAnalysis(**gemini.parse_json_response(text))
    except (ValueError, TypeError, ValidationError) as e:
        raise StageError(STAGE, f"could not decode analysis: {e}") from e


async def analyze_project(
    store: ProjectStore,
    project_id: str,
    video_url: Optional[str],
    brief: str,
    source_brand: Optional[str] = None,
    target_brand: Optional[str] = None,
) -> VideoAnalysis:
    """
    Run the analysis stage for one project.

    Side effects, in order:
      1. project → analyzing
      2. music_prompt + script persisted, project → generating_prompts
      3. all scenes written as one batch (prompts flattened)
      4. project → generating_images

    Args:
        store:        Project/scene store.
        project_id:   Project being cloned.
        video_url:    Public URL of the source advertisement (may be None).
        brief:        Free-text creative brief.
        source_brand: Brand being replaced (optional).
        target_brand: Brand replacing it (optional).

    Returns:
        The decoded analysis.
    """
    metrics.inc_counter(f"requests.{STAGE}")
    store.set_project_status(project_id, ProjectStatus.ANALYZING)

    analysis_prompt = build_analysis_prompt(brief, source_brand, target_brand)
    text = await _request_analysis(project_id, video_url, brief, analysis_prompt)
    analysis = decode_analysis(text)

    store.set_project_status(
        project_id,
        ProjectStatus.GENERATING_PROMPTS,
        music_prompt=analysis.music_prompt,
        script=analysis.script,
    )

    rows = [
        {
            "project_id": project_id,
            "scene_number": scene.scene_number,
            "scene_title": scene.scene_title or f"Scene {scene.scene_number}",
            "start_image_prompt": flatten_sealcam(scene.start_image_prompt),
            "video_prompt": flatten_sealcam(scene.video_prompt),
            "status_image": AssetStatus.PENDING.value,
            "status_video": AssetStatus.PENDING.value,
        }
        for scene in analysis.scenes
    ]
    store.replace_scenes(project_id, rows)

    store.set_project_status(project_id, ProjectStatus.GENERATING_IMAGES)
    logger.info(f"[{project_id}] Analysis complete: {len(rows)} scenes")
    return analysis
