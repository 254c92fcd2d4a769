"""
Gemini integration for advertisement analysis.

- Video analysis: Gemini 2.0 Flash (multimodal) via REST, video passed as fileData
- Text-only storyboard: same model, prompt only (used as the analysis fallback)

Both calls return the raw text of the first candidate; decoding is the
analysis stage's job (see parse_json_response).
"""

import re
import json
import logging
from typing import Optional

from . import config
from .provider_base import ProviderError, request_json

logger = logging.getLogger(__name__)

PROVIDER = "gemini"

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?|\n?\s*```")


def _api_url(model: str) -> str:
    return f"{config.GEMINI_API_BASE}/models/{model}:generateContent"


def guess_video_mime(url: str) -> str:
    lower = url.lower().split("?")[0]
    if lower.endswith(".mov"):
        return "video/quicktime"
    if lower.endswith(".webm"):
        return "video/webm"
    return "video/mp4"


def strip_code_fences(text: str) -> str:
    """Remove ```json ... ``` wrapping that models add despite instructions."""
    return _FENCE_RE.sub("", text).strip()


def parse_json_response(text: str) -> dict:
    """Parse JSON from a Gemini response, handling markdown code blocks."""
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ValueError(f"Gemini returned invalid JSON: {cleaned[:200]}") from e


def _extract_text(result: dict) -> str:
    candidates = result.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    if not parts:
        return ""
    return parts[0].get("text", "")


async def _generate_content(parts: list, temperature: float, model: Optional[str] = None) -> str:
    """Call Gemini generateContent and return the first candidate's text."""
    if not config.GEMINI_API_KEY:
        raise ProviderError(PROVIDER, "GEMINI_API_KEY not set")

    body = {
        "contents": [{"parts": parts}],
        "generationConfig": {
            "temperature": temperature,
            "maxOutputTokens": 8192,
        },
    }

    result = await request_json(
        PROVIDER,
        "POST",
        _api_url(model or config.GEMINI_MODEL),
        params={"key": config.GEMINI_API_KEY},
        json=body,
    )
    return _extract_text(result)


async def analyze_video(video_url: str, prompt: str) -> str:
    """Send the source video plus the analysis prompt; return raw model text."""
    parts = [
        {"fileData": {"mimeType": guess_video_mime(video_url), "fileUri": video_url}},
        {"text": prompt},
    ]
    logger.info(f"Gemini video analysis: {video_url[:80]}")
    return await _generate_content(parts, temperature=0.7)


async def generate_storyboard(prompt: str) -> str:
    """Text-only request; the model invents the storyboard from the brief."""
    logger.info("Gemini text-only storyboard request")
    return await _generate_content([{"text": prompt}], temperature=0.8)
