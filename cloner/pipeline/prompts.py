"""
Prompt construction for the cloning pipeline.

SEALCaM (Subject, Environment, Action, Lighting, Camera, Metatokens) is the
six-field structure the analysis model must produce for every scene, once for
the still frame and once for the motion. Downstream providers take plain
text, so each record is flattened to a single labelled string before storage.
"""

from typing import Optional, Union

# (label, accepted keys in priority order). Later keys are legacy shapes.
SEALCAM_FIELDS = (
    ("Subject", ("subject", "subjects", "character", "product")),
    ("Environment", ("environment", "setting", "background", "location")),
    ("Action", ("action", "movement", "motion")),
    ("Lighting", ("lighting", "light", "lights")),
    ("Camera", ("camera", "camera_movement", "shot", "framing")),
    ("Metatokens", ("metatokens", "meta_tokens", "style", "tags", "keywords")),
)

# Fields this short or shorter are dropped ("", "...", "N/A")
MIN_FIELD_LENGTH = 3
SEGMENT_SEPARATOR = ". "

DEFAULT_BRIEF = "Recreate this video with high production value."


def _field_value(prompt: dict, keys: tuple) -> str:
    for key in keys:
        value = prompt.get(key)
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v) for v in value if v)
        text = str(value).strip()
        if text:
            return text
    return ""


def flatten_sealcam(prompt: Union[str, dict, None]) -> str:
    """
    Collapse a SEALCaM record into one string.

    Output is "[Subject] ... . [Environment] ... . ..." in fixed field order.
    A field is kept only if its trimmed text (trailing periods removed) is
    longer than MIN_FIELD_LENGTH. Strings pass through untouched.
    """
    if prompt is None:
        return ""
    if isinstance(prompt, str):
        return prompt.strip()

    segments = []
    for label, keys in SEALCAM_FIELDS:
        content = _field_value(prompt, keys).rstrip(".").strip()
        if len(content) > MIN_FIELD_LENGTH:
            segments.append(f"[{label}] {content}")
    return SEGMENT_SEPARATOR.join(segments)


def build_brief(
    source_brand: Optional[str] = None,
    target_brand: Optional[str] = None,
    product_description: Optional[str] = None,
    creative_direction: Optional[str] = None,
) -> str:
    """Assemble the free-text creative brief stored as a project's input_request."""
    parts = []
    if source_brand and target_brand:
        parts.append(
            f"Transform this {source_brand} style advertisement into a {target_brand} branded version."
        )
    if product_description:
        parts.append(f"Feature this product: {product_description}.")
    if creative_direction:
        parts.append(f"Creative direction: {creative_direction}.")
    return " ".join(parts) if parts else DEFAULT_BRIEF


ANALYSIS_PROMPT = """You are an expert video analyst. Analyze this video and extract scenes for recreation.

User's request: {brief}
{brand_section}
IMPORTANT: Output ONLY valid JSON. No markdown, no code fences, no commentary.

Use the SEALCaM framework for all prompts, with the fields in exactly this order:
- S (Subject): Main subject/character description
- E (Environment): Setting, background, location
- A (Action): What's happening
- L (Lighting): Light quality, direction, mood
- Ca (Camera): Shot type, angle, movement
- M (Metatokens): Style keywords, quality tags

Each scene gets TWO prompts:
- "start_image_prompt" describes ONE static frame: the first frame of the shot. No motion, no change over time.
- "video_prompt" describes the movement that starts FROM that frame: subject motion and camera motion.

Return this JSON structure:
{{
  "music_prompt": "Description of background music/audio mood",
  "script": "Narration or text that appears",
  "scenes": [
    {{
      "scene_number": 1,
      "scene_title": "Scene 1 - Opening",
      "start_image_prompt": {{
        "subject": "...",
        "environment": "...",
        "action": "...",
        "lighting": "...",
        "camera": "...",
        "metatokens": "..."
      }},
      "video_prompt": {{
        "subject": "...",
        "environment": "...",
        "action": "...",
        "lighting": "...",
        "camera": "...",
        "metatokens": "..."
      }},
      "duration_seconds": 3
    }}
  ]
}}

Identify 3-8 distinct scenes. Each scene should be recreatable as a 5-10 second video clip."""

BRAND_SECTION = """
BRAND TRANSFORMATION: Replace every {source_brand} element (logos, packaging, colours, product shots, on-screen text) with {target_brand}. Keep the pacing, composition and energy of the original.
"""

TEXT_FALLBACK_PREFIX = """Based on this request: "{brief}"

The source video is unavailable. Invent a plausible creative video storyboard with 4-6 scenes. Output ONLY valid JSON:

"""


def build_analysis_prompt(
    brief: str,
    source_brand: Optional[str] = None,
    target_brand: Optional[str] = None,
) -> str:
    """The brand section only appears when both brands are given."""
    brand_section = ""
    if source_brand and target_brand:
        brand_section = BRAND_SECTION.format(source_brand=source_brand, target_brand=target_brand)
    return ANALYSIS_PROMPT.format(brief=brief, brand_section=brand_section)


def build_text_fallback_prompt(analysis_prompt: str, brief: str) -> str:
    return TEXT_FALLBACK_PREFIX.format(brief=brief) + analysis_prompt
