"""
Pydantic models and enums for the cloning pipeline.
"""

from enum import Enum
from typing import Optional, Union
from pydantic import BaseModel, Field


# ── Statuses ─────────────────────────────────────────────────────────────────

class ProjectStatus(str, Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    GENERATING_PROMPTS = "generating_prompts"
    GENERATING_IMAGES = "generating_images"
    GENERATING_VIDEOS = "generating_videos"
    COMPLETED = "completed"
    ERROR = "error"


class AssetStatus(str, Enum):
    """status_image / status_video on a scene."""
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"


class AspectRatio(str, Enum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"
    FEED = "4:5"
    SQUARE = "1:1"


# Fixed pixel sizes for the image provider; anything else renders square
IMAGE_SIZES = {
    "16:9": "1280x720",
    "9:16": "720x1280",
    "4:5": "864x1080",
}
DEFAULT_IMAGE_SIZE = "1024x1024"


# ── Stored rows ──────────────────────────────────────────────────────────────

class Project(BaseModel):
    id: str
    project_name: str = ""
    input_video_url: Optional[str] = None
    input_image_1_url: Optional[str] = None
    input_image_2_url: Optional[str] = None
    input_request: str = ""
    source_brand: Optional[str] = None
    target_brand: Optional[str] = None
    product_description: Optional[str] = None
    creative_direction: Optional[str] = None
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE
    generate_music: bool = False
    music_prompt: Optional[str] = None
    music_url: Optional[str] = None
    script: Optional[str] = None
    status: ProjectStatus = ProjectStatus.PENDING
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def reference_images(self) -> list[str]:
        return [url for url in (self.input_image_1_url, self.input_image_2_url) if url]


class Scene(BaseModel):
    id: str
    project_id: str
    scene_number: int
    scene_title: str = ""
    start_image_prompt: Optional[str] = None
    video_prompt: Optional[str] = None
    status_image: AssetStatus = AssetStatus.PENDING
    status_video: AssetStatus = AssetStatus.PENDING
    start_image_url: Optional[str] = None
    scene_video_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# ── Analysis output ──────────────────────────────────────────────────────────

class AnalyzedScene(BaseModel):
    scene_number: int
    scene_title: str = ""
    # dicts stay raw so legacy field names survive until flattening
    start_image_prompt: Union[str, dict, None] = None
    video_prompt: Union[str, dict, None] = None
    duration_seconds: Optional[float] = None


class VideoAnalysis(BaseModel):
    music_prompt: str = ""
    script: str = ""
    scenes: list[AnalyzedScene] = Field(default_factory=list)


# ── Stage results ────────────────────────────────────────────────────────────

class StageResult(BaseModel):
    """What an image/video/music submission or status query reports back."""
    status: str
    task_id: Optional[str] = None
    provider: Optional[str] = None
    url: Optional[str] = None


class RunResult(BaseModel):
    project_id: str
    status: ProjectStatus
    scenes_total: int = 0
    images_submitted: int = 0
    videos_submitted: int = 0
    videos_skipped: int = 0
    music: Optional[StageResult] = None
    error: Optional[str] = None


# ── API request models ───────────────────────────────────────────────────────

class ProjectCreateRequest(BaseModel):
    """Caller may pre-generate the id so uploads can be keyed by it."""
    id: Optional[str] = None
    project_name: str
    input_video_url: Optional[str] = None
    input_image_1_url: Optional[str] = None
    input_image_2_url: Optional[str] = None
    source_brand: Optional[str] = None
    target_brand: Optional[str] = None
    product_description: Optional[str] = None
    creative_direction: Optional[str] = None
    aspect_ratio: AspectRatio = AspectRatio.PORTRAIT
    generate_music: bool = True


class AnalyzeRequest(BaseModel):
    project_id: str
    video_url: Optional[str] = None
    user_prompt: str
    source_brand: Optional[str] = None
    target_brand: Optional[str] = None


class ImageRequest(BaseModel):
    scene_id: str
    prompt: str
    reference_images: list[str] = Field(default_factory=list, max_length=2)
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE


class VideoRequest(BaseModel):
    scene_id: str
    image_url: str
    prompt: str
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE


class MusicRequest(BaseModel):
    project_id: str
    prompt: str
    style: Optional[str] = None
    duration: int = 30
