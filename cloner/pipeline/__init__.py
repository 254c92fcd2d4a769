"""
Ad Cloning Pipeline

Turns a source advertisement plus a creative brief into a rebranded ad:
  Stage 1 — Analysis:  Gemini → storyboard of SEALCaM-prompted scenes
  Stage 2 — Images:    Nano Banana Pro start frame per scene
  Stage 3 — Videos:    Kling clip animated from each start frame
  Stage 4 — Music:     Suno backing track (optional)
"""

from .orchestrator import CloneService
from .routes import pipeline_router, project_router
from .models import AssetStatus, ProjectStatus
from .errors import InvalidStatusTransition, RunInProgress, StageError

__all__ = [
    "CloneService",
    "pipeline_router",
    "project_router",
    "AssetStatus",
    "ProjectStatus",
    "InvalidStatusTransition",
    "RunInProgress",
    "StageError",
]
