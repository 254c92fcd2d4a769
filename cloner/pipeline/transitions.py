"""
Status transition tables for projects and scene assets.

Project status moves forward through the pipeline; any working state may
drop to error. Completed and errored projects may be restarted from
analysis. Scene assets may be resubmitted, so generating → generating is
legal (two submissions mean two provider tasks).
"""

from .errors import InvalidStatusTransition
from .models import AssetStatus, ProjectStatus

P = ProjectStatus
A = AssetStatus

PROJECT_TRANSITIONS: dict[ProjectStatus, frozenset] = {
    P.PENDING: frozenset({P.ANALYZING, P.ERROR}),
    P.ANALYZING: frozenset({P.GENERATING_PROMPTS, P.ERROR}),
    P.GENERATING_PROMPTS: frozenset({P.GENERATING_IMAGES, P.ERROR}),
    P.GENERATING_IMAGES: frozenset({P.GENERATING_VIDEOS, P.ERROR}),
    P.GENERATING_VIDEOS: frozenset({P.COMPLETED, P.ERROR}),
    P.COMPLETED: frozenset({P.ANALYZING}),
    P.ERROR: frozenset({P.ANALYZING, P.ERROR}),
}

ASSET_TRANSITIONS: dict[AssetStatus, frozenset] = {
    A.PENDING: frozenset({A.GENERATING, A.ERROR}),
    A.GENERATING: frozenset({A.GENERATING, A.COMPLETED, A.ERROR}),
    A.COMPLETED: frozenset({A.GENERATING, A.COMPLETED}),
    A.ERROR: frozenset({A.GENERATING, A.ERROR}),
}

# Statuses during which a run is in flight
ACTIVE_PROJECT_STATUSES = frozenset({
    P.ANALYZING,
    P.GENERATING_PROMPTS,
    P.GENERATING_IMAGES,
    P.GENERATING_VIDEOS,
})


def check_project_transition(project_id: str, current, requested) -> ProjectStatus:
    current, requested = ProjectStatus(current), ProjectStatus(requested)
    if requested not in PROJECT_TRANSITIONS[current]:
        raise InvalidStatusTransition("project", project_id, current.value, requested.value)
    return requested


def check_asset_transition(scene_id: str, field: str, current, requested) -> AssetStatus:
    current, requested = AssetStatus(current), AssetStatus(requested)
    if requested not in ASSET_TRANSITIONS[current]:
        raise InvalidStatusTransition(f"scene.{field}", scene_id, current.value, requested.value)
    return requested
