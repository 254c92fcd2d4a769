"""
Shared fixtures: an in-memory project store and provider credentials.
"""

import json
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from cloner import config, metrics
from cloner.pipeline.models import Project, Scene
from cloner.pipeline.store import ProjectStore


class InMemoryStore(ProjectStore):
    """ProjectStore with the Supabase primitives replaced by dicts."""

    def __init__(self):
        self.projects: dict[str, dict] = {}
        self.scenes: dict[str, dict] = {}
        self.uploads: dict[str, bytes] = {}
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> str:
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def insert_project(self, row: dict) -> Project:
        row = {"id": str(uuid.uuid4()), "created_at": self._tick(), **row}
        self.projects[row["id"]] = row
        return Project(**row)

    def get_project(self, project_id: str) -> Project:
        if project_id not in self.projects:
            raise LookupError(f"Project {project_id} not found")
        return Project(**self.projects[project_id])

    def list_projects(self) -> list[Project]:
        rows = sorted(self.projects.values(), key=lambda r: r["created_at"], reverse=True)
        return [Project(**row) for row in rows]

    def update_project(self, project_id: str, patch: dict):
        if project_id in self.projects:
            self.projects[project_id].update(patch)

    def delete_project(self, project_id: str):
        self.projects.pop(project_id, None)
        for scene_id in [sid for sid, row in self.scenes.items() if row["project_id"] == project_id]:
            del self.scenes[scene_id]

    def replace_scenes(self, project_id: str, rows: list[dict]) -> list[Scene]:
        for scene_id in [sid for sid, row in self.scenes.items() if row["project_id"] == project_id]:
            del self.scenes[scene_id]
        numbers = [row["scene_number"] for row in rows]
        assert len(numbers) == len(set(numbers)), "duplicate scene_number"
        created = []
        for row in rows:
            row = {"id": str(uuid.uuid4()), **row}
            self.scenes[row["id"]] = row
            created.append(Scene(**row))
        return created

    def list_scenes(self, project_id: str) -> list[Scene]:
        rows = [row for row in self.scenes.values() if row["project_id"] == project_id]
        return [Scene(**row) for row in sorted(rows, key=lambda r: r["scene_number"])]

    def get_scene(self, scene_id: str) -> Scene:
        if scene_id not in self.scenes:
            raise LookupError(f"Scene {scene_id} not found")
        return Scene(**self.scenes[scene_id])

    def update_scene(self, scene_id: str, patch: dict):
        if scene_id in self.scenes:
            self.scenes[scene_id].update(patch)

    def upload_file(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        self.uploads[f"{bucket}/{path}"] = data
        return self.public_url(bucket, path)

    def public_url(self, bucket: str, path: str) -> str:
        return f"https://storage.test/{bucket}/{path}"


@pytest.fixture(autouse=True)
def provider_keys(monkeypatch):
    monkeypatch.setattr(config, "GEMINI_API_KEY", "test-gemini-key")
    monkeypatch.setattr(config, "WAVESPEED_API_KEY", "test-wavespeed-key")
    monkeypatch.setattr(config, "KIE_API_KEY", "test-kie-key")
    monkeypatch.setattr(config, "PROVIDER_MAX_RETRIES", 2)


@pytest.fixture(autouse=True)
def clean_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def make_project(store):
    """Insert a project row; keyword arguments override the defaults."""

    def _make(**overrides) -> Project:
        row = {
            "project_name": "Spring Launch",
            "input_video_url": "https://storage.test/videos/source.mp4",
            "input_request": "Transform this Nike style advertisement into a Adidas branded version.",
            "source_brand": "Nike",
            "target_brand": "Adidas",
            "aspect_ratio": "9:16",
            "generate_music": False,
            "status": "pending",
        }
        row.update(overrides)
        return store.insert_project(row)

    return _make


@pytest.fixture
def make_scene(store):
    def _make(project_id: str, scene_number: int = 1, **overrides) -> Scene:
        row = {
            "id": str(uuid.uuid4()),
            "project_id": project_id,
            "scene_number": scene_number,
            "scene_title": f"Scene {scene_number}",
            "start_image_prompt": "[Subject] A runner at dawn",
            "video_prompt": "[Action] The runner sprints forward",
            "status_image": "pending",
            "status_video": "pending",
        }
        row.update(overrides)
        store.scenes[row["id"]] = row
        return Scene(**row)

    return _make


SEALCAM_IMAGE = {
    "subject": "A sprinter in white Adidas gear",
    "environment": "Empty city street at dawn",
    "action": "Crouched at the start line",
    "lighting": "Low golden backlight",
    "camera": "Low angle wide shot",
    "metatokens": "cinematic, 35mm, high contrast",
}

SEALCAM_VIDEO = {
    "subject": "The sprinter",
    "environment": "Same street",
    "action": "Explodes off the line and runs past camera",
    "lighting": "Golden backlight with flares",
    "camera": "Tracking shot, fast pan",
    "metatokens": "slow motion, energetic",
}


@pytest.fixture
def analysis_payload() -> dict:
    return {
        "music_prompt": "Driving electronic beat, building energy",
        "script": "Impossible is nothing.",
        "scenes": [
            {
                "scene_number": 1,
                "scene_title": "Scene 1 - Opening",
                "start_image_prompt": SEALCAM_IMAGE,
                "video_prompt": SEALCAM_VIDEO,
                "duration_seconds": 3,
            },
            {
                "scene_number": 2,
                "scene_title": "Scene 2 - Product",
                "start_image_prompt": {**SEALCAM_IMAGE, "action": "Holding the shoe up"},
                "video_prompt": {**SEALCAM_VIDEO, "action": "Rotates the shoe slowly"},
                "duration_seconds": 4,
            },
        ],
    }


@pytest.fixture
def analysis_text(analysis_payload) -> str:
    """Model output as it usually arrives: wrapped in a json code fence."""
    return "```json\n" + json.dumps(analysis_payload) + "\n```"
