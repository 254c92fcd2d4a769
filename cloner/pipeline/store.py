"""
Project & Scene Store.

Row-level persistence for projects and scenes plus object storage for
uploaded inputs, all on Supabase (PostgREST + Storage) through the service
role client, which bypasses RLS.

Every status write goes through the transition tables in transitions.py.
Deleting a project cascades to its scenes in the database
(scenes.project_id ... ON DELETE CASCADE, see SETUP_SQL).
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from supabase import create_client, Client

from .. import config
from .models import AssetStatus, Project, ProjectStatus, Scene
from .transitions import check_asset_transition, check_project_transition

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProjectStore:
    """Supabase-backed store. One instance per process (see get_store)."""

    def __init__(
        self,
        client: Client,
        projects_table: str = config.PROJECTS_TABLE,
        scenes_table: str = config.SCENES_TABLE,
    ):
        self.client = client
        self.projects_table = projects_table
        self.scenes_table = scenes_table

    # ── Projects ─────────────────────────────────────────────────────────

    def insert_project(self, row: dict) -> Project:
        result = self.client.table(self.projects_table).insert(row).execute()
        data = result.data[0] if result.data else row
        logger.info(f"Project {data['id']} created")
        return Project(**data)

    def get_project(self, project_id: str) -> Project:
        result = (
            self.client.table(self.projects_table)
            .select("*")
            .eq("id", project_id)
            .limit(1)
            .execute()
        )
        if not result.data:
            raise LookupError(f"Project {project_id} not found")
        return Project(**result.data[0])

    def list_projects(self) -> list[Project]:
        """All projects, newest first."""
        result = (
            self.client.table(self.projects_table)
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return [Project(**row) for row in result.data]

    def update_project(self, project_id: str, patch: dict):
        patch = {**patch, "updated_at": _now_iso()}
        self.client.table(self.projects_table).update(patch).eq("id", project_id).execute()

    def delete_project(self, project_id: str):
        """Scenes go with it through the FK cascade."""
        self.client.table(self.projects_table).delete().eq("id", project_id).execute()
        logger.info(f"Project {project_id} deleted")

    # ── Scenes ───────────────────────────────────────────────────────────

    def replace_scenes(self, project_id: str, rows: list[dict]) -> list[Scene]:
        """
        Write a project's full storyboard as one batch.

        Existing scenes are removed first so replaying analysis after a crash
        converges on exactly one storyboard instead of duplicating it.
        """
        self.client.table(self.scenes_table).delete().eq("project_id", project_id).execute()
        if not rows:
            return []
        result = self.client.table(self.scenes_table).insert(rows).execute()
        return [Scene(**row) for row in result.data]

    def list_scenes(self, project_id: str) -> list[Scene]:
        """Scenes of a project in ascending scene_number."""
        result = (
            self.client.table(self.scenes_table)
            .select("*")
            .eq("project_id", project_id)
            .order("scene_number")
            .execute()
        )
        return [Scene(**row) for row in result.data]

    def get_scene(self, scene_id: str) -> Scene:
        result = (
            self.client.table(self.scenes_table)
            .select("*")
            .eq("id", scene_id)
            .limit(1)
            .execute()
        )
        if not result.data:
            raise LookupError(f"Scene {scene_id} not found")
        return Scene(**result.data[0])

    def update_scene(self, scene_id: str, patch: dict):
        patch = {**patch, "updated_at": _now_iso()}
        self.client.table(self.scenes_table).update(patch).eq("id", scene_id).execute()

    # ── Object storage ───────────────────────────────────────────────────

    def upload_file(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Upload (upsert) an object and return its public URL."""
        self.client.storage.from_(bucket).upload(
            path, data, file_options={"content-type": content_type, "upsert": "true"}
        )
        url = self.public_url(bucket, path)
        logger.info(f"Uploaded {bucket}/{path}")
        return url

    def public_url(self, bucket: str, path: str) -> str:
        return self.client.storage.from_(bucket).get_public_url(path)

    # ── Transition-checked status writes ─────────────────────────────────

    def set_project_status(self, project_id: str, status: ProjectStatus, **fields):
        current = self.get_project(project_id).status
        status = check_project_transition(project_id, current, status)
        self.update_project(project_id, {"status": status.value, **fields})
        logger.info(f"Project {project_id} → {status.value}")

    def reset_project(self, project_id: str):
        """Force a project back to pending, bypassing the transition table."""
        previous = self.get_project(project_id).status
        self.update_project(project_id, {"status": ProjectStatus.PENDING.value})
        logger.warning(f"Project {project_id} reset: {previous.value} → pending")

    def set_scene_status(
        self,
        scene_id: str,
        field: str,
        status: AssetStatus,
        **fields,
    ):
        """field is 'status_image' or 'status_video'."""
        current = getattr(self.get_scene(scene_id), field)
        status = check_asset_transition(scene_id, field, current, status)
        self.update_scene(scene_id, {field: status.value, **fields})
        logger.info(f"Scene {scene_id} {field} → {status.value}")


# ── Lazy singleton ───────────────────────────────────────────────────────────

_store: Optional[ProjectStore] = None


def get_store() -> ProjectStore:
    """Lazy-init the store using the service role key."""
    global _store
    if _store is None:
        if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        _store = ProjectStore(create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY))
    return _store


SETUP_SQL = """
-- Run this SQL in Supabase Dashboard → SQL Editor

CREATE TABLE IF NOT EXISTS projects (
  id UUID PRIMARY KEY,
  project_name TEXT NOT NULL,
  input_video_url TEXT,
  input_image_1_url TEXT,
  input_image_2_url TEXT,
  input_request TEXT NOT NULL,
  source_brand TEXT,
  target_brand TEXT,
  product_description TEXT,
  creative_direction TEXT,
  aspect_ratio TEXT DEFAULT '16:9',
  generate_music BOOLEAN DEFAULT FALSE,
  music_prompt TEXT,
  music_url TEXT,
  script TEXT,
  status TEXT DEFAULT 'pending',
  created_at TIMESTAMPTZ DEFAULT NOW(),
  updated_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS scenes (
  id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
  project_id UUID REFERENCES projects(id) ON DELETE CASCADE,
  scene_number INTEGER NOT NULL,
  scene_title TEXT NOT NULL,
  start_image_prompt TEXT,
  video_prompt TEXT,
  status_image TEXT DEFAULT 'pending',
  status_video TEXT DEFAULT 'pending',
  start_image_url TEXT,
  scene_video_url TEXT,
  created_at TIMESTAMPTZ DEFAULT NOW(),
  updated_at TIMESTAMPTZ DEFAULT NOW(),
  UNIQUE (project_id, scene_number)
);

ALTER TABLE projects ENABLE ROW LEVEL SECURITY;
ALTER TABLE scenes ENABLE ROW LEVEL SECURITY;

CREATE POLICY "Allow all on projects" ON projects FOR ALL USING (true) WITH CHECK (true);
CREATE POLICY "Allow all on scenes" ON scenes FOR ALL USING (true) WITH CHECK (true);

INSERT INTO storage.buckets (id, name, public) VALUES ('videos', 'videos', true)
  ON CONFLICT (id) DO NOTHING;
INSERT INTO storage.buckets (id, name, public) VALUES ('images', 'images', true)
  ON CONFLICT (id) DO NOTHING;
"""
