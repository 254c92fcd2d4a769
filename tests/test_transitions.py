"""
Status transition tables and the checked status writes on the store.
"""

import pytest

from cloner.pipeline.errors import InvalidStatusTransition
from cloner.pipeline.models import AssetStatus, ProjectStatus
from cloner.pipeline.transitions import (
    PROJECT_TRANSITIONS,
    check_asset_transition,
    check_project_transition,
)

P = ProjectStatus
A = AssetStatus


class TestProjectTransitions:
    @pytest.mark.parametrize("current,requested", [
        (P.PENDING, P.ANALYZING),
        (P.ANALYZING, P.GENERATING_PROMPTS),
        (P.GENERATING_PROMPTS, P.GENERATING_IMAGES),
        (P.GENERATING_IMAGES, P.GENERATING_VIDEOS),
        (P.GENERATING_VIDEOS, P.COMPLETED),
        (P.GENERATING_IMAGES, P.ERROR),
        (P.COMPLETED, P.ANALYZING),
        (P.ERROR, P.ANALYZING),
    ])
    def test_legal(self, current, requested):
        assert check_project_transition("p1", current, requested) == requested

    @pytest.mark.parametrize("current,requested", [
        (P.PENDING, P.COMPLETED),
        (P.ANALYZING, P.GENERATING_IMAGES),
        (P.GENERATING_VIDEOS, P.ANALYZING),
        (P.COMPLETED, P.ERROR),
        (P.ERROR, P.COMPLETED),
    ])
    def test_illegal(self, current, requested):
        with pytest.raises(InvalidStatusTransition):
            check_project_transition("p1", current, requested)

    def test_every_status_has_an_entry(self):
        assert set(PROJECT_TRANSITIONS) == set(ProjectStatus)

    def test_accepts_raw_strings(self):
        assert check_project_transition("p1", "pending", "analyzing") == P.ANALYZING


class TestAssetTransitions:
    @pytest.mark.parametrize("current,requested", [
        (A.PENDING, A.GENERATING),
        (A.GENERATING, A.GENERATING),
        (A.GENERATING, A.COMPLETED),
        (A.GENERATING, A.ERROR),
        (A.ERROR, A.GENERATING),
        (A.COMPLETED, A.GENERATING),
    ])
    def test_legal(self, current, requested):
        assert check_asset_transition("s1", "status_image", current, requested) == requested

    @pytest.mark.parametrize("current,requested", [
        (A.PENDING, A.COMPLETED),
        (A.ERROR, A.COMPLETED),
        (A.COMPLETED, A.PENDING),
    ])
    def test_illegal(self, current, requested):
        with pytest.raises(InvalidStatusTransition):
            check_asset_transition("s1", "status_video", current, requested)


class TestCheckedWrites:
    def test_illegal_project_write_leaves_row_untouched(self, store, make_project):
        project = make_project()
        with pytest.raises(InvalidStatusTransition):
            store.set_project_status(project.id, P.COMPLETED)
        assert store.get_project(project.id).status == P.PENDING

    def test_illegal_write_is_logged(self, store, make_project, caplog):
        project = make_project()
        with caplog.at_level("ERROR"), pytest.raises(InvalidStatusTransition):
            store.set_project_status(project.id, P.GENERATING_VIDEOS)
        assert "pending → generating_videos" in caplog.text

    def test_extra_fields_written_with_status(self, store, make_project):
        project = make_project()
        store.set_project_status(project.id, P.ANALYZING)
        store.set_project_status(project.id, P.GENERATING_PROMPTS, script="Just do it.")
        row = store.get_project(project.id)
        assert row.status == P.GENERATING_PROMPTS
        assert row.script == "Just do it."

    def test_scene_status_write(self, store, make_project, make_scene):
        scene = make_scene(make_project().id)
        store.set_scene_status(scene.id, "status_image", A.GENERATING)
        store.set_scene_status(scene.id, "status_image", A.COMPLETED, start_image_url="https://img/1.png")
        row = store.get_scene(scene.id)
        assert row.status_image == A.COMPLETED
        assert row.start_image_url == "https://img/1.png"
        assert row.status_video == A.PENDING

    def test_reset_bypasses_table(self, store, make_project):
        project = make_project(status="generating_images")
        store.reset_project(project.id)
        assert store.get_project(project.id).status == P.PENDING
