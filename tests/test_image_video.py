"""
Start-image and clip stages: submissions, direct results, async tasks and
status queries.
"""

import pytest
from unittest.mock import AsyncMock, patch

from cloner.pipeline.errors import StageError
from cloner.pipeline.image_gen import generate_scene_image, image_size, poll_scene_image
from cloner.pipeline.models import AspectRatio, AssetStatus
from cloner.pipeline.video_gen import generate_scene_video, poll_scene_video
from cloner.provider_base import ProviderError, ProviderTask


def processing(task_id: str) -> ProviderTask:
    return ProviderTask(provider="wavespeed", task_id=task_id, status="processing")


def completed(url: str, task_id: str = None) -> ProviderTask:
    return ProviderTask(provider="wavespeed", task_id=task_id, status="completed", output_url=url)


@pytest.mark.parametrize("ratio,size", [
    ("16:9", "1280x720"),
    ("9:16", "720x1280"),
    ("4:5", "864x1080"),
    ("1:1", "1024x1024"),
    (AspectRatio.PORTRAIT, "720x1280"),
])
def test_image_size(ratio, size):
    assert image_size(ratio) == size


class TestSceneImage:
    @pytest.mark.asyncio
    async def test_direct_result_with_two_references(self, store, make_project, make_scene):
        scene = make_scene(make_project().id)
        refs = ["https://storage.test/images/ref1.png", "https://storage.test/images/ref2.png"]

        with patch("cloner.wavespeed.submit_image", new=AsyncMock(return_value=completed("https://img/1.png"))) as submit:
            result = await generate_scene_image(store, scene.id, "a runner", refs, "9:16")

        submit.assert_awaited_once_with("a runner", "720x1280", refs)
        assert result.status == "completed"
        assert result.url == "https://img/1.png"
        row = store.get_scene(scene.id)
        assert row.status_image == AssetStatus.COMPLETED
        assert row.start_image_url == "https://img/1.png"

    @pytest.mark.asyncio
    async def test_async_task_leaves_scene_generating(self, store, make_project, make_scene):
        scene = make_scene(make_project().id)

        with patch("cloner.wavespeed.submit_image", new=AsyncMock(return_value=processing("task_1"))):
            result = await generate_scene_image(store, scene.id, "a runner", [], "16:9")

        assert result.status == "processing"
        assert result.task_id == "task_1"
        row = store.get_scene(scene.id)
        assert row.status_image == AssetStatus.GENERATING
        assert row.start_image_url is None

    @pytest.mark.asyncio
    async def test_poll_completes_scene(self, store, make_project, make_scene):
        scene = make_scene(make_project().id, status_image="generating")

        with patch("cloner.wavespeed.get_result", new=AsyncMock(return_value=completed("https://img/u.png", "task_1"))):
            result = await poll_scene_image(store, "task_1", scene.id)

        assert result.status == "completed"
        assert result.url == "https://img/u.png"
        row = store.get_scene(scene.id)
        assert row.status_image == AssetStatus.COMPLETED
        assert row.start_image_url == "https://img/u.png"

    @pytest.mark.asyncio
    async def test_poll_passes_failure_through(self, store, make_project, make_scene):
        scene = make_scene(make_project().id, status_image="generating")
        failed = ProviderTask(provider="wavespeed", task_id="task_1", status="failed")

        with patch("cloner.wavespeed.get_result", new=AsyncMock(return_value=failed)):
            result = await poll_scene_image(store, "task_1", scene.id)

        assert result.status == "failed"
        assert store.get_scene(scene.id).status_image == AssetStatus.GENERATING

    @pytest.mark.asyncio
    async def test_poll_without_scene_only_reports(self, store):
        with patch("cloner.wavespeed.get_result", new=AsyncMock(return_value=completed("https://img/u.png", "t"))):
            result = await poll_scene_image(store, "t")
        assert result.url == "https://img/u.png"

    @pytest.mark.asyncio
    async def test_provider_error_marks_scene(self, store, make_project, make_scene):
        scene = make_scene(make_project().id)

        with patch("cloner.wavespeed.submit_image", new=AsyncMock(side_effect=ProviderError("wavespeed", "bad prompt", 400))):
            with pytest.raises(StageError) as exc_info:
                await generate_scene_image(store, scene.id, "a runner", [], "16:9")

        assert exc_info.value.stage == "image"
        assert store.get_scene(scene.id).status_image == AssetStatus.ERROR

    @pytest.mark.asyncio
    async def test_two_submissions_two_tasks(self, store, make_project, make_scene):
        scene = make_scene(make_project().id)
        responses = AsyncMock(side_effect=[{"id": "task_a"}, {"id": "task_b"}])

        with patch("cloner.wavespeed.request_json", new=responses):
            first = await generate_scene_image(store, scene.id, "a runner", [], "16:9")
            second = await generate_scene_image(store, scene.id, "a runner", [], "16:9")

        assert first.task_id != second.task_id
        assert responses.await_count == 2
        assert store.get_scene(scene.id).status_image == AssetStatus.GENERATING

    @pytest.mark.asyncio
    async def test_submission_already_failed_marks_scene(self, store, make_project, make_scene):
        scene = make_scene(make_project().id)
        rejected = AsyncMock(return_value={"data": {"id": "task_x", "status": "failed"}})

        with patch("cloner.wavespeed.request_json", new=rejected):
            with pytest.raises(StageError) as exc_info:
                await generate_scene_image(store, scene.id, "a runner", [], "16:9")

        assert exc_info.value.stage == "image"
        assert "task_x" in exc_info.value.message
        assert store.get_scene(scene.id).status_image == AssetStatus.ERROR


class TestSceneVideo:
    @pytest.mark.asyncio
    async def test_async_task(self, store, make_project, make_scene):
        scene = make_scene(make_project().id, start_image_url="https://img/1.png")

        with patch("cloner.wavespeed.submit_video", new=AsyncMock(return_value=processing("vid_1"))) as submit:
            result = await generate_scene_video(store, scene.id, "https://img/1.png", "sprints", AspectRatio.PORTRAIT)

        submit.assert_awaited_once_with("https://img/1.png", "sprints", "9:16")
        assert result.status == "processing"
        assert result.task_id == "vid_1"
        assert store.get_scene(scene.id).status_video == AssetStatus.GENERATING

    @pytest.mark.asyncio
    async def test_direct_result(self, store, make_project, make_scene):
        scene = make_scene(make_project().id)

        with patch("cloner.wavespeed.submit_video", new=AsyncMock(return_value=completed("https://v/1.mp4"))):
            await generate_scene_video(store, scene.id, "https://img/1.png", "sprints", "16:9")

        row = store.get_scene(scene.id)
        assert row.status_video == AssetStatus.COMPLETED
        assert row.scene_video_url == "https://v/1.mp4"

    @pytest.mark.asyncio
    async def test_provider_error_marks_scene(self, store, make_project, make_scene):
        scene = make_scene(make_project().id)

        with patch("cloner.wavespeed.submit_video", new=AsyncMock(side_effect=ProviderError("wavespeed", "quota", 402))):
            with pytest.raises(StageError):
                await generate_scene_video(store, scene.id, "https://img/1.png", "sprints", "16:9")

        assert store.get_scene(scene.id).status_video == AssetStatus.ERROR

    @pytest.mark.asyncio
    async def test_poll_completes_scene(self, store, make_project, make_scene):
        scene = make_scene(make_project().id, status_video="generating")

        with patch("cloner.wavespeed.get_result", new=AsyncMock(return_value=completed("https://v/2.mp4", "vid_1"))):
            result = await poll_scene_video(store, "vid_1", scene.id)

        assert result.status == "completed"
        assert store.get_scene(scene.id).scene_video_url == "https://v/2.mp4"

    @pytest.mark.asyncio
    async def test_two_submissions_two_tasks(self, store, make_project, make_scene):
        scene = make_scene(make_project().id, start_image_url="https://img/1.png")
        responses = AsyncMock(side_effect=[{"data": {"id": "vid_a", "status": "created"}}, {"id": "vid_b"}])

        with patch("cloner.wavespeed.request_json", new=responses):
            first = await generate_scene_video(store, scene.id, "https://img/1.png", "sprints", "9:16")
            second = await generate_scene_video(store, scene.id, "https://img/1.png", "sprints", "9:16")

        assert (first.task_id, second.task_id) == ("vid_a", "vid_b")
        assert first.status == second.status == "processing"
        assert responses.await_count == 2
        assert store.get_scene(scene.id).status_video == AssetStatus.GENERATING

    @pytest.mark.asyncio
    async def test_submission_already_failed_marks_scene(self, store, make_project, make_scene):
        scene = make_scene(make_project().id)

        with patch("cloner.wavespeed.request_json", new=AsyncMock(return_value={"data": {"id": "vid_x", "status": "failed"}})):
            with pytest.raises(StageError) as exc_info:
                await generate_scene_video(store, scene.id, "https://img/1.png", "sprints", "16:9")

        assert exc_info.value.stage == "video"
        assert store.get_scene(scene.id).status_video == AssetStatus.ERROR
