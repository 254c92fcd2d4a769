"""
CloneService — Main pipeline orchestrator.

Chains the stages for one project, strictly sequentially:
  Stage 1: Analysis (Gemini) → scenes
  Stage 4: Music (Suno via Kie.ai, optional, independent of scenes)
  Stage 2: Start image per scene (Nano Banana Pro), paced
  (bounded wait for outstanding image tasks)
  Stage 3: Clip per scene with a start image (Kling), paced
  → project completed

Any stage error aborts the rest of the run and marks the project "error".
Scenes keep whatever they already produced; nothing is rolled back.
Async provider tasks are reconciled by background TaskPollers, which can be
cancelled per project.
"""

import asyncio
import logging
from functools import partial
from typing import Optional

from .. import config, metrics
from .analyze import analyze_project
from .errors import InvalidStatusTransition, RunInProgress, StageError
from .image_gen import generate_scene_image, poll_scene_image
from .models import AssetStatus, Project, ProjectStatus, RunResult, StageResult
from .music import generate_music, poll_music
from .polling import PollerRegistry, TaskPoller
from .prompts import build_brief
from .store import ProjectStore, get_store
from .video_gen import generate_scene_video, poll_scene_video

logger = logging.getLogger(__name__)

MUSIC_STYLE = "cinematic advertising"
MUSIC_DURATION = 30


class CloneService:
    """
    Usage:
        service = CloneService()

        # Run in the request's event loop (returns when every call is submitted)
        result = await service.run_pipeline(project_id)

        # Or fire-and-forget, cancellable
        service.run_pipeline_background(project_id)
        service.cancel(project_id)
    """

    def __init__(
        self,
        store: Optional[ProjectStore] = None,
        scene_delay: Optional[float] = None,
        image_wait: Optional[float] = None,
        poll_interval: Optional[float] = None,
        max_poll_attempts: Optional[int] = None,
    ):
        self._store = store
        self.scene_delay = config.SCENE_CALL_DELAY if scene_delay is None else scene_delay
        self.image_wait = config.IMAGE_WAIT_SECONDS if image_wait is None else image_wait
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.pollers = PollerRegistry()
        self._runs: dict[str, asyncio.Task] = {}

    @property
    def store(self) -> ProjectStore:
        if self._store is None:
            self._store = get_store()
        return self._store

    # ── Background runs ──────────────────────────────────────────────────

    def is_running(self, project_id: str) -> bool:
        task = self._runs.get(project_id)
        return task is not None and not task.done()

    def run_pipeline_background(self, project_id: str) -> asyncio.Task:
        """Fire-and-forget wrapper for run_pipeline. One live run per project."""
        if self.is_running(project_id):
            raise RunInProgress(project_id)

        task = asyncio.create_task(self.run_pipeline(project_id))
        self._runs[project_id] = task
        metrics.adjust_gauge("active_runs", 1)

        def _forget(_task):
            self._runs.pop(project_id, None)
            metrics.adjust_gauge("active_runs", -1)

        task.add_done_callback(_forget)
        return task

    def cancel(self, project_id: str) -> dict:
        """Stop a live run and every poller of the project."""
        run_cancelled = False
        task = self._runs.get(project_id)
        if task is not None and not task.done():
            task.cancel()
            run_cancelled = True
        pollers_cancelled = self.pollers.cancel(project_id)
        logger.info(f"[{project_id}] Cancel: run={run_cancelled}, pollers={pollers_cancelled}")
        return {"run_cancelled": run_cancelled, "pollers_cancelled": pollers_cancelled}

    def cancel_all(self):
        """Cancel every live run and every registered poller (shutdown)."""
        for project_id in set(self._runs) | set(self.pollers.projects()):
            self.cancel(project_id)

    # ── The pipeline ─────────────────────────────────────────────────────

    async def run_pipeline(self, project_id: str) -> RunResult:
        """
        Run Analysis → Music → Images → Videos for one project.

        Returns a RunResult summarising what was submitted. Stage failures
        are reported in the result (and persisted as project status "error"),
        not raised.
        """
        result = RunResult(project_id=project_id, status=ProjectStatus.PENDING)

        # Pollers from an earlier run point at scenes this run replaces
        stale = self.pollers.cancel(project_id)
        if stale:
            logger.info(f"[{project_id}] Cancelled {stale} poller(s) from the previous run")

        try:
            project = self.store.get_project(project_id)
            brief = project.input_request or build_brief(
                project.source_brand,
                project.target_brand,
                project.product_description,
                project.creative_direction,
            )

            analysis = await analyze_project(
                self.store,
                project.id,
                project.input_video_url,
                brief,
                project.source_brand,
                project.target_brand,
            )
            result.scenes_total = len(analysis.scenes)

            if project.generate_music:
                music_prompt = analysis.music_prompt or (
                    f"{project.target_brand or 'luxury'} brand advertisement music"
                )
                result.music = await generate_music(
                    self.store, project.id, music_prompt, style=MUSIC_STYLE, duration=MUSIC_DURATION
                )
                if result.music.status == "processing":
                    self._watch_music(project.id, result.music)

            image_pollers = await self._generate_images(project, result)
            await self._wait_for_images(project.id, image_pollers)

            self.store.set_project_status(project.id, ProjectStatus.GENERATING_VIDEOS)
            await self._generate_videos(project, result)

            self.store.set_project_status(project.id, ProjectStatus.COMPLETED)
            result.status = ProjectStatus.COMPLETED
            logger.info(
                f"[{project_id}] Pipeline complete: {result.images_submitted} images, "
                f"{result.videos_submitted} videos, {result.videos_skipped} skipped"
            )

        except InvalidStatusTransition as e:
            # The project is in a state this run does not own; leave it alone
            metrics.record_error("pipeline", str(e), project_id)
            result.status = ProjectStatus.ERROR
            result.error = str(e)

        except asyncio.CancelledError:
            logger.warning(f"[{project_id}] Pipeline cancelled")
            self.mark_failed(project_id)
            raise

        except Exception as e:
            stage = e.stage if isinstance(e, StageError) else "pipeline"
            logger.error(f"[{project_id}] Pipeline failed: {e}", exc_info=True)
            metrics.record_error(stage, str(e), project_id)
            self.mark_failed(project_id)
            result.status = ProjectStatus.ERROR
            result.error = str(e)

        return result

    async def _generate_images(self, project: Project, result: RunResult) -> list[TaskPoller]:
        scenes = self.store.list_scenes(project.id)
        references = project.reference_images
        pollers = []

        for index, scene in enumerate(scenes):
            if index:
                await asyncio.sleep(self.scene_delay)
            logger.info(f"[{project.id}] Generating image for {scene.scene_title}...")
            outcome = await generate_scene_image(
                self.store,
                scene.id,
                scene.start_image_prompt or "",
                references,
                project.aspect_ratio,
            )
            result.images_submitted += 1
            if outcome.status == "processing":
                pollers.append(self._watch(
                    project.id,
                    f"image:{scene.id}",
                    partial(poll_scene_image, self.store, outcome.task_id, scene.id),
                    partial(self._mark_asset_failed, scene.id, "status_image"),
                ))

        return pollers

    async def _wait_for_images(self, project_id: str, pollers: list[TaskPoller]):
        """Give outstanding image tasks up to image_wait seconds; late ones keep polling."""
        if not pollers:
            return
        logger.info(f"[{project_id}] Waiting up to {self.image_wait}s for {len(pollers)} image task(s)")
        await asyncio.wait([p.task for p in pollers], timeout=self.image_wait)

    async def _generate_videos(self, project: Project, result: RunResult):
        scenes = self.store.list_scenes(project.id)

        for scene in scenes:
            if not scene.start_image_url:
                logger.info(f"[{project.id}] Skipping video for scene {scene.scene_number}: no start image yet")
                result.videos_skipped += 1
                continue

            if result.videos_submitted:
                await asyncio.sleep(self.scene_delay)
            logger.info(f"[{project.id}] Creating video for {scene.scene_title}...")
            outcome = await generate_scene_video(
                self.store,
                scene.id,
                scene.start_image_url,
                scene.video_prompt or "",
                project.aspect_ratio,
            )
            result.videos_submitted += 1
            if outcome.status == "processing":
                self._watch(
                    project.id,
                    f"video:{scene.id}",
                    partial(poll_scene_video, self.store, outcome.task_id, scene.id),
                    partial(self._mark_asset_failed, scene.id, "status_video"),
                )

    # ── Helpers ──────────────────────────────────────────────────────────

    def _watch(self, project_id: str, name: str, poll, on_failed=None) -> TaskPoller:
        poller = TaskPoller(
            name,
            poll,
            on_failed=on_failed,
            interval=self.poll_interval,
            max_attempts=self.max_poll_attempts,
        )
        return self.pollers.add(project_id, poller.start())

    def _watch_music(self, project_id: str, music: StageResult):
        self._watch(
            project_id,
            f"music:{project_id}",
            partial(poll_music, self.store, music.task_id, project_id, music.provider),
        )

    def _mark_asset_failed(self, scene_id: str, field: str, _result: Optional[StageResult] = None):
        try:
            self.store.set_scene_status(scene_id, field, AssetStatus.ERROR)
        except (InvalidStatusTransition, LookupError):
            logger.warning(f"Scene {scene_id} {field} left as is")

    def mark_failed(self, project_id: str):
        try:
            self.store.set_project_status(project_id, ProjectStatus.ERROR)
        except Exception as e:
            logger.error(f"[{project_id}] Could not mark project as error: {e}")
