"""
Cancellable background reconciliation of provider tasks.

A TaskPoller wraps one status-query call (poll_scene_image, poll_scene_video,
poll_music bound to their ids) in an asyncio task that re-queries every
POLL_INTERVAL seconds until the task completes, fails, runs out of attempts,
or the poller is cancelled. Stopping is cooperative through an Event, so a
cancelled poller never leaves a half-written row behind.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Awaitable, Callable, Optional

from .. import config, metrics
from ..provider_base import FAILED_LABELS, ProviderError
from .errors import InvalidStatusTransition
from .models import StageResult

logger = logging.getLogger(__name__)

PollFn = Callable[[], Awaitable[StageResult]]
FailFn = Callable[[StageResult], None]


class TaskPoller:
    def __init__(
        self,
        name: str,
        poll: PollFn,
        on_failed: Optional[FailFn] = None,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ):
        self.name = name
        self._poll = poll
        self._on_failed = on_failed
        self.interval = config.POLL_INTERVAL if interval is None else interval
        self.max_attempts = config.MAX_POLL_ATTEMPTS if max_attempts is None else max_attempts
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self.result: Optional[StageResult] = None

    def start(self) -> "TaskPoller":
        self._task = asyncio.create_task(self._run())
        metrics.adjust_gauge("active_pollers", 1)
        return self

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def cancel(self):
        self._stop.set()

    async def _sleep(self) -> bool:
        """Wait one interval; True if cancelled meanwhile."""
        if self._stop.is_set():
            return True
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            return True
        except asyncio.TimeoutError:
            return False

    async def _run(self) -> Optional[StageResult]:
        try:
            for attempt in range(self.max_attempts):
                if await self._sleep():
                    logger.info(f"Poller {self.name} cancelled")
                    return None

                try:
                    result = await self._poll()
                except ProviderError as e:
                    logger.warning(f"Poller {self.name} attempt {attempt + 1} failed: {e}")
                    continue
                except InvalidStatusTransition:
                    return None
                except LookupError as e:
                    logger.warning(f"Poller {self.name} stopped, row gone: {e}")
                    return None

                if result.status == "completed":
                    logger.info(f"Poller {self.name} completed: {result.url}")
                    self.result = result
                    return result

                if result.status in FAILED_LABELS:
                    logger.error(f"Poller {self.name} task failed: status={result.status}")
                    self.result = result
                    if self._on_failed:
                        self._on_failed(result)
                    return result

            logger.warning(f"Poller {self.name} gave up after {self.max_attempts} attempts")
            return None
        finally:
            metrics.adjust_gauge("active_pollers", -1)


class PollerRegistry:
    """Live pollers grouped by project so a project's pollers can be cancelled together."""

    def __init__(self):
        self._pollers: dict[str, list[TaskPoller]] = defaultdict(list)

    def _prune(self):
        for project_id in list(self._pollers):
            live = [p for p in self._pollers[project_id] if not p.done]
            if live:
                self._pollers[project_id] = live
            else:
                del self._pollers[project_id]

    def add(self, project_id: str, poller: TaskPoller) -> TaskPoller:
        self._prune()
        self._pollers[project_id].append(poller)
        return poller

    def active(self, project_id: str) -> list[TaskPoller]:
        return [p for p in self._pollers.get(project_id, []) if not p.done]

    def projects(self) -> list[str]:
        """Projects with at least one live poller."""
        self._prune()
        return list(self._pollers)

    def cancel(self, project_id: str) -> int:
        pollers = self.active(project_id)
        for poller in pollers:
            poller.cancel()
        self._pollers.pop(project_id, None)
        return len(pollers)
