"""
Exceptions raised inside the cloning pipeline.

Provider failures arrive as ProviderError (cloner.provider_base) and are
wrapped into StageError by the stage that made the call.
"""

import logging

logger = logging.getLogger(__name__)


class StageError(Exception):
    """A pipeline stage failed; the orchestrator aborts the run on it."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(f"{stage} stage failed: {message}")


class RunInProgress(Exception):
    """A pipeline run for this project is already live in this process."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"A pipeline run is already in progress for project {project_id}")


class InvalidStatusTransition(Exception):
    """A status write that the transition table does not allow."""

    def __init__(self, entity: str, entity_id: str, current: str, requested: str):
        self.entity = entity
        self.entity_id = entity_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Illegal {entity} status transition for {entity_id}: {current} → {requested}"
        )
        logger.error(str(self))
