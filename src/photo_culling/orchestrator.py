"""Runs an analysis batch against the collection and merges its results."""

import asyncio
import logging
from collections.abc import Callable, Mapping
from contextlib import aclosing

from photo_culling.collection.store import PhotoStore
from photo_culling.config import ANALYSIS_CONCURRENCY, PERSON_GROUPING_DELAY
from photo_culling.errors import (
    CullingError,
    ExternalServiceError,
    PreconditionError,
    ValidationError,
)
from photo_culling.models import AnalysisProgress, CullingMode, Photo, WorkflowStage
from photo_culling.service.analysis import (
    AnalysisRequest,
    AnalysisService,
    AnalysisStream,
    ProgressEvent,
)
from photo_culling.workflow import WorkflowController

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """Drives one analysis batch at a time.

    Each progress event updates ``progress`` and upserts the updated photo by
    id. When the batch completes the store is replaced with the service's
    final list, so it converges even if an incremental merge was lost. A
    failed batch moves the workflow back to upload; updates merged before the
    failure are kept.
    """

    def __init__(
        self,
        store: PhotoStore,
        workflow: WorkflowController,
        services: Mapping[CullingMode, AnalysisService],
        concurrency: int = ANALYSIS_CONCURRENCY,
        follow_up_delay: float = PERSON_GROUPING_DELAY,
    ) -> None:
        self.store = store
        self.workflow = workflow
        self.services = dict(services)
        self.concurrency = concurrency
        self.follow_up_delay = follow_up_delay
        self.progress = AnalysisProgress()
        self.follow_up: asyncio.Task | None = None
        self._batch = 0

    @property
    def is_running(self) -> bool:
        return self.workflow.stage == WorkflowStage.ANALYZING

    async def run(
        self,
        user_id: str,
        album_id: str | None = None,
        on_progress: Callable[[AnalysisProgress], None] | None = None,
        on_complete: Callable[[], None] | None = None,
    ) -> list[Photo]:
        """Analyze every photo in the store with the configured culling mode.

        ``on_complete`` is scheduled ``follow_up_delay`` seconds after a
        successful batch.
        """
        photos = self.store.photos()
        if not photos:
            raise PreconditionError("No photos to analyze")
        self.workflow.validate_start(user_id)

        mode = self.workflow.culling_mode
        service = self.services.get(mode)
        if service is None:
            raise ValidationError(f"Culling mode '{mode}' does not use AI analysis")

        self.workflow.begin_analysis(user_id)
        self._batch += 1
        batch = self._batch
        self.progress.start(len(photos))
        logger.info("Analyzing %d photos (%s mode)", len(photos), mode)

        request = AnalysisRequest(
            user_id=user_id,
            event_type=str(self.workflow.event_type),
            culling_mode=str(mode),
            concurrency=self.concurrency,
            album_id=album_id,
        )
        stream = AnalysisStream(service, photos, request)
        try:
            async with aclosing(aiter(stream)) as events:
                async for event in events:
                    if batch != self._batch:
                        continue
                    self._merge(event)
                    if on_progress is not None:
                        on_progress(self.progress)
        except Exception as e:
            if batch == self._batch and self.is_running:
                self.workflow.fail_analysis()
            logger.error("Analysis batch failed after %d photos: %s", self.progress.processed, e)
            if isinstance(e, CullingError):
                raise
            raise ExternalServiceError(f"Analysis failed: {e}") from e

        if batch != self._batch or not self.is_running:
            logger.warning("Workflow was reset during analysis; discarding batch results")
            return []

        analyzed = stream.result or []
        self.store.replace_all(analyzed)
        self.progress.finish()
        self.workflow.complete_analysis()
        logger.info("Analysis complete: %d photos", len(analyzed))

        if on_complete is not None:
            self.schedule_follow_up(on_complete)
        return analyzed

    def _merge(self, event: ProgressEvent) -> None:
        self.progress.advance(event.processed, event.filename)
        if event.photo is not None:
            self.store.upsert(event.photo)

    def schedule_follow_up(self, callback: Callable[[], None]) -> asyncio.Task:
        """Run ``callback`` after ``follow_up_delay`` seconds, replacing any pending one."""
        self.cancel_follow_up()
        self.follow_up = asyncio.create_task(self._delayed(callback))
        return self.follow_up

    async def _delayed(self, callback: Callable[[], None]) -> None:
        await asyncio.sleep(self.follow_up_delay)
        callback()

    def cancel_follow_up(self) -> None:
        if self.follow_up is not None and not self.follow_up.done():
            self.follow_up.cancel()
        self.follow_up = None

    def reset(self) -> None:
        """Forget the current batch; events still arriving from it are ignored."""
        self._batch += 1
        self.progress.reset()
        self.cancel_follow_up()
