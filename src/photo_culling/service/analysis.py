"""Bounded-concurrency photo analysis and its progress stream."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Protocol

from photo_culling.config import ANALYSIS_CONCURRENCY, SIMILARITY_THRESHOLD
from photo_culling.models import Photo, ScoreType
from photo_culling.service.client import CullingServiceClient
from photo_culling.service.similarity import find_similar_photo_ids

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str, Photo | None], None]


class AnalysisService(Protocol):
    """Analyzes a batch of photos, reporting each completed photo at most once.

    ``on_progress(processed, filename, updated_photo)`` may be called in any
    completion order; the returned list is the full replacement collection.
    """

    async def analyze(
        self,
        photos: list[Photo],
        user_id: str,
        event_type: str,
        culling_mode: str | None,
        on_progress: ProgressCallback | None,
        concurrency: int,
        album_id: str | None,
    ) -> list[Photo]: ...


class HttpAnalysisService:
    """Analysis over HTTP, one request per photo.

    Any failed request fails the whole batch and cancels the requests still
    in flight.
    """

    def __init__(
        self,
        client: CullingServiceClient,
        deep: bool = False,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
    ) -> None:
        self.client = client
        self.deep = deep
        self.similarity_threshold = similarity_threshold

    async def analyze(
        self,
        photos: list[Photo],
        user_id: str,
        event_type: str,
        culling_mode: str | None,
        on_progress: ProgressCallback | None = None,
        concurrency: int = ANALYSIS_CONCURRENCY,
        album_id: str | None = None,
    ) -> list[Photo]:
        if not photos:
            return []

        default_score_type = ScoreType.AI if self.deep else ScoreType.BASIC
        mode = culling_mode or ("deep" if self.deep else "fast")
        semaphore = asyncio.Semaphore(max(1, concurrency))
        results: list[Photo] = list(photos)
        completed = 0

        async def analyze_one(index: int, photo: Photo) -> None:
            nonlocal completed
            async with semaphore:
                result = await self.client.analyze_photo(
                    photo, user_id, event_type, mode, album_id=album_id, deep=self.deep
                )
            updated = photo.with_analysis(result, default_score_type) if result else photo
            results[index] = updated
            completed += 1
            if on_progress is not None:
                on_progress(completed, updated.filename, updated)

        try:
            async with asyncio.TaskGroup() as tg:
                for index, photo in enumerate(photos):
                    tg.create_task(analyze_one(index, photo))
        except ExceptionGroup as group:
            raise group.exceptions[0] from None

        similar = find_similar_photo_ids(results, self.similarity_threshold)
        if similar:
            logger.info("Tagged %d near-identical photos as duplicates", len(similar))
        return [p.with_tag("duplicate") if p.id in similar else p for p in results]


@dataclass(frozen=True)
class ProgressEvent:
    processed: int
    filename: str
    photo: Photo | None = None


@dataclass(frozen=True)
class AnalysisRequest:
    user_id: str
    event_type: str
    culling_mode: str | None = None
    concurrency: int = ANALYSIS_CONCURRENCY
    album_id: str | None = None


_DONE = object()


class AnalysisStream:
    """Async iterator over the progress events of one analysis batch.

    Iteration ends when the batch does; ``result`` then holds the returned
    photo list. A failed batch raises its error only after every event that
    preceded the failure has been yielded. Closing the iterator early cancels
    the batch.
    """

    def __init__(
        self,
        service: AnalysisService,
        photos: list[Photo],
        request: AnalysisRequest,
    ) -> None:
        self._service = service
        self._photos = photos
        self._request = request
        self._queue: asyncio.Queue = asyncio.Queue()
        self.result: list[Photo] | None = None

    def _on_progress(self, processed: int, filename: str, photo: Photo | None = None) -> None:
        self._queue.put_nowait(ProgressEvent(processed, filename, photo))

    async def _run(self) -> list[Photo]:
        request = self._request
        try:
            return await self._service.analyze(
                self._photos,
                request.user_id,
                request.event_type,
                request.culling_mode,
                self._on_progress,
                request.concurrency,
                request.album_id,
            )
        finally:
            self._queue.put_nowait(_DONE)

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        task = asyncio.create_task(self._run())
        try:
            while (event := await self._queue.get()) is not _DONE:
                yield event
            self.result = await task
        finally:
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
