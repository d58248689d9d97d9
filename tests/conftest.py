"""Shared test fixtures."""

import asyncio
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

import httpx
import numpy as np
import pytest
from PIL import Image

from photo_culling.errors import ExternalServiceError
from photo_culling.models import Face, Photo, ScoreType, TagSet
from photo_culling.service.client import CullingServiceClient


def make_photo(
    name: str,
    ai_score: float = 0.0,
    tags: list[str] | None = None,
    embedding: list[float] | None = None,
    **kwargs,
) -> Photo:
    """Helper to create a Photo whose id and filename derive from ``name``."""
    filename = name if "." in name else f"{name}.jpg"
    return Photo(
        id=kwargs.pop("id", name),
        filename=filename,
        source_path=kwargs.pop("source_path", Path("/photos") / filename),
        preview_url=kwargs.pop("preview_url", f"file:///photos/{filename}"),
        ai_score=ai_score,
        tags=TagSet(tags or []),
        embedding=np.asarray(embedding, dtype=np.float32) if embedding is not None else None,
        **kwargs,
    )


def make_face(group: str | None = None, quality: float | None = None, **kwargs) -> Face:
    return Face(
        bbox=kwargs.pop("bbox", (0.0, 0.0, 10.0, 10.0)),
        face_quality=quality,
        same_person_group=group,
        **kwargs,
    )


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> CullingServiceClient:
    """Service client whose requests are answered by ``handler``."""
    return CullingServiceClient(base_url="http://culling.test", transport=httpx.MockTransport(handler))


def write_image(path: Path, color: str = "red", fmt: str = "JPEG") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (8, 8), color).save(path, format=fmt)
    return path


@pytest.fixture
def image_dir(tmp_path) -> Path:
    """A folder with standard, RAW and unsupported files, one level nested."""
    write_image(tmp_path / "a.jpg")
    write_image(tmp_path / "b.png", "blue", fmt="PNG")
    (tmp_path / "c.CR2").write_bytes(b"raw sensor data")
    (tmp_path / "notes.txt").write_text("not an image")
    write_image(tmp_path / "sub" / "d.jpeg", "green")
    return tmp_path


@pytest.fixture
def photo_files(tmp_path) -> list[Path]:
    return [write_image(tmp_path / f"p{i}.jpg") for i in range(3)]


class FakeAnalysisService:
    """In-process analysis service that scores photos from a lookup table.

    Photos are completed one at a time in input order. With ``fail_after`` set,
    the batch fails once that many photos have been reported.
    """

    def __init__(
        self,
        scores: dict[str, float] | None = None,
        fail_after: int | None = None,
        error: Exception | None = None,
        on_photo: Callable[[int], None] | None = None,
        results: dict[str, dict] | None = None,
    ) -> None:
        self.scores = scores or {}
        self.fail_after = fail_after
        self.error = error or ExternalServiceError("Analysis of photo failed: 500")
        self.on_photo = on_photo
        self.results = results or {}
        self.calls: list[dict] = []

    async def analyze(
        self,
        photos,
        user_id,
        event_type,
        culling_mode,
        on_progress=None,
        concurrency=2,
        album_id=None,
    ):
        self.calls.append(
            {
                "user_id": user_id,
                "event_type": event_type,
                "culling_mode": culling_mode,
                "concurrency": concurrency,
                "album_id": album_id,
                "count": len(photos),
            }
        )
        updated = []
        for index, photo in enumerate(photos):
            if self.fail_after is not None and index == self.fail_after:
                raise self.error
            await asyncio.sleep(0)
            result = self.results.get(photo.filename)
            if result is not None:
                analyzed = photo.with_analysis(result, ScoreType.BASIC)
            else:
                analyzed = replace(photo, ai_score=self.scores.get(photo.filename, 6.0))
            updated.append(analyzed)
            if on_progress is not None:
                on_progress(index + 1, analyzed.filename, analyzed)
            if self.on_photo is not None:
                self.on_photo(index + 1)
        return updated
