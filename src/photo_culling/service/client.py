"""HTTP client for the photo analysis backend."""

import json
import logging
import mimetypes
import re
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

import httpx
import numpy as np
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from photo_culling.config import (
    CULLING_API_TIMEOUT,
    CULLING_API_URL,
    RETRY_ATTEMPTS,
    RETRY_MAX_WAIT,
)
from photo_culling.errors import ExternalServiceError
from photo_culling.models import BatchResult, DuplicateCluster, Photo

logger = logging.getLogger(__name__)


class BatchMode(StrEnum):
    AUTOCORRECT = "autocorrect"
    AUTOFIX = "autofix"


def _file_part(photo: Photo) -> tuple[str, bytes, str]:
    mime, _ = mimetypes.guess_type(photo.filename)
    try:
        content = photo.read_bytes()
    except OSError as e:
        logger.error("Could not read %s: %s", photo.filename, e)
        raise ExternalServiceError(f"Could not read {photo.filename}: {e}") from e
    return photo.filename, content, mime or "application/octet-stream"


def album_slug(title: str) -> str:
    """Album id derived from its title and the current time."""
    safe = re.sub(r"[^a-zA-Z0-9]", "_", title.strip())
    return f"{safe}_{int(datetime.now(UTC).timestamp() * 1000)}"


class CullingServiceClient:
    """Client for the analysis, duplicate, batch and album endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or CULLING_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else CULLING_API_TIMEOUT
        self._transport = transport

    @retry(
        stop=stop_after_attempt(RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=1, max=RETRY_MAX_WAIT),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _post(self, path: str, **kwargs: Any) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        ) as client:
            return await client.post(path, headers={"Accept": "application/json"}, **kwargs)

    async def _call(self, path: str, action: str, **kwargs: Any) -> Any:
        """POST to ``path`` and return the parsed JSON body."""
        try:
            resp = await self._post(path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("%s failed: %s", action, e)
            raise ExternalServiceError(f"{action} failed: {e}") from e

        if resp.is_error:
            detail = resp.text.strip() or resp.reason_phrase
            logger.error("%s failed: %s %s", action, resp.status_code, detail)
            raise ExternalServiceError(
                f"{action} failed: {resp.status_code} {detail}", status_code=resp.status_code
            )
        try:
            return resp.json()
        except ValueError as e:
            raise ExternalServiceError(f"{action} returned an invalid response") from e

    async def analyze_photo(
        self,
        photo: Photo,
        user_id: str,
        event_type: str,
        culling_mode: str,
        album_id: str | None = None,
        deep: bool = False,
    ) -> dict[str, Any]:
        """Analyze one photo. Returns the raw result record (empty if the service had none)."""
        path = "/deep-analyze" if deep else "/analyze"
        data = {"user_id": user_id, "event": event_type, "culling_mode": culling_mode}
        if album_id:
            data["album_id"] = album_id
        results = await self._call(
            path,
            f"Analysis of {photo.filename}",
            data=data,
            files={"files": _file_part(photo)},
        )
        if isinstance(results, list):
            results = results[0] if results else {}
        if not isinstance(results or {}, dict):
            raise ExternalServiceError(
                f"Analysis of {photo.filename} returned an invalid response"
            )
        return results or {}

    async def find_duplicates(
        self,
        filenames: list[str],
        embeddings: list[np.ndarray],
        hashes: list[str],
    ) -> list[DuplicateCluster]:
        """Ask the similarity service for duplicate clusters."""
        payload = {
            "filenames": filenames,
            "clip_embeddings": [np.asarray(e, dtype=np.float32).tolist() for e in embeddings],
            "phashes": hashes,
        }
        data = await self._call("/find-duplicates", "Duplicate search", json=payload)
        if isinstance(data, dict):
            data = data.get("clusters", [])
        try:
            return [DuplicateCluster.from_dict(item) for item in data]
        except (KeyError, TypeError, AttributeError) as e:
            logger.error("Duplicate search returned malformed clusters: %r", data)
            raise ExternalServiceError("Duplicate search returned an invalid response") from e

    async def batch_process(self, photos: list[Photo], mode: BatchMode | str) -> list[BatchResult]:
        """Run batch auto-correction or auto-fix over ``photos``."""
        mode = BatchMode(mode)
        files = [("files", _file_part(photo)) for photo in photos]
        results = await self._call(f"/batch-{mode}", f"Batch {mode}", files=files)
        if not isinstance(results, list):
            raise ExternalServiceError("Invalid response format from server")
        try:
            return [
                BatchResult(filename=r["filename"], image_base64=r["image_base64"]) for r in results
            ]
        except (KeyError, TypeError) as e:
            logger.error("Batch %s returned malformed results: %r", mode, results)
            raise ExternalServiceError(f"Batch {mode} returned an invalid response") from e

    async def create_album(self, user_id: str, title: str, event_type: str) -> str:
        """Register a new album and return its id."""
        album_id = album_slug(title)
        payload = {
            "user_email": user_id,
            "album_id": album_id,
            "title": title.strip(),
            "event_type": event_type,
            "date_created": datetime.now(UTC).isoformat(),
        }
        result = await self._call("/create-album", "Album creation", json=payload)
        try:
            return (result or {}).get("album_id") or album_id
        except AttributeError as e:
            raise ExternalServiceError("Album creation returned an invalid response") from e

    async def save_album(
        self,
        user_id: str,
        title: str,
        event_type: str,
        photos: list[Photo],
    ) -> dict[str, Any]:
        """Persist an album: one binary part per photo plus a metadata part."""
        metadata = {
            "user_id": user_id,
            "album_name": title,
            "title": title,
            "event_type": event_type,
            "photos": [photo.to_metadata() for photo in photos],
        }
        files = [("files", _file_part(photo)) for photo in photos]
        return await self._call(
            "/save-album",
            "Album save",
            data={"metadata": json.dumps(metadata)},
            files=files,
        )
