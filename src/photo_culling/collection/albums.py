"""Local album registry and the selection of photos an album save persists."""

import logging
import re
from collections.abc import Iterable
from dataclasses import replace
from datetime import UTC, datetime

from photo_culling.collection.store import PhotoStore
from photo_culling.errors import PreconditionError, ValidationError
from photo_culling.models import Album, ColorLabel, Photo

logger = logging.getLogger(__name__)


def _album_id(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-") or "album"
    return f"{slug}-{int(datetime.now(UTC).timestamp() * 1000)}"


def is_approved(photo: Photo) -> bool:
    """Whether an album save includes this photo."""
    return photo.selected or photo.color_label == ColorLabel.GREEN or photo.approved is True


def approved_photos(photos: Iterable[Photo]) -> list[Photo]:
    return [p for p in photos if is_approved(p)]


def validate_album_save(title: str, user_id: str | None, event_type: str | None) -> str:
    """Check the inputs of an album save and return the stripped title."""
    title = (title or "").strip()
    if not title:
        raise ValidationError("Please enter an album title")
    if not user_id:
        raise ValidationError("Please sign in to save albums")
    if not event_type:
        raise ValidationError("Please select an event type first")
    return title


def photos_to_save(photos: Iterable[Photo]) -> list[Photo]:
    selected = approved_photos(photos)
    if not selected:
        raise PreconditionError(
            "No approved photos to save. Please select or approve some photos first."
        )
    return selected


class AlbumRegistry:
    """Albums known to this session, plus the one new analysis runs are scoped to."""

    def __init__(self, store: PhotoStore) -> None:
        self.store = store
        self._albums: dict[str, Album] = {}
        self.current_id: str | None = None

    def __len__(self) -> int:
        return len(self._albums)

    def get(self, album_id: str) -> Album | None:
        return self._albums.get(album_id)

    def albums(self) -> list[Album]:
        return list(self._albums.values())

    @property
    def current(self) -> Album | None:
        return self._albums.get(self.current_id) if self.current_id else None

    def create(self, name: str, description: str | None = None, album_id: str | None = None) -> Album:
        """Register an album and make it current."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Album name must not be empty")
        album = Album(id=album_id or _album_id(name), name=name, description=description)
        self._albums[album.id] = album
        self.current_id = album.id
        logger.info("Created album %s (%s)", album.name, album.id)
        return album

    def update(
        self,
        album_id: str,
        name: str | None = None,
        description: str | None = None,
    ) -> Album:
        album = self._require(album_id)
        changes: dict = {"updated_at": datetime.now(UTC)}
        if name is not None:
            if not name.strip():
                raise ValidationError("Album name must not be empty")
            changes["name"] = name.strip()
        if description is not None:
            changes["description"] = description
        album = self._albums[album_id] = replace(album, **changes)
        return album

    def delete(self, album_id: str) -> Album:
        """Remove an album; its photos stay in the collection without an album."""
        album = self._require(album_id)
        del self._albums[album_id]
        members = [p.id for p in self.store.photos() if p.album_id == album_id]
        self.store.unassign_album(members, album_id)
        if self.current_id == album_id:
            self.current_id = None
        logger.info("Deleted album %s; %d photos unassigned", album.name, len(members))
        return album

    def add_photos(self, album_id: str, photo_ids: Iterable[str]) -> None:
        album = self._require(album_id)
        photo_ids = list(photo_ids)
        self.store.assign_album(photo_ids, album_id)
        if album.cover_photo_id is None and photo_ids:
            self._albums[album_id] = replace(album, cover_photo_id=photo_ids[0])

    def remove_photos(self, album_id: str, photo_ids: Iterable[str]) -> None:
        self._require(album_id)
        self.store.unassign_album(photo_ids, album_id)

    def _require(self, album_id: str) -> Album:
        album = self._albums.get(album_id)
        if album is None:
            raise ValidationError(f"Unknown album: {album_id}")
        return album
