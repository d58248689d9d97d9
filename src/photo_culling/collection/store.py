"""In-memory photo collection: the single source of truth for Photo records."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace

from photo_culling.errors import ValidationError
from photo_culling.models import ColorLabel, Photo, ScoreType

logger = logging.getLogger(__name__)


class PhotoStore:
    """Photos keyed by id, kept in upload order.

    Every mutation replaces the stored record with a new one, so a reference
    handed out earlier is never changed behind the caller's back. Writers are
    serialized by the event loop; the last write for an id wins.
    """

    def __init__(self, photos: Iterable[Photo] = ()) -> None:
        self._photos: dict[str, Photo] = {}
        self._seen_ids: set[str] = set()
        self.append(photos)

    def __len__(self) -> int:
        return len(self._photos)

    def __contains__(self, photo_id: object) -> bool:
        return photo_id in self._photos

    def get(self, photo_id: str) -> Photo | None:
        return self._photos.get(photo_id)

    def get_by_filename(self, filename: str) -> Photo | None:
        for photo in self._photos.values():
            if photo.filename == filename:
                return photo
        return None

    def photos(self) -> list[Photo]:
        return list(self._photos.values())

    def selected(self) -> list[Photo]:
        return [p for p in self._photos.values() if p.selected]

    # -- bulk writes -------------------------------------------------------

    def append(self, photos: Iterable[Photo]) -> None:
        """Add newly uploaded photos. Ids are never reused within a store's lifetime."""
        for photo in photos:
            if photo.id in self._seen_ids:
                raise ValidationError(f"Photo id already used: {photo.id}")
            self._seen_ids.add(photo.id)
            self._photos[photo.id] = photo

    def upsert(self, photo: Photo) -> None:
        """Replace the record with the same id, or add it."""
        self._seen_ids.add(photo.id)
        self._photos[photo.id] = photo

    def replace_all(self, photos: Iterable[Photo]) -> None:
        """Authoritative bulk replace of the whole collection."""
        self._photos = {}
        for photo in photos:
            self.upsert(photo)
        logger.debug("Store replaced with %d photos", len(self._photos))

    def remove(self, photo_id: str) -> Photo | None:
        return self._photos.pop(photo_id, None)

    def remove_filenames(self, filenames: Iterable[str]) -> list[Photo]:
        """Remove every photo whose filename is listed. Returns the removed photos."""
        names = set(filenames)
        removed = [p for p in self._photos.values() if p.filename in names]
        for photo in removed:
            del self._photos[photo.id]
        return removed

    def clear(self) -> None:
        self._photos = {}

    def update(self, photo_id: str, change: Callable[[Photo], Photo]) -> Photo | None:
        """Apply ``change`` to one photo. Unknown ids are ignored."""
        photo = self._photos.get(photo_id)
        if photo is None:
            return None
        updated = change(photo)
        self._photos[photo_id] = updated
        return updated

    def update_all(self, change: Callable[[Photo], Photo]) -> None:
        self._photos = {pid: change(p) for pid, p in self._photos.items()}

    # -- user edits ---------------------------------------------------------

    def cull(self, photo_id: str) -> Photo | None:
        return self.update(photo_id, lambda p: p.with_tag("culled"))

    def toggle_selection(self, photo_id: str) -> Photo | None:
        return self.update(photo_id, lambda p: replace(p, selected=not p.selected))

    def select_all(self) -> None:
        self.update_all(lambda p: replace(p, selected=True))

    def deselect_all(self) -> None:
        self.update_all(lambda p: replace(p, selected=False))

    def update_score(self, photo_id: str, score: float) -> Photo | None:
        return self.update(
            photo_id, lambda p: replace(p, ai_score=float(score), score_type=ScoreType.MANUAL)
        )

    def update_preview(self, photo_id: str, preview_url: str) -> Photo | None:
        return self.update(photo_id, lambda p: replace(p, preview_url=preview_url))

    def set_color_label(self, photo_id: str, label: ColorLabel | None) -> Photo | None:
        return self.update(photo_id, lambda p: replace(p, color_label=label))

    def mark_keep(self, photo_id: str) -> Photo | None:
        return self.set_color_label(photo_id, ColorLabel.GREEN)

    def mark_reject(self, photo_id: str) -> Photo | None:
        return self.set_color_label(photo_id, ColorLabel.RED)

    def assign_album(self, photo_ids: Iterable[str], album_id: str | None) -> None:
        for photo_id in photo_ids:
            self.update(photo_id, lambda p: replace(p, album_id=album_id))

    def unassign_album(self, photo_ids: Iterable[str], album_id: str) -> None:
        """Clear the album of listed photos that currently belong to ``album_id``."""
        ids = set(photo_ids)
        self.update_all(
            lambda p: replace(p, album_id=None) if p.id in ids and p.album_id == album_id else p
        )
