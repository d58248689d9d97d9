"""Gallery filter pipeline.

Filters run in a fixed order, each narrowing the previous result:
album scope, caption text, person group, star range, category.
Every stage accepts any photo list and never raises.
"""

from collections.abc import Callable

from photo_culling.config import HIGH_SCORE_THRESHOLD
from photo_culling.models import CategoryFilter, ColorLabel, FilterState, Photo

Category = CategoryFilter


def filter_by_album(photos: list[Photo], album_id: str | None) -> list[Photo]:
    if not album_id:
        return photos
    return [p for p in photos if p.album_id == album_id]


def filter_by_caption(photos: list[Photo], text: str) -> list[Photo]:
    """Case-insensitive caption containment. Photos without a caption never match."""
    if not text:
        return photos
    needle = text.lower()
    return [p for p in photos if p.caption and needle in p.caption.lower()]


def filter_by_person_group(photos: list[Photo], group_id: str | None) -> list[Photo]:
    if not group_id:
        return photos
    return [p for p in photos if any(f.same_person_group == group_id for f in p.faces)]


def filter_by_stars(
    photos: list[Photo],
    min_stars: float | None,
    max_stars: float | None,
) -> list[Photo]:
    """Inclusive star range on ai_score / 2. Unscored photos fail any range."""
    if min_stars is None and max_stars is None:
        return photos

    def in_range(photo: Photo) -> bool:
        if not photo.is_analyzed:
            return False
        if min_stars is not None and photo.stars < min_stars:
            return False
        if max_stars is not None and photo.stars > max_stars:
            return False
        return True

    return [p for p in photos if in_range(p)]


def _eyes_closed(photo: Photo) -> bool:
    if photo.tags.has("closed_eyes"):
        return True
    return photo.face_summary is not None and photo.face_summary.closed_eyes > 0


def _has_people(photo: Photo) -> bool:
    if photo.faces:
        return True
    return photo.face_summary is not None and photo.face_summary.total_faces > 0


CATEGORY_PREDICATES: dict[CategoryFilter, Callable[[Photo], bool]] = {
    Category.SELECTED: lambda p: p.selected,
    Category.HIGH_SCORE: lambda p: p.ai_score >= HIGH_SCORE_THRESHOLD,
    Category.APPROVED: lambda p: p.approved is True,
    Category.NOT_APPROVED: lambda p: p.approved is False,
    Category.HIGHLIGHTS: lambda p: bool(p.highlights),
    Category.FLAGGED: lambda p: bool(p.flags),
    Category.BLURRY: lambda p: p.tags.has("blurry"),
    Category.EYES_CLOSED: _eyes_closed,
    Category.DUPLICATES: lambda p: p.tags.has("duplicate"),
    Category.WARNINGS: lambda p: p.tags.has_any(("blurry", "closed_eyes", "duplicate")),
    Category.PEOPLE: _has_people,
    Category.EMOTIONS: lambda p: any(f.emotion for f in p.faces),
    Category.QUALITY_ISSUES: lambda p: p.tags.has_any(("blurry", "closed_eyes")),
}
for _label in ColorLabel:
    CATEGORY_PREDICATES[Category(_label.value)] = lambda p, label=_label: p.color_label == label


def filter_by_category(photos: list[Photo], category: CategoryFilter | str | None) -> list[Photo]:
    predicate = CATEGORY_PREDICATES.get(Category.parse(category))
    if predicate is None:
        return photos
    return [p for p in photos if predicate(p)]


def compute_filtered_view(photos: list[Photo], state: FilterState) -> list[Photo]:
    """Photos visible in the gallery for ``state``."""
    result = filter_by_album(photos, state.album_id)
    result = filter_by_caption(result, state.caption)
    result = filter_by_person_group(result, state.person_group)
    result = filter_by_stars(result, state.min_stars, state.max_stars)
    return filter_by_category(result, state.category)
