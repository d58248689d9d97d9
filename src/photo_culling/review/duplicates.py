"""Duplicate detection and reconciliation of duplicate groups into the collection."""

import logging
from collections.abc import Iterable
from dataclasses import replace

from photo_culling.collection.store import PhotoStore
from photo_culling.errors import PreconditionError
from photo_culling.models import ColorLabel, DuplicateCluster, Photo
from photo_culling.service.client import CullingServiceClient

logger = logging.getLogger(__name__)

DUPLICATE_TAG = "duplicate"


def comparable_photos(photos: Iterable[Photo]) -> list[Photo]:
    """Photos carrying both similarity signals."""
    return [p for p in photos if p.has_embedding and p.phash]


async def find_duplicate_clusters(
    client: CullingServiceClient,
    photos: list[Photo],
) -> list[DuplicateCluster]:
    """Send every comparable photo to the similarity service.

    Raises PreconditionError without calling the service when no photo has
    both an embedding and a perceptual hash.
    """
    candidates = comparable_photos(photos)
    if not candidates:
        raise PreconditionError("Photos need to be analyzed first to find duplicates")

    clusters = await client.find_duplicates(
        [p.filename for p in candidates],
        [p.embedding for p in candidates],
        [p.phash for p in candidates],
    )
    logger.info("Found %d duplicate clusters among %d photos", len(clusters), len(candidates))
    return clusters


def cluster_for(filename: str, clusters: list[DuplicateCluster]) -> DuplicateCluster | None:
    """First cluster that anchors or lists ``filename``."""
    for cluster in clusters:
        if cluster.contains(filename):
            return cluster
    return None


def reconcile_photo(photo: Photo, clusters: list[DuplicateCluster]) -> Photo:
    """Annotate one photo with its duplicate group. Idempotent."""
    cluster = cluster_for(photo.filename, clusters)
    group = cluster.members() if cluster is not None else []
    is_duplicate = len(group) > 1

    tags = photo.tags.copy()
    if is_duplicate:
        tags.add(DUPLICATE_TAG)
    else:
        tags.remove(DUPLICATE_TAG)
    return replace(photo, duplicate_group=group, is_duplicate=is_duplicate, tags=tags)


def reconcile_duplicates(photos: list[Photo], clusters: list[DuplicateCluster]) -> list[Photo]:
    return [reconcile_photo(p, clusters) for p in photos]


def apply_clusters(store: PhotoStore, clusters: list[DuplicateCluster]) -> None:
    """Write duplicate-group membership onto every photo in the store."""
    store.update_all(lambda p: reconcile_photo(p, clusters))


def mark_duplicate_keep(store: PhotoStore, keep_filename: str, group: Iterable[str]) -> None:
    """Keep one photo of a duplicate group (green) and reject the rest (red)."""
    members = set(group)

    def relabel(photo: Photo) -> Photo:
        if photo.filename not in members:
            return photo
        if photo.filename == keep_filename:
            tags = photo.tags.copy()
            tags.remove(DUPLICATE_TAG)
            return replace(photo, color_label=ColorLabel.GREEN, tags=tags)
        return replace(photo, color_label=ColorLabel.RED)

    store.update_all(relabel)


def delete_duplicate_group(store: PhotoStore, group: Iterable[str]) -> list[Photo]:
    """Remove every photo of a duplicate group from the store."""
    removed = store.remove_filenames(group)
    logger.info("Deleted %d photos from duplicate group", len(removed))
    return removed


def prune_clusters(
    clusters: list[DuplicateCluster],
    removed_filenames: Iterable[str],
) -> list[DuplicateCluster]:
    """Drop clusters that mention any removed filename."""
    removed = set(removed_filenames)
    return [c for c in clusters if not any(name in removed for name in c.members())]
