"""One culling session: the collection, its workflow and every user-facing operation."""

import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path

from photo_culling.collection.albums import (
    AlbumRegistry,
    photos_to_save,
    validate_album_save,
)
from photo_culling.collection.store import PhotoStore
from photo_culling.collection.upload import load_photos, preview_from_base64, scan_directory
from photo_culling.config import CULLING_USER_ID, PERSON_GROUPING_DELAY
from photo_culling.errors import CullingError, PreconditionError, ValidationError
from photo_culling.models import (
    Album,
    AnalysisProgress,
    CategoryFilter,
    ColorLabel,
    CullingMode,
    DuplicateCluster,
    EventType,
    FilterState,
    PersonGroup,
    Photo,
    WorkflowStage,
)
from photo_culling.notifications import Notifier
from photo_culling.orchestrator import AnalysisOrchestrator
from photo_culling.review.duplicates import (
    apply_clusters,
    cluster_for,
    delete_duplicate_group,
    find_duplicate_clusters,
    mark_duplicate_keep,
    prune_clusters,
)
from photo_culling.review.filters import compute_filtered_view
from photo_culling.review.people import group_people, has_faces
from photo_culling.service.analysis import AnalysisService, HttpAnalysisService
from photo_culling.service.client import BatchMode, CullingServiceClient
from photo_culling.service.culling import ScoreCullingService
from photo_culling.workflow import WorkflowController

logger = logging.getLogger(__name__)


def default_services(client: CullingServiceClient) -> dict[CullingMode, AnalysisService]:
    return {
        CullingMode.FAST: HttpAnalysisService(client),
        CullingMode.DEEP: HttpAnalysisService(client, deep=True),
    }


class CullingSession:
    """Facade over the store, workflow, orchestrator and review views.

    Operations that can fail report the error through ``notifier`` and return
    a falsy value instead of raising.
    """

    def __init__(
        self,
        client: CullingServiceClient | None = None,
        user_id: str | None = None,
        services: Mapping[CullingMode, AnalysisService] | None = None,
        culling_service: ScoreCullingService | None = None,
        notifier: Notifier | None = None,
        follow_up_delay: float = PERSON_GROUPING_DELAY,
    ) -> None:
        self.client = client or CullingServiceClient()
        self.user_id = user_id if user_id is not None else (CULLING_USER_ID or None)
        self.store = PhotoStore()
        self.workflow = WorkflowController()
        self.filters = FilterState()
        self.notifier = notifier or Notifier()
        self.orchestrator = AnalysisOrchestrator(
            self.store,
            self.workflow,
            services if services is not None else default_services(self.client),
            follow_up_delay=follow_up_delay,
        )
        self.culling_service = culling_service or ScoreCullingService()
        self.albums = AlbumRegistry(self.store)
        self.duplicate_clusters: list[DuplicateCluster] = []
        self.person_groups: list[PersonGroup] = []

    @property
    def stage(self) -> WorkflowStage:
        return self.workflow.stage

    @property
    def progress(self) -> AnalysisProgress:
        return self.orchestrator.progress

    @property
    def photos(self) -> list[Photo]:
        return self.store.photos()

    # -- upload -------------------------------------------------------------

    def upload_files(self, paths: Iterable[Path]) -> list[Photo]:
        """Add files to the collection. The first upload moves the workflow to configure.

        Uploads are refused while an analysis batch is running.
        """
        if self.workflow.stage == WorkflowStage.ANALYZING:
            self.notifier.report(
                ValidationError("Analysis in progress; upload more photos once it finishes")
            )
            return []
        photos, rejected = load_photos(paths)
        for path in rejected:
            self.notifier.warning(f"Unsupported file type: {Path(path).name}")
        if not photos:
            return []

        self.store.append(photos)
        if self.workflow.stage == WorkflowStage.UPLOAD:
            self.workflow.transition(WorkflowStage.CONFIGURE)
        raw_count = sum(1 for p in photos if p.tags.has("raw"))
        message = f"Uploaded {len(photos)} photos"
        if raw_count:
            message += f" ({raw_count} RAW, previews pending)"
        self.notifier.success(message)
        return photos

    def upload_directory(self, directory: Path) -> list[Photo]:
        try:
            paths = scan_directory(directory)
        except ValidationError as e:
            self.notifier.report(e)
            return []
        if not paths:
            self.notifier.info(f"No supported images found in {directory}")
            return []
        return self.upload_files(paths)

    def delete_photos(self, photo_ids: Iterable[str]) -> int:
        removed = [p for p in (self.store.remove(pid) for pid in photo_ids) if p is not None]
        if removed:
            self.duplicate_clusters = prune_clusters(
                self.duplicate_clusters, [p.filename for p in removed]
            )
        return len(removed)

    # -- per-photo edits ----------------------------------------------------

    def cull_photo(self, photo_id: str) -> Photo | None:
        return self.store.cull(photo_id)

    def toggle_selection(self, photo_id: str) -> Photo | None:
        return self.store.toggle_selection(photo_id)

    def select_all(self) -> None:
        self.store.select_all()

    def deselect_all(self) -> None:
        self.store.deselect_all()

    def update_score(self, photo_id: str, score: float) -> Photo | None:
        return self.store.update_score(photo_id, score)

    def set_color_label(self, photo_id: str, label: ColorLabel | str | None) -> Photo | None:
        try:
            color = ColorLabel(label) if label else None
        except ValueError:
            self.notifier.report(ValidationError(f"Unknown color label: {label}"))
            return None
        return self.store.set_color_label(photo_id, color)

    def mark_keep(self, photo_id: str) -> Photo | None:
        return self.store.mark_keep(photo_id)

    def mark_reject(self, photo_id: str) -> Photo | None:
        return self.store.mark_reject(photo_id)

    # -- workflow -----------------------------------------------------------

    def configure(
        self,
        culling_mode: CullingMode | str | None = None,
        event_type: EventType | str | None = None,
    ) -> bool:
        try:
            self.workflow.configure(culling_mode, event_type)
        except CullingError as e:
            self.notifier.report(e)
            return False
        return True

    def go_to(self, stage: WorkflowStage | str) -> bool:
        """Move to another stage, e.g. back from review to configure."""
        try:
            self.workflow.transition(stage)
        except CullingError as e:
            self.notifier.report(e)
            return False
        return True

    async def start_analysis(
        self,
        album_name: str | None = None,
        on_progress: Callable[[AnalysisProgress], None] | None = None,
    ) -> bool:
        """Run the configured analysis over the whole collection.

        Manual mode skips the analysis service and goes straight to review.
        A failed album creation only warns; analysis continues unscoped.
        """
        try:
            if not len(self.store):
                raise PreconditionError("No photos to analyze")
            self.workflow.validate_start(self.user_id)
            if self.workflow.culling_mode == CullingMode.MANUAL:
                self.workflow.begin_analysis(self.user_id)
                self.workflow.complete_analysis()
                self.orchestrator.schedule_follow_up(self.group_people)
                self.notifier.info("Manual culling: review your photos")
                return True
        except CullingError as e:
            self.notifier.report(e)
            return False

        album_id = await self._create_remote_album(album_name) if album_name else None

        try:
            analyzed = await self.orchestrator.run(
                self.user_id,
                album_id=album_id,
                on_progress=on_progress,
                on_complete=self.group_people,
            )
        except CullingError as e:
            self.notifier.report(e)
            return False
        if not analyzed:
            return False

        if album_id:
            self.albums.add_photos(album_id, [p.id for p in analyzed])
        self.notifier.success(f"Analyzed {len(analyzed)} photos")
        return True

    async def _create_remote_album(self, name: str) -> str | None:
        try:
            album_id = await self.client.create_album(
                self.user_id, name, str(self.workflow.event_type)
            )
            self.albums.create(name, album_id=album_id)
        except CullingError as e:
            self.notifier.warning(f"Could not create album, continuing without it: {e}")
            return None
        return album_id

    def reset_workflow(self) -> None:
        """Drop the collection and every derived view and return to upload."""
        self.orchestrator.reset()
        self.store.clear()
        self.duplicate_clusters = []
        self.person_groups = []
        self.filters = FilterState()
        self.workflow.reset()

    # -- duplicates ---------------------------------------------------------

    async def find_duplicates(self) -> list[DuplicateCluster]:
        try:
            clusters = await find_duplicate_clusters(self.client, self.store.photos())
        except CullingError as e:
            self.notifier.report(e)
            return []
        apply_clusters(self.store, clusters)
        self.duplicate_clusters = clusters
        if clusters:
            self.notifier.success(f"Found {len(clusters)} groups of duplicates")
        else:
            self.notifier.info("No duplicates found")
        return clusters

    def mark_duplicate_keep(self, keep_filename: str, group: Iterable[str] | None = None) -> bool:
        if group is None:
            cluster = cluster_for(keep_filename, self.duplicate_clusters)
            if cluster is None:
                self.notifier.warning(f"{keep_filename} is not in a duplicate group")
                return False
            group = cluster.members()
        mark_duplicate_keep(self.store, keep_filename, group)
        return True

    def delete_duplicate_group(self, group: Iterable[str]) -> int:
        group = list(group)
        removed = delete_duplicate_group(self.store, group)
        self.duplicate_clusters = prune_clusters(self.duplicate_clusters, group)
        if removed:
            self.notifier.success(f"Deleted {len(removed)} duplicate photos")
        return len(removed)

    # -- people -------------------------------------------------------------

    def group_people(self) -> list[PersonGroup]:
        photos = self.store.photos()
        if not has_faces(photos):
            self.person_groups = []
            self.notifier.info("No faces detected in the analyzed photos")
            return []
        self.person_groups = group_people(photos)
        logger.info("Grouped faces into %d people", len(self.person_groups))
        return self.person_groups

    # -- filters ------------------------------------------------------------

    def set_category_filter(self, category: CategoryFilter | str) -> None:
        self.filters.category = CategoryFilter.parse(category)

    def set_caption_filter(self, text: str) -> None:
        self.filters.caption = text or ""

    def set_star_range(self, min_stars: float | None, max_stars: float | None) -> None:
        self.filters.min_stars = min_stars
        self.filters.max_stars = max_stars

    def set_person_filter(self, group_id: str | None) -> None:
        self.filters.person_group = group_id

    def set_album_filter(self, album_id: str | None) -> None:
        self.filters.album_id = album_id

    def clear_filters(self) -> None:
        self.filters = FilterState()

    def filtered_photos(self) -> list[Photo]:
        return compute_filtered_view(self.store.photos(), self.filters)

    # -- batch operations ---------------------------------------------------

    async def cull_all(self) -> int:
        """Tag every low-scoring photo as culled. Returns how many were newly culled."""
        try:
            culled = await self.culling_service.cull(self.store.photos())
        except CullingError as e:
            self.notifier.report(e)
            return 0
        newly = [
            p.id
            for p in culled
            if p.tags.has("culled")
            and (current := self.store.get(p.id)) is not None
            and not current.tags.has("culled")
        ]
        for photo_id in newly:
            self.store.cull(photo_id)
        self.notifier.success(f"Culled {len(newly)} photos")
        return len(newly)

    async def batch_process(self, mode: BatchMode | str) -> int:
        """Auto-correct or auto-fix the selected photos, replacing their previews."""
        try:
            mode = BatchMode(mode)
        except ValueError:
            self.notifier.warning(f"Unknown batch mode: {mode}")
            return 0
        selected = self.store.selected()
        try:
            if not selected:
                raise PreconditionError("Please select photos to process")
            results = await self.client.batch_process(selected, mode)
            by_filename = {p.filename: p for p in selected}
            updated = 0
            for result in results:
                photo = by_filename.get(result.filename)
                if photo is None:
                    continue
                self.store.update_preview(photo.id, preview_from_base64(result.image_base64))
                updated += 1
        except CullingError as e:
            self.notifier.report(e)
            return 0
        self.notifier.success(f"Batch {mode} complete!")
        return updated

    # -- albums -------------------------------------------------------------

    async def save_album(self, title: str) -> bool:
        """Persist the approved photos as an album with their analysis records."""
        try:
            event = str(self.workflow.event_type) if self.workflow.event_type else None
            title = validate_album_save(title, self.user_id, event)
            photos = photos_to_save(self.store.photos())
            await self.client.save_album(self.user_id, title, event, photos)
        except CullingError as e:
            self.notifier.report(e)
            return False
        self.notifier.success(f"Album '{title}' saved with {len(photos)} photos")
        return True

    def create_album(self, name: str, description: str | None = None) -> Album | None:
        try:
            return self.albums.create(name, description)
        except CullingError as e:
            self.notifier.report(e)
            return None

    def update_album(
        self, album_id: str, name: str | None = None, description: str | None = None
    ) -> Album | None:
        try:
            return self.albums.update(album_id, name, description)
        except CullingError as e:
            self.notifier.report(e)
            return None

    def delete_album(self, album_id: str) -> bool:
        try:
            self.albums.delete(album_id)
        except CullingError as e:
            self.notifier.report(e)
            return False
        if self.filters.album_id == album_id:
            self.filters.album_id = None
        return True

    def add_to_album(self, album_id: str, photo_ids: Iterable[str]) -> bool:
        try:
            self.albums.add_photos(album_id, photo_ids)
        except CullingError as e:
            self.notifier.report(e)
            return False
        return True

    def remove_from_album(self, album_id: str, photo_ids: Iterable[str]) -> bool:
        try:
            self.albums.remove_photos(album_id, photo_ids)
        except CullingError as e:
            self.notifier.report(e)
            return False
        return True
