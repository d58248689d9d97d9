"""Bulk culling by score threshold."""

from photo_culling.config import CULL_SCORE_THRESHOLD
from photo_culling.errors import PreconditionError
from photo_culling.models import Photo


class ScoreCullingService:
    """Marks scored photos below a threshold as culled. Non-destructive."""

    def __init__(self, threshold: float = CULL_SCORE_THRESHOLD) -> None:
        self.threshold = threshold

    async def cull(self, photos: list[Photo]) -> list[Photo]:
        if not photos:
            raise PreconditionError("No photos to cull")
        return [
            p.with_tag("culled") if p.is_analyzed and p.ai_score < self.threshold else p
            for p in photos
        ]
