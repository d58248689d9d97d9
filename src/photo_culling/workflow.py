"""Workflow stage state machine."""

import logging

from photo_culling.errors import InvalidTransitionError, ValidationError
from photo_culling.models import CullingMode, EventType, WorkflowStage

logger = logging.getLogger(__name__)

Stage = WorkflowStage

TRANSITIONS: dict[WorkflowStage, frozenset[WorkflowStage]] = {
    Stage.UPLOAD: frozenset({Stage.CONFIGURE}),
    Stage.CONFIGURE: frozenset({Stage.UPLOAD, Stage.ANALYZING}),
    Stage.ANALYZING: frozenset({Stage.REVIEW, Stage.UPLOAD}),
    Stage.REVIEW: frozenset({Stage.CONFIGURE, Stage.FACE_RETOUCH, Stage.AI_EDIT}),
    Stage.FACE_RETOUCH: frozenset({Stage.REVIEW}),
    Stage.AI_EDIT: frozenset({Stage.REVIEW}),
}


class WorkflowController:
    """Tracks the active pipeline stage and the analysis settings chosen for it."""

    def __init__(self) -> None:
        self.stage = Stage.UPLOAD
        self.culling_mode: CullingMode | None = None
        self.event_type: EventType | None = None

    def can_transition(self, target: WorkflowStage) -> bool:
        return target in TRANSITIONS[self.stage]

    def transition(self, target: WorkflowStage | str) -> None:
        """Move to ``target``; raises InvalidTransitionError if the move is not legal."""
        try:
            target = Stage(target)
        except ValueError:
            raise ValidationError(f"Unknown workflow stage: {target}") from None
        if not self.can_transition(target):
            raise InvalidTransitionError(self.stage, target)
        logger.info("Workflow stage %s -> %s", self.stage, target)
        self.stage = target

    def configure(
        self,
        culling_mode: CullingMode | str | None = None,
        event_type: EventType | str | None = None,
    ) -> None:
        """Choose the culling mode and event type. Both may be changed until analysis starts."""
        try:
            mode = CullingMode(culling_mode) if culling_mode is not None else self.culling_mode
            event = EventType(event_type) if event_type is not None else self.event_type
        except ValueError as e:
            raise ValidationError(str(e)) from None
        self.culling_mode = mode
        self.event_type = event

    def validate_start(self, user_id: str | None) -> None:
        """Check the preconditions for configure -> analyzing."""
        if self.culling_mode is None:
            raise ValidationError("Please select a culling mode first")
        if self.culling_mode != CullingMode.MANUAL:
            if self.event_type is None:
                raise ValidationError("Please select an event type first")
            if not user_id:
                raise ValidationError("Please sign in before starting AI analysis")

    def begin_analysis(self, user_id: str | None) -> None:
        if self.stage != Stage.CONFIGURE:
            raise InvalidTransitionError(self.stage, Stage.ANALYZING)
        self.validate_start(user_id)
        self.transition(Stage.ANALYZING)

    def complete_analysis(self) -> None:
        self.transition(Stage.REVIEW)

    def fail_analysis(self) -> None:
        """Leave the analyzing stage after a failed batch."""
        self.transition(Stage.UPLOAD)

    def reset(self) -> None:
        """Return to upload from any stage and forget the analysis settings."""
        logger.info("Workflow reset from %s", self.stage)
        self.stage = Stage.UPLOAD
        self.culling_mode = None
        self.event_type = None
