"""Error taxonomy for the culling workflow."""


class CullingError(Exception):
    """Base class for errors reported to the user as notifications."""


class ValidationError(CullingError, ValueError):
    """A user-supplied setting is missing or invalid. No state changes."""


class InvalidTransitionError(ValidationError):
    """The requested workflow stage change is not allowed from the current stage."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move from '{current}' to '{target}'")
        self.current = current
        self.target = target


class PreconditionError(CullingError):
    """The operation has nothing to work on and was skipped."""


class ExternalServiceError(CullingError, RuntimeError):
    """A call to an external service failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
