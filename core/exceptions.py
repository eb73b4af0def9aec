"""
Error types raised by the BOQ engine and its persistence layer.
"""
from typing import Optional


class BOQError(Exception):
    """Base class for every BOQ engine error."""


class VersionLocked(BOQError):
    """Mutation attempted on a version that has left DRAFT."""

    def __init__(self, version_id: Optional[int], status: str, action: str = "modify"):
        self.version_id = version_id
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} BOQ version {version_id}: status is {status}")


class AlreadyApproved(BOQError):
    """Approve called on a version that is already approved (or final)."""

    def __init__(self, version_id: Optional[int], status: str):
        self.version_id = version_id
        self.status = status
        super().__init__(f"BOQ version {version_id} is already {status}")


class InvalidTransition(BOQError):
    """Status change that the lifecycle does not allow."""

    def __init__(self, version_id: Optional[int], current: str, target: str):
        self.version_id = version_id
        self.current = current
        self.target = target
        super().__init__(f"BOQ version {version_id} cannot move from {current} to {target}")


class InvalidAmount(BOQError, ValueError):
    """Margin percent or unit rate that is not a finite number >= 0."""

    def __init__(self, field: str, value):
        self.field = field
        self.value = value
        super().__init__(f"{field} must be a finite number >= 0, got {value!r}")


class VersionNotFound(BOQError):
    def __init__(self, version_id):
        self.version_id = version_id
        super().__init__(f"BOQ version {version_id} not found")


class LineItemNotFound(BOQError):
    def __init__(self, item_id, version_id: Optional[int] = None):
        self.item_id = item_id
        self.version_id = version_id
        super().__init__(f"BOQ line item {item_id} not found")


class ProjectNotFound(BOQError):
    def __init__(self, project_id):
        self.project_id = project_id
        super().__init__(f"Project {project_id} not found")


class DuplicateVersion(BOQError):
    """Another writer already stored this version number or request key."""

    def __init__(self, project_id, version_number: int, request_key: Optional[str] = None):
        self.project_id = project_id
        self.version_number = version_number
        self.request_key = request_key
        super().__init__(
            f"Project {project_id} already has BOQ v{version_number} or request key {request_key!r}"
        )


class BackendUnavailable(BOQError):
    """
    The backing store could not be reached.

    The engine never retries; ``retryable`` tells the caller it may.
    """

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        self.retryable = True
        super().__init__(f"Backend unavailable during {operation}: {cause}")
