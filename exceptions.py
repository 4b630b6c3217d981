"""
Custom Exception Hierarchy

Distinguishes between:
1. Contract Violations (programming bugs that need fixing)
2. Business Logic Failures (expected runtime issues)

This separation ensures bugs are found quickly while the system
remains robust to expected failures. Every BusinessLogicError is mapped
to an HTTP status by the trigger layer (see core/errors.py).

Exports:
    ContractViolationError, BusinessLogicError, ValidationError,
    ResourceNotFoundError, GranuleConflictError, InvalidTransitionError,
    GranulePublishedError, StorageError, DatabaseError, MoveError,
    CatalogError, WorkflowLaunchError, ConfigurationError
"""

from typing import List, Optional, Sequence


class ContractViolationError(TypeError):
    """
    Raised when component contracts are violated (programming bugs).

    These indicate:
    - Wrong types passed to functions
    - Interface contract violations

    These should NEVER be caught and handled - they indicate bugs
    that need to be fixed in the code.

    Examples:
        - Repository receives string instead of GranuleStatus enum
        - Action dispatcher receives an unknown action model
    """
    pass


class BusinessLogicError(Exception):
    """
    Base class for expected runtime business logic failures.

    These are normal failures that occur during system operation
    and should be handled gracefully without crashing.

    Subclasses represent specific categories of business failures.
    """
    pass


class ValidationError(BusinessLogicError):
    """
    Client-caused validation failure (HTTP 400).

    Note: This is different from ContractViolationError.
    This is for request and business rule validation, not type contracts.

    Examples:
        - Action missing or not supported
        - applyWorkflow without a workflow name
        - A granule file with no applicable destination rule
        - Malformed collection id
    """
    pass


class ResourceNotFoundError(BusinessLogicError):
    """
    Requested resource does not exist (HTTP 404).

    Examples:
        - Granule id not in the record store
        - Collection referenced by a granule is gone
        - Execution record missing for reingest
    """
    pass


class GranuleConflictError(BusinessLogicError):
    """
    A move would overwrite objects already present at the destination.

    Raised before any file has been touched, so the granule record and
    the object store are both unchanged.
    """

    def __init__(self, file_names: Sequence[str]):
        self.file_names: List[str] = list(file_names)
        super().__init__(
            "Cannot move granule because the following files would be "
            f"overwritten at the destination location: {', '.join(self.file_names)}. "
            "Delete the existing files or reingest the source files."
        )


class InvalidTransitionError(BusinessLogicError):
    """
    Granule lifecycle transition not allowed from the current status.

    Examples:
        - reingest of a granule whose workflow is still running
    """

    def __init__(self, granule_id: str, current: Optional[str], target: str, trigger: str):
        self.granule_id = granule_id
        self.current = current
        self.target = target
        self.trigger = trigger
        super().__init__(
            f"Granule {granule_id} cannot transition from {current} to {target} ({trigger})"
        )


class GranulePublishedError(BusinessLogicError):
    """Delete refused because the granule is still published to CMR."""

    def __init__(self, granule_id: str):
        self.granule_id = granule_id
        super().__init__(
            "You cannot delete a granule that is published to CMR. Remove it from CMR first"
        )


class StorageError(BusinessLogicError):
    """
    Object store operation failures.

    Examples:
        - Blob copy failed
        - Container unreachable
        - Authentication failure
    """
    pass


class DatabaseError(BusinessLogicError):
    """
    Database operation failures.

    Examples:
        - Connection lost
        - Deadlock detected
        - Query timeout
    """
    pass


class MoveError(BusinessLogicError):
    """
    Failure inside the granule move orchestrator.

    Carries the stage that failed and the partial progress so the caller
    can retry. Already moved files are not rolled back; a retry treats
    them as no-ops because their location already equals the target.
    """

    STAGES = ("resolve", "check", "move", "rewrite", "persist")

    def __init__(
        self,
        stage: str,
        cause: Optional[BaseException] = None,
        moved: Optional[Sequence[str]] = None,
        failed: Optional[Sequence[str]] = None,
    ):
        self.stage = stage
        self.cause = cause
        self.moved: List[str] = list(moved or [])
        self.failed: List[str] = list(failed or [])
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Granule move failed during {stage}{detail} "
            f"(moved={self.moved}, failed={self.failed})"
        )


class CatalogError(BusinessLogicError):
    """
    CMR publish, unpublish or metadata rewrite failure.

    Reported separately from MoveError because files may already be at
    their new location while the catalog still points at the old one.
    """
    pass


class WorkflowLaunchError(BusinessLogicError):
    """
    Workflow or bulk operation could not be started (HTTP 503).

    Examples:
        - Service Bus unavailable
        - Message send retries exhausted
    """
    pass


class ConfigurationError(Exception):
    """
    System configuration error.

    These are typically fatal and indicate misconfiguration
    that prevents the system from operating.

    Examples:
        - Missing required environment variables
        - Invalid connection strings
    """
    pass
