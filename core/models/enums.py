"""
Pure Enumeration Types for Granule Operations.

Defines valid states for granules, executions and PDRs plus the closed
sets of file types, actions and metadata formats.
No business logic - pure type definitions only.

Exports:
    GranuleStatus: Granule lifecycle state
    ExecutionStatus: Workflow execution state
    PdrStatus: Aggregate PDR state
    DuplicateHandling: Collection overwrite policy
    FileType: Granule file role
    GranuleAction: PUT /granules/{id} action names
    MetadataFormat: CMR metadata document format
    TransitionTrigger: What caused a granule status change
"""

from enum import Enum


class GranuleStatus(str, Enum):
    """
    Valid status values for granules.

    State transitions:
    - (none) -> RUNNING (workflow start creates the record)
    - RUNNING -> COMPLETED (execution succeeded)
    - RUNNING -> FAILED (execution failed, error populated)
    - COMPLETED|FAILED -> RUNNING (reingest, applyWorkflow or a new execution)
    """

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ExecutionStatus(str, Enum):
    """Valid status values for workflow executions."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class PdrStatus(str, Enum):
    """
    Aggregate status of the granules parsed from one PDR.

    Terminal only once no granule remains running.
    """

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class DuplicateHandling(str, Enum):
    """
    Collection policy for files that already exist at ingest time.

    Only REPLACE allows reingest to overwrite without a warning.
    """

    REPLACE = "replace"
    ERROR = "error"
    SKIP = "skip"
    VERSION = "version"


class FileType(str, Enum):
    """Role of a file within its granule."""

    DATA = "data"
    METADATA = "metadata"
    BROWSE = "browse"
    QA = "qa"


class GranuleAction(str, Enum):
    """Actions accepted by PUT /granules/{granuleId}."""

    APPLY_WORKFLOW = "applyWorkflow"
    MOVE = "move"
    REINGEST = "reingest"
    REMOVE_FROM_CMR = "removeFromCmr"


class MetadataFormat(str, Enum):
    """
    CMR metadata document formats.

    ECHO10 is XML with OnlineAccessURLs; UMM-G is JSON with RelatedUrls.
    """

    ECHO10_XML = "echo10"
    UMMG_JSON = "umm_g"


class TransitionTrigger(str, Enum):
    """
    Source of a requested granule status change.

    The transition table in core.logic.transitions is keyed by trigger.
    """

    WORKFLOW_EVENT = "workflow_event"  # Execution status report for the current execution
    NEW_EXECUTION = "new_execution"  # Report naming an execution the granule has not seen
    REINGEST = "reingest"  # PUT action=reingest
    APPLY_WORKFLOW = "apply_workflow"  # PUT action=applyWorkflow
