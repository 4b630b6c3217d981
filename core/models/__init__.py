"""
Core Data Models Package.

Contains pure data structures without business logic.
All business logic is in the core.logic package.

Exports:
    GranuleRecord, GranuleFile: Granule records
    CollectionRecord: Collection configuration
    ExecutionRecord, PdrRecord, PdrStats: Workflow tracking records
    FileLocation, DestinationRule, PlannedMove: Move planning
    Action variants and parse_action: PUT /granules bodies
    Workflow messages: start, event, bulk
    Status enums
"""

# Enums
from .enums import (
    GranuleStatus,
    ExecutionStatus,
    PdrStatus,
    DuplicateHandling,
    FileType,
    GranuleAction,
    MetadataFormat,
    TransitionTrigger
)

# Location models
from .destination import (
    FileLocation,
    DestinationRule,
    PlannedMove
)

# Record models
from .granule import GranuleFile, GranuleRecord
from .collection import (
    CollectionRecord,
    construct_collection_id,
    deconstruct_collection_id
)
from .execution import ExecutionRecord, PdrRecord, PdrStats

# Request models
from .actions import (
    ReingestAction,
    ApplyWorkflowAction,
    MoveAction,
    RemoveFromCmrAction,
    GranuleActionRequest,
    BulkGranulesRequest,
    parse_action,
    MISSING_ACTION_MESSAGE,
    UNSUPPORTED_ACTION_MESSAGE
)

# Workflow messages
from .workflow import (
    WorkflowStartMessage,
    EventGranule,
    WorkflowExecutionEvent,
    AsyncOperationRecord,
    BulkOperationMessage
)

# Result models
from .results import ActionResult, MoveResult

__all__ = [
    # Enums
    'GranuleStatus',
    'ExecutionStatus',
    'PdrStatus',
    'DuplicateHandling',
    'FileType',
    'GranuleAction',
    'MetadataFormat',
    'TransitionTrigger',

    # Locations
    'FileLocation',
    'DestinationRule',
    'PlannedMove',

    # Records
    'GranuleFile',
    'GranuleRecord',
    'CollectionRecord',
    'construct_collection_id',
    'deconstruct_collection_id',
    'ExecutionRecord',
    'PdrRecord',
    'PdrStats',

    # Requests
    'ReingestAction',
    'ApplyWorkflowAction',
    'MoveAction',
    'RemoveFromCmrAction',
    'GranuleActionRequest',
    'BulkGranulesRequest',
    'parse_action',
    'MISSING_ACTION_MESSAGE',
    'UNSUPPORTED_ACTION_MESSAGE',

    # Workflow
    'WorkflowStartMessage',
    'EventGranule',
    'WorkflowExecutionEvent',
    'AsyncOperationRecord',
    'BulkOperationMessage',

    # Results
    'ActionResult',
    'MoveResult'
]
