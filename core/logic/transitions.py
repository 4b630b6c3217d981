"""
State Transition Logic for Granules and Executions.

Contains business rules for valid granule status transitions.
Separated from data models for clean architecture.

Exports:
    can_granule_transition: Check if a granule transition is valid
    validate_granule_transition: Raise InvalidTransitionError if not
    get_execution_ancestry: Walk parent_arn links from an execution

Dependencies:
    core.models.enums: GranuleStatus, TransitionTrigger
"""

from typing import Callable, Dict, List, Optional

from exceptions import InvalidTransitionError
from ..models.enums import GranuleStatus, TransitionTrigger
from ..models.execution import ExecutionRecord


_ALL = [GranuleStatus.RUNNING, GranuleStatus.COMPLETED, GranuleStatus.FAILED]

# None is "no record yet"
_TRANSITIONS: Dict[TransitionTrigger, Dict[Optional[GranuleStatus], List[GranuleStatus]]] = {
    # Report from the execution that currently owns the granule
    TransitionTrigger.WORKFLOW_EVENT: {
        None: _ALL,
        GranuleStatus.RUNNING: [GranuleStatus.COMPLETED, GranuleStatus.FAILED],
        GranuleStatus.COMPLETED: [],  # Terminal state
        GranuleStatus.FAILED: [],  # Terminal state
    },
    # Report from an execution the granule has not seen takes ownership
    TransitionTrigger.NEW_EXECUTION: {
        None: _ALL,
        GranuleStatus.RUNNING: _ALL,
        GranuleStatus.COMPLETED: _ALL,
        GranuleStatus.FAILED: _ALL,
    },
    # API actions restart finished granules only
    TransitionTrigger.REINGEST: {
        None: [],
        GranuleStatus.RUNNING: [],
        GranuleStatus.COMPLETED: [GranuleStatus.RUNNING],
        GranuleStatus.FAILED: [GranuleStatus.RUNNING],
    },
    TransitionTrigger.APPLY_WORKFLOW: {
        None: [],
        GranuleStatus.RUNNING: [],
        GranuleStatus.COMPLETED: [GranuleStatus.RUNNING],
        GranuleStatus.FAILED: [GranuleStatus.RUNNING],
    },
}

# Triggers for which a same-status report is a no-op rather than a restart
_IDEMPOTENT_TRIGGERS = {TransitionTrigger.WORKFLOW_EVENT, TransitionTrigger.NEW_EXECUTION}


def can_granule_transition(
    current: Optional[GranuleStatus],
    target: GranuleStatus,
    trigger: TransitionTrigger
) -> bool:
    """
    Check if a granule can transition from current to target status.

    Args:
        current: Current granule status, None if no record exists
        target: Target granule status
        trigger: What is requesting the change

    Returns:
        True if transition is valid, False otherwise
    """
    # Same status is allowed (no-op) for workflow reports
    if current == target and trigger in _IDEMPOTENT_TRIGGERS:
        return True

    return target in _TRANSITIONS.get(trigger, {}).get(current, [])


def validate_granule_transition(
    granule_id: str,
    current: Optional[GranuleStatus],
    target: GranuleStatus,
    trigger: TransitionTrigger
) -> None:
    """
    Raise if the transition is not allowed.

    Raises:
        InvalidTransitionError: When can_granule_transition is False
    """
    if not can_granule_transition(current, target, trigger):
        raise InvalidTransitionError(
            granule_id,
            current.value if current else None,
            target.value,
            trigger.value
        )


def get_execution_ancestry(
    arn: str,
    lookup: Callable[[str], Optional[ExecutionRecord]],
    max_depth: int = 50
) -> List[ExecutionRecord]:
    """
    Follow parent_arn links from arn up to the root execution.

    Stops at a missing record, a repeated arn (cycle) or max_depth.

    Args:
        arn: Execution to start from (included first if found)
        lookup: Returns the ExecutionRecord for an arn or None
        max_depth: Hard limit on chain length

    Returns:
        Executions ordered child first, root last
    """
    chain: List[ExecutionRecord] = []
    seen = set()
    current: Optional[str] = arn
    while current and current not in seen and len(chain) < max_depth:
        seen.add(current)
        record = lookup(current)
        if record is None:
            break
        chain.append(record)
        current = record.parent_arn
    return chain
