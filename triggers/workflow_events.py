"""
Workflow Event Queue Handler.

Consumes execution status reports from the workflow events queue and
hands them to GranuleLifecycle.handle_execution_event.

Malformed messages raise so Service Bus retries and then dead-letters
them; illegal granule transitions inside a valid report are skipped by
the lifecycle and do not fail the message.

Exports:
    process_workflow_event
"""

import uuid
from typing import Any, Dict, Union

from core.models import WorkflowExecutionEvent
from services import GranuleLifecycle
from util_logger import LoggerFactory, ComponentType, log_exceptions

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "WorkflowEventTrigger")


@log_exceptions(logger=logger)
def process_workflow_event(lifecycle: GranuleLifecycle, body: Union[bytes, str]) -> Dict[str, Any]:
    """
    Parse and apply one execution report.

    Args:
        lifecycle: Granule lifecycle service
        body: Raw message body (JSON)

    Returns:
        Summary from handle_execution_event

    Raises:
        pydantic.ValidationError: Body is not a valid execution report
    """
    correlation_id = str(uuid.uuid4())[:8]
    if isinstance(body, bytes):
        body = body.decode("utf-8")
    logger.info(f"[{correlation_id}] Workflow event received ({len(body)} bytes)")

    event = WorkflowExecutionEvent.model_validate_json(body)
    summary = lifecycle.handle_execution_event(event)
    logger.info(
        f"[{correlation_id}] Execution {event.execution_arn}: "
        f"{len(summary['updated'])} granules updated, {len(summary['skipped'])} skipped"
    )
    return summary
