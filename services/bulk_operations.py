"""
Bulk Granule Operations.

POST /granules/bulk: validate the request, create an async operation
handle and queue the work for the bulk worker. The request returns as
soon as the message is accepted.

Exports:
    BulkOperationService
"""

from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from config import MetricsConfig
from core.models import AsyncOperationRecord, BulkGranulesRequest, BulkOperationMessage
from exceptions import ValidationError, WorkflowLaunchError
from interfaces.repository import IWorkflowLauncher
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "BulkOperationService")


class BulkOperationService:
    """Starts asynchronous bulk workflow runs."""

    def __init__(self, launcher: IWorkflowLauncher, metrics: MetricsConfig):
        self.launcher = launcher
        self.metrics = metrics

    def validate(self, body: Optional[Dict[str, Any]]) -> BulkGranulesRequest:
        """
        Raises:
            ValidationError: With the client message for the first problem found
        """
        try:
            request = BulkGranulesRequest.model_validate(body or {})
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid bulk request: {e.errors()[0]['msg']}") from e

        if not request.workflow_name:
            raise ValidationError("workflowName is required.")
        if not request.ids and not request.query:
            raise ValidationError("One of ids or query is required")
        if request.query and not self.metrics.is_configured:
            raise ValidationError("ELK Metrics stack not configured")
        if request.query and not request.index:
            raise ValidationError("Index is required if query is sent")
        return request

    def submit(self, body: Optional[Dict[str, Any]]) -> AsyncOperationRecord:
        """
        Validate and queue a bulk operation.

        Raises:
            ValidationError: Bad request
            WorkflowLaunchError: "Failed to run bulk operation: ..." when the
                message could not be queued
        """
        request = self.validate(body)

        if request.query:
            description = f"Bulk run {request.workflow_name} on {request.query.get('size')} granules"
        else:
            description = f"Bulk run {request.workflow_name} on {len(request.ids)} granules"

        operation = AsyncOperationRecord(description=description)
        message = BulkOperationMessage(
            async_operation_id=operation.id,
            workflow_name=request.workflow_name,
            ids=request.ids,
            query=request.query,
            index=request.index,
            queue_name=request.queue_name,
            meta=request.meta
        )

        try:
            self.launcher.submit_bulk_operation(message)
        except WorkflowLaunchError as e:
            logger.error(f"Bulk operation {operation.id} could not be queued: {e}")
            raise WorkflowLaunchError(f"Failed to run bulk operation: {e}") from e

        logger.info(f"Queued bulk operation {operation.id}: {description}")
        return operation
