"""
Workflow Message Models.

Messages exchanged with the external workflow runtime over Service Bus:
start requests going out, execution status reports coming in, and the
asynchronous operation record returned for bulk requests.

Exports:
    WorkflowStartMessage: Request to start a workflow for one granule
    EventGranule: Granule snapshot carried by an execution report
    WorkflowExecutionEvent: Execution status report
    AsyncOperationRecord: Handle for an asynchronous bulk operation
    BulkOperationMessage: Queued bulk operation
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import ExecutionStatus
from .granule import GranuleFile


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowStartMessage(BaseModel):
    """Start request sent to the workflow runtime."""
    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="messageId")
    workflow_name: str = Field(..., min_length=1, alias="workflowName")
    granule_id: str = Field(..., alias="granuleId")
    collection_id: str = Field(..., alias="collectionId")
    reingest: bool = Field(default=False)
    parent_execution_arn: Optional[str] = Field(default=None, alias="parentExecutionArn")
    payload: Dict[str, Any] = Field(default_factory=dict)
    meta: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utc_now, alias="createdAt")


class EventGranule(BaseModel):
    """Granule state as reported by a workflow execution."""
    model_config = ConfigDict(populate_by_name=True)

    granule_id: str = Field(..., min_length=1, alias="granuleId")
    collection_id: Optional[str] = Field(default=None, alias="collectionId")
    files: Optional[List[GranuleFile]] = Field(default=None)
    published: Optional[bool] = Field(default=None)
    cmr_link: Optional[str] = Field(default=None, alias="cmrLink")
    processing_start_date_time: Optional[datetime] = Field(default=None, alias="processingStartDateTime")
    processing_end_date_time: Optional[datetime] = Field(default=None, alias="processingEndDateTime")
    time_to_preprocess: Optional[float] = Field(default=None, alias="timeToPreprocess")
    time_to_archive: Optional[float] = Field(default=None, alias="timeToArchive")


class WorkflowExecutionEvent(BaseModel):
    """
    Execution status report from the workflow runtime.

    One report may cover many granules and at most one PDR.
    """
    model_config = ConfigDict(populate_by_name=True)

    execution_arn: str = Field(..., min_length=1, alias="executionArn")
    execution_name: Optional[str] = Field(default=None, alias="executionName")
    workflow_name: Optional[str] = Field(default=None, alias="workflowName")
    status: ExecutionStatus
    parent_arn: Optional[str] = Field(default=None, alias="parentArn")
    collection_id: Optional[str] = Field(default=None, alias="collectionId")
    provider: Optional[str] = Field(default=None)
    pdr_name: Optional[str] = Field(default=None, alias="pdrName")
    granules: List[EventGranule] = Field(default_factory=list)
    error: Optional[Dict[str, Any]] = Field(default=None)
    original_payload: Optional[Dict[str, Any]] = Field(default=None, alias="originalPayload")
    final_payload: Optional[Dict[str, Any]] = Field(default=None, alias="finalPayload")
    timestamp: datetime = Field(default_factory=_utc_now)

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Compared against stored timestamps, which are timezone aware
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class AsyncOperationRecord(BaseModel):
    """Returned by POST /granules/bulk; the operation runs in the background."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    description: str
    operation_type: str = Field(default="Bulk Granules", alias="operationType")
    status: str = Field(default="RUNNING")
    created_at: datetime = Field(default_factory=_utc_now, alias="createdAt")

    def to_api_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class BulkOperationMessage(BaseModel):
    """Bulk granule workflow request placed on the bulk queue."""
    model_config = ConfigDict(populate_by_name=True)

    async_operation_id: str = Field(..., alias="asyncOperationId")
    workflow_name: str = Field(..., alias="workflowName")
    ids: Optional[List[str]] = Field(default=None)
    query: Optional[Dict[str, Any]] = Field(default=None)
    index: Optional[str] = Field(default=None)
    queue_name: Optional[str] = Field(default=None, alias="queueName")
    meta: Optional[Dict[str, Any]] = Field(default=None)
