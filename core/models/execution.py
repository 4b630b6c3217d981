"""
Workflow Execution and PDR Models.

Exports:
    ExecutionRecord: One workflow run
    PdrStats: Granule status tally for a PDR
    PdrRecord: Product Delivery Record aggregate
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .enums import ExecutionStatus, PdrStatus


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionRecord(BaseModel):
    """
    Workflow run record.

    parent_arn links executions started by an enclosing workflow so the
    chain can be walked with core.logic.transitions.get_execution_ancestry.
    """
    model_config = ConfigDict(populate_by_name=True)

    arn: str = Field(..., min_length=1)
    name: Optional[str] = Field(default=None)
    workflow_name: Optional[str] = Field(default=None, alias="workflowName")
    status: ExecutionStatus = Field(default=ExecutionStatus.RUNNING)
    parent_arn: Optional[str] = Field(default=None, alias="parentArn")
    collection_id: Optional[str] = Field(default=None, alias="collectionId")
    error: Optional[Dict[str, Any]] = Field(default=None)
    original_payload: Optional[Dict[str, Any]] = Field(default=None, alias="originalPayload")
    final_payload: Optional[Dict[str, Any]] = Field(default=None, alias="finalPayload")
    created_at: datetime = Field(default_factory=_utc_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=_utc_now, alias="updatedAt")

    def to_api_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PdrStats(BaseModel):
    running: int = Field(default=0, ge=0)
    completed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)

    @computed_field
    @property
    def total(self) -> int:
        return self.running + self.completed + self.failed


class PdrRecord(BaseModel):
    """Aggregate state of the granules parsed from one delivery manifest."""
    model_config = ConfigDict(populate_by_name=True)

    pdr_name: str = Field(..., min_length=1, alias="pdrName")
    collection_id: Optional[str] = Field(default=None, alias="collectionId")
    provider: Optional[str] = Field(default=None)
    execution: Optional[str] = Field(default=None)
    status: PdrStatus = Field(default=PdrStatus.RUNNING)
    stats: PdrStats = Field(default_factory=PdrStats)
    created_at: datetime = Field(default_factory=_utc_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=_utc_now, alias="updatedAt")

    @computed_field
    @property
    def progress(self) -> float:
        """Percentage of granules no longer running."""
        if self.stats.total == 0:
            return 0.0
        done = self.stats.completed + self.stats.failed
        return round(100.0 * done / self.stats.total, 2)

    def to_api_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
