"""
Granule Operation Result Models.

Exports:
    ActionResult: Response body of a successful PUT action
    MoveResult: Outcome of a granule move
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .destination import PlannedMove
from .granule import GranuleRecord


class ActionResult(BaseModel):
    """{granuleId, action, status: "SUCCESS"} plus an optional warning."""
    model_config = ConfigDict(populate_by_name=True)

    granule_id: str = Field(..., alias="granuleId")
    action: str
    status: str = Field(default="SUCCESS")
    warning: Optional[str] = Field(default=None)

    def to_api_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class MoveResult(BaseModel):
    """
    Result of GranuleMover.move.

    moved lists files whose location changed; files already at their
    target are in unchanged. duplicates lists files overwritten because
    an object appeared at the target after the conflict check.
    """

    granule: GranuleRecord
    plan: List[PlannedMove] = Field(default_factory=list)
    moved: List[str] = Field(default_factory=list)
    unchanged: List[str] = Field(default_factory=list)
    duplicates: List[str] = Field(default_factory=list)
    metadata_rewritten: List[str] = Field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.moved
