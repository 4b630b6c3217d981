"""
Granule Action Request Models.

PUT /granules/{granuleId} bodies form a tagged union on the "action"
field. parse_action() turns a raw JSON body into exactly one variant or
raises ValidationError with the message returned to the client.

Exports:
    ReingestAction, ApplyWorkflowAction, MoveAction, RemoveFromCmrAction
    GranuleActionRequest: Discriminated union of the variants
    BulkGranulesRequest: POST /granules/bulk body
    parse_action: Raw body -> action variant
    UNSUPPORTED_ACTION_MESSAGE, MISSING_ACTION_MESSAGE
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from exceptions import ValidationError
from .destination import DestinationRule
from .enums import GranuleAction


MISSING_ACTION_MESSAGE = "Action is missing"
UNSUPPORTED_ACTION_MESSAGE = (
    'Action is not supported. Choices are "applyWorkflow", "move", "reingest", or "removeFromCmr"'
)


class ReingestAction(BaseModel):
    """Re-run the ingest workflow that produced the granule."""
    action: Literal["reingest"] = GranuleAction.REINGEST.value


class ApplyWorkflowAction(BaseModel):
    """Run a named workflow against the granule in place."""
    action: Literal["applyWorkflow"] = GranuleAction.APPLY_WORKFLOW.value
    workflow: str = Field(..., min_length=1, description="Workflow to start")
    meta: Optional[Dict[str, Any]] = Field(default=None, description="Extra workflow meta")


class MoveAction(BaseModel):
    """Relocate granule files according to ordered destination rules."""
    action: Literal["move"] = GranuleAction.MOVE.value
    destinations: List[DestinationRule] = Field(..., min_length=1)


class RemoveFromCmrAction(BaseModel):
    """Unpublish the granule from the catalog."""
    action: Literal["removeFromCmr"] = GranuleAction.REMOVE_FROM_CMR.value


GranuleActionRequest = Annotated[
    Union[ReingestAction, ApplyWorkflowAction, MoveAction, RemoveFromCmrAction],
    Field(discriminator="action"),
]

_ACTION_ADAPTER = TypeAdapter(GranuleActionRequest)
_ACTION_NAMES = {a.value for a in GranuleAction}


def _describe_errors(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        # First loc element is the union tag
        loc = ".".join(str(p) for p in item["loc"][1:]) or "body"
        parts.append(f"{loc}: {item['msg']}")
    return "; ".join(parts)


def parse_action(body: Optional[Dict[str, Any]]):
    """
    Validate a PUT body into one action variant.

    Raises:
        ValidationError: "Action is missing", unsupported action, or a
            field-level problem for the chosen action
    """
    if not isinstance(body, dict) or not body.get("action"):
        raise ValidationError(MISSING_ACTION_MESSAGE)
    if body["action"] not in _ACTION_NAMES:
        raise ValidationError(UNSUPPORTED_ACTION_MESSAGE)
    try:
        return _ACTION_ADAPTER.validate_python(body)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {body['action']} request: {_describe_errors(e)}") from e


class BulkGranulesRequest(BaseModel):
    """
    POST /granules/bulk body.

    Field presence rules (workflowName, ids or query, index with query)
    are enforced by services.bulk_operations so each failure gets its
    own client message.
    """
    model_config = ConfigDict(populate_by_name=True)

    workflow_name: Optional[str] = Field(default=None, alias="workflowName")
    ids: Optional[List[str]] = Field(default=None)
    query: Optional[Dict[str, Any]] = Field(default=None)
    index: Optional[str] = Field(default=None)
    queue_name: Optional[str] = Field(default=None, alias="queueName")
    meta: Optional[Dict[str, Any]] = Field(default=None)
