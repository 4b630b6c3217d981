"""
Granule Lifecycle Service.

Owns every change to a granule record outside of the move orchestrator:

    API actions (PUT /granules/{granuleId}):
        reingest       completed|failed -> running, restarts ingest
        applyWorkflow  completed|failed -> running, runs a named workflow
        removeFromCmr  published -> unpublished, status unchanged
        move           files relocated, status unchanged (GranuleMover)
    DELETE            unpublished granule -> files and record removed
    Workflow events   (none) -> running -> completed|failed, PDR re-tally

Each action variant has exactly one handler; the dispatcher refuses any
model it has no handler for.

Exports:
    GranuleLifecycle
    REINGEST_OVERWRITE_WARNING
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Tuple

from config import AppConfig
from core.logic import (
    can_granule_transition,
    derive_pdr_status,
    get_execution_ancestry,
    tally_granule_statuses,
    validate_granule_transition,
)
from core.models import (
    ActionResult,
    ApplyWorkflowAction,
    DuplicateHandling,
    EventGranule,
    ExecutionRecord,
    GranuleAction,
    GranuleRecord,
    GranuleStatus,
    MoveAction,
    PdrRecord,
    ReingestAction,
    RemoveFromCmrAction,
    TransitionTrigger,
    WorkflowExecutionEvent,
    WorkflowStartMessage,
    deconstruct_collection_id,
    parse_action,
)
from exceptions import ContractViolationError, GranulePublishedError, ResourceNotFoundError
from interfaces.repository import (
    ICatalogClient,
    ICollectionStore,
    IExecutionStore,
    IGranuleStore,
    IObjectStore,
    IPdrStore,
    IWorkflowLauncher,
)
from util_logger import LoggerFactory, ComponentType

from .granule_mover import GranuleMover

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "GranuleLifecycle")


REINGEST_OVERWRITE_WARNING = "The granule files may be overwritten"
GRANULE_NOT_FOUND_MESSAGE = "Granule not found"

# granule.execution between a launch and the launched execution's first report
PENDING_EXECUTION_PREFIX = "pending:"


class GranuleLifecycle:
    """
    Granule state machine and action dispatcher.
    """

    def __init__(
        self,
        config: AppConfig,
        granule_store: IGranuleStore,
        collection_store: ICollectionStore,
        execution_store: IExecutionStore,
        pdr_store: IPdrStore,
        object_store: IObjectStore,
        catalog: ICatalogClient,
        launcher: IWorkflowLauncher,
        mover: Optional[GranuleMover] = None
    ):
        self.config = config
        self.granule_store = granule_store
        self.collection_store = collection_store
        self.execution_store = execution_store
        self.pdr_store = pdr_store
        self.object_store = object_store
        self.catalog = catalog
        self.launcher = launcher
        self.mover = mover or GranuleMover(object_store, granule_store, config.storage, catalog)

        self._handlers: Dict[type, Callable[[GranuleRecord, Any], ActionResult]] = {
            ReingestAction: self._reingest,
            ApplyWorkflowAction: self._apply_workflow,
            RemoveFromCmrAction: self._remove_from_cmr,
            MoveAction: self._move,
        }

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_granule(self, granule_id: str) -> GranuleRecord:
        """
        Raises:
            ResourceNotFoundError: "Granule not found"
        """
        granule = self.granule_store.get(granule_id)
        if granule is None:
            raise ResourceNotFoundError(GRANULE_NOT_FOUND_MESSAGE)
        return granule

    def list_granules(
        self,
        status: Optional[GranuleStatus] = None,
        collection_id: Optional[str] = None,
        published: Optional[bool] = None,
        limit: int = 100,
        page: int = 1
    ) -> Tuple[List[GranuleRecord], int]:
        """Page of granules (1-based page) and the total match count."""
        offset = (max(page, 1) - 1) * limit
        return self.granule_store.list_granules(
            status=status,
            collection_id=collection_id,
            published=published,
            limit=limit,
            offset=offset
        )

    # ========================================================================
    # ACTIONS
    # ========================================================================

    def apply_action(self, granule_id: str, body: Optional[Dict[str, Any]]) -> ActionResult:
        """
        Validate a PUT body and run its action.

        Raises:
            ValidationError: Missing/unsupported action or bad fields
            ResourceNotFoundError: Granule unknown
            InvalidTransitionError: Action not allowed in current status
            GranuleConflictError, MoveError, CatalogError, WorkflowLaunchError
        """
        action = parse_action(body)
        return self.dispatch(granule_id, action)

    def dispatch(self, granule_id: str, action: Any) -> ActionResult:
        handler = self._handlers.get(type(action))
        if handler is None:
            raise ContractViolationError(f"No handler for action model {type(action).__name__}")

        granule = self.get_granule(granule_id)
        log = LoggerFactory.create_with_context(
            ComponentType.SERVICE, "GranuleLifecycle",
            granule_id=granule_id, execution_arn=granule.execution, action=action.action
        )
        log.info(f"Running {action.action} on granule {granule_id} (status {granule.status.value})")
        result = handler(granule, action)
        log.info(f"{result.action} on granule {granule_id} succeeded")
        return result

    def _reingest(self, granule: GranuleRecord, action: ReingestAction) -> ActionResult:
        validate_granule_transition(
            granule.granule_id, granule.status, GranuleStatus.RUNNING, TransitionTrigger.REINGEST
        )

        name, version = deconstruct_collection_id(granule.collection_id)
        collection = self.collection_store.get(name, version)
        if collection is None:
            raise ResourceNotFoundError(f"Collection {granule.collection_id} not found")

        execution = self.execution_store.get(granule.execution) if granule.execution else None
        if execution is None or not execution.workflow_name:
            raise ResourceNotFoundError(
                f"No execution recorded for granule {granule.granule_id}; cannot reingest"
            )

        message = WorkflowStartMessage(
            workflow_name=execution.workflow_name,
            granule_id=granule.granule_id,
            collection_id=granule.collection_id,
            reingest=True,
            parent_execution_arn=execution.arn,
            payload=execution.original_payload or {},
            meta={"duplicateHandling": DuplicateHandling.REPLACE.value}
        )
        message_id = self.launcher.start_workflow(message, queue_name=self.config.queues.background_queue)
        self._mark_launched(granule, message_id)

        warning = None
        if not collection.allows_overwrite:
            warning = REINGEST_OVERWRITE_WARNING
            logger.warning(
                f"Reingest of {granule.granule_id}: collection duplicateHandling is "
                f"{collection.duplicate_handling.value}, files may be overwritten"
            )
        return ActionResult(granule_id=granule.granule_id, action=GranuleAction.REINGEST.value, warning=warning)

    def _apply_workflow(self, granule: GranuleRecord, action: ApplyWorkflowAction) -> ActionResult:
        validate_granule_transition(
            granule.granule_id, granule.status, GranuleStatus.RUNNING, TransitionTrigger.APPLY_WORKFLOW
        )

        message = WorkflowStartMessage(
            workflow_name=action.workflow,
            granule_id=granule.granule_id,
            collection_id=granule.collection_id,
            parent_execution_arn=granule.execution,
            payload={"granules": [granule.to_api_dict()]},
            meta=action.meta or {}
        )
        message_id = self.launcher.start_workflow(message)
        self._mark_launched(granule, message_id)
        return ActionResult(
            granule_id=granule.granule_id,
            action=f"{GranuleAction.APPLY_WORKFLOW.value} {action.workflow}"
        )

    def _mark_launched(self, granule: GranuleRecord, message_id: str) -> None:
        """
        Set RUNNING under a pending execution id.

        Reports from the execution the granule held until now no longer
        count as its own; a late one is stale against the new updated_at.
        """
        self.granule_store.update_status(
            granule.granule_id,
            GranuleStatus.RUNNING,
            execution=f"{PENDING_EXECUTION_PREFIX}{message_id}"
        )

    def _remove_from_cmr(self, granule: GranuleRecord, action: RemoveFromCmrAction) -> ActionResult:
        if not granule.published:
            logger.warning(f"Granule {granule.granule_id} is not published; nothing to remove from CMR")
        else:
            self.catalog.delete_granule(granule)
            updated = granule.model_copy(update={"published": False, "cmr_link": None})
            self.granule_store.save(updated)
        return ActionResult(granule_id=granule.granule_id, action=GranuleAction.REMOVE_FROM_CMR.value)

    def _move(self, granule: GranuleRecord, action: MoveAction) -> ActionResult:
        result = self.mover.move(granule, action.destinations, timeout=self.config.move_timeout)
        if result.duplicates:
            logger.warning(
                f"Move of {granule.granule_id} overwrote objects created after the conflict "
                f"check: {', '.join(result.duplicates)}"
            )
        return ActionResult(granule_id=granule.granule_id, action=GranuleAction.MOVE.value)

    # ========================================================================
    # DELETE
    # ========================================================================

    def delete_granule(self, granule_id: str) -> Dict[str, str]:
        """
        Delete an unpublished granule's files, then its record.

        Missing objects count as deleted. If any delete fails the record
        is kept so the call can be repeated.

        Raises:
            ResourceNotFoundError: Granule unknown
            GranulePublishedError: Granule is published to CMR
            StorageError: An object delete failed
        """
        granule = self.get_granule(granule_id)
        if granule.published:
            logger.warning(f"Refusing to delete published granule {granule_id}")
            raise GranulePublishedError(granule_id)

        if granule.files:
            workers = max(1, min(self.config.storage.max_parallel, len(granule.files)))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                # list() joins and re-raises the first failure
                results = list(executor.map(
                    lambda f: self.object_store.delete_object(f.location),
                    granule.files
                ))
            missing = [f.file_name for f, deleted in zip(granule.files, results) if not deleted]
            if missing:
                logger.warning(f"Files of granule {granule_id} already absent: {', '.join(missing)}")

        self.granule_store.delete(granule_id)
        logger.info(f"Deleted granule {granule_id} and {len(granule.files)} files")
        return {"detail": "Record deleted"}

    # ========================================================================
    # WORKFLOW EVENTS
    # ========================================================================

    def handle_execution_event(self, event: WorkflowExecutionEvent) -> Dict[str, Any]:
        """
        Apply an execution status report.

        Illegal or stale granule transitions are logged and skipped.

        Returns:
            Summary with updated and skipped granule ids and PDR status
        """
        log = LoggerFactory.create_with_context(
            ComponentType.SERVICE, "GranuleLifecycle", execution_arn=event.execution_arn
        )
        log.info(f"Execution {event.execution_arn} reported {event.status.value}")

        self._save_execution(event)

        updated: List[str] = []
        skipped: List[str] = []
        for event_granule in event.granules:
            if self._apply_granule_event(event, event_granule):
                updated.append(event_granule.granule_id)
            else:
                skipped.append(event_granule.granule_id)

        summary: Dict[str, Any] = {
            "execution": event.execution_arn,
            "status": event.status.value,
            "updated": updated,
            "skipped": skipped,
        }
        if event.pdr_name:
            pdr = self._retally_pdr(event)
            summary["pdr"] = {"name": pdr.pdr_name, "status": pdr.status.value, "progress": pdr.progress}
        return summary

    def _save_execution(self, event: WorkflowExecutionEvent) -> ExecutionRecord:
        existing = self.execution_store.get(event.execution_arn)
        record = ExecutionRecord(
            arn=event.execution_arn,
            name=event.execution_name or (existing.name if existing else None),
            workflow_name=event.workflow_name or (existing.workflow_name if existing else None),
            status=event.status,
            parent_arn=event.parent_arn or (existing.parent_arn if existing else None),
            collection_id=event.collection_id or (existing.collection_id if existing else None),
            error=event.error,
            original_payload=event.original_payload or (existing.original_payload if existing else None),
            final_payload=event.final_payload,
            created_at=existing.created_at if existing else event.timestamp,
            updated_at=event.timestamp
        )
        return self.execution_store.save(record)

    def _apply_granule_event(self, event: WorkflowExecutionEvent, reported: EventGranule) -> bool:
        target = GranuleStatus(event.status.value)
        existing = self.granule_store.get(reported.granule_id)

        if existing is None:
            collection_id = reported.collection_id or event.collection_id
            if not collection_id:
                logger.warning(f"Skipping granule {reported.granule_id}: no collectionId in report")
                return False
            granule = GranuleRecord(
                granule_id=reported.granule_id,
                collection_id=collection_id,
                status=target,
                created_at=event.timestamp
            )
        else:
            same_execution = existing.execution == event.execution_arn
            if not same_execution and event.timestamp < existing.updated_at:
                logger.warning(
                    f"Skipping stale report for granule {existing.granule_id} from "
                    f"{event.execution_arn}; record updated by {existing.execution}"
                )
                return False
            if not same_execution and self._is_superseded(event.execution_arn, existing.execution):
                logger.warning(
                    f"Skipping report for granule {existing.granule_id} from "
                    f"{event.execution_arn}; superseded by {existing.execution}"
                )
                return False
            trigger = TransitionTrigger.WORKFLOW_EVENT if same_execution else TransitionTrigger.NEW_EXECUTION
            if not can_granule_transition(existing.status, target, trigger):
                logger.warning(
                    f"Skipping granule {existing.granule_id}: {existing.status.value} -> "
                    f"{target.value} not allowed for {trigger.value}"
                )
                return False
            granule = existing.model_copy(deep=True)
            granule.status = target

        granule.execution = event.execution_arn
        granule.pdr_name = event.pdr_name or granule.pdr_name
        granule.provider = event.provider or granule.provider
        if reported.collection_id:
            granule.collection_id = reported.collection_id
        if reported.files is not None:
            granule.files = reported.files
        for field in (
            "processing_start_date_time",
            "processing_end_date_time",
            "time_to_preprocess",
            "time_to_archive",
        ):
            value = getattr(reported, field)
            if value is not None:
                setattr(granule, field, value)

        if target == GranuleStatus.FAILED:
            granule.error = event.error or {"Error": "Unknown", "Cause": "Execution failed"}
        else:
            granule.error = None
        if target == GranuleStatus.COMPLETED and reported.published is not None:
            granule.published = reported.published
            granule.cmr_link = reported.cmr_link if reported.published else None

        if existing is None:
            if not self.granule_store.create(granule):
                # Created concurrently; fall back to last-write-wins
                self.granule_store.save(granule)
        else:
            self.granule_store.save(granule)
        logger.info(f"Granule {granule.granule_id} is {target.value} ({event.execution_arn})")
        return True

    def _is_superseded(self, execution_arn: str, current: Optional[str]) -> bool:
        """True if execution_arn is an ancestor of the granule's current execution."""
        if not current or current.startswith(PENDING_EXECUTION_PREFIX):
            return False
        ancestry = get_execution_ancestry(current, self.execution_store.get)
        return any(record.arn == execution_arn for record in ancestry[1:])

    def _retally_pdr(self, event: WorkflowExecutionEvent) -> PdrRecord:
        stats = tally_granule_statuses(self.granule_store.count_by_status(event.pdr_name))
        existing = self.pdr_store.get(event.pdr_name)
        pdr = existing.model_copy(deep=True) if existing else PdrRecord(
            pdr_name=event.pdr_name,
            created_at=event.timestamp
        )
        pdr.collection_id = event.collection_id or pdr.collection_id
        pdr.provider = event.provider or pdr.provider
        pdr.execution = pdr.execution or event.execution_arn
        pdr.stats = stats
        pdr.status = derive_pdr_status(stats)
        pdr.updated_at = event.timestamp
        saved = self.pdr_store.save(pdr)
        logger.info(
            f"PDR {saved.pdr_name}: {saved.status.value} "
            f"(running={stats.running}, completed={stats.completed}, failed={stats.failed})"
        )
        return saved
