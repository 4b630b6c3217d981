"""
Granule lifecycle tests.

Tests services.granule_lifecycle: PUT actions, delete, and the handling
of workflow execution reports including PDR re-tally.
"""

from datetime import timedelta

import pytest

from core.models import (
    DuplicateHandling,
    EventGranule,
    ExecutionStatus,
    GranuleStatus,
    PdrStatus,
)
from exceptions import (
    CatalogError,
    GranuleConflictError,
    GranulePublishedError,
    InvalidTransitionError,
    ResourceNotFoundError,
    StorageError,
    ValidationError,
    WorkflowLaunchError,
)
from services import REINGEST_OVERWRITE_WARNING
from services.granule_lifecycle import PENDING_EXECUTION_PREFIX
from tests.factories.model_factories import (
    make_collection,
    make_event,
    make_granule,
    make_granule_file,
)


# ============================================================================
# QUERIES
# ============================================================================

class TestQueries:

    def test_get_unknown_granule(self, lifecycle):
        with pytest.raises(ResourceNotFoundError, match="Granule not found"):
            lifecycle.get_granule("missing")

    def test_list_pages(self, lifecycle, granule_store):
        for i in range(5):
            granule_store.create(make_granule(granule_id=f"G{i}"))

        first, total = lifecycle.list_granules(limit=2, page=1)
        third, _ = lifecycle.list_granules(limit=2, page=3)

        assert total == 5
        assert len(first) == 2
        assert len(third) == 1

    def test_list_filters_by_status(self, lifecycle, granule_store):
        granule_store.create(make_granule(granule_id="done"))
        granule_store.create(make_granule(granule_id="busy", status=GranuleStatus.RUNNING))

        results, total = lifecycle.list_granules(status=GranuleStatus.RUNNING)

        assert total == 1
        assert results[0].granule_id == "busy"


# ============================================================================
# ACTION PARSING
# ============================================================================

class TestApplyActionValidation:

    @pytest.mark.parametrize("body", [None, {}, {"action": ""}])
    def test_missing_action(self, lifecycle, body):
        with pytest.raises(ValidationError, match="Action is missing"):
            lifecycle.apply_action("G1", body)

    def test_unsupported_action(self, lifecycle):
        with pytest.raises(ValidationError, match="Action is not supported"):
            lifecycle.apply_action("G1", {"action": "explode"})

    def test_apply_workflow_requires_workflow(self, lifecycle, granule_store):
        granule_store.create(make_granule(granule_id="G1"))
        with pytest.raises(ValidationError, match="workflow"):
            lifecycle.apply_action("G1", {"action": "applyWorkflow"})

    def test_move_requires_destinations(self, lifecycle, granule_store):
        granule_store.create(make_granule(granule_id="G1"))
        with pytest.raises(ValidationError, match="destinations"):
            lifecycle.apply_action("G1", {"action": "move"})

    def test_unknown_granule(self, lifecycle):
        with pytest.raises(ResourceNotFoundError):
            lifecycle.apply_action("missing", {"action": "reingest"})


# ============================================================================
# REINGEST
# ============================================================================

class TestReingest:

    def test_restarts_original_workflow(self, lifecycle, granule_store, launcher, ingest_execution, app_config):
        granule_store.create(make_granule(granule_id="G1", execution=ingest_execution.arn))

        result = lifecycle.apply_action("G1", {"action": "reingest"})

        assert result.to_api_dict()["status"] == "SUCCESS"
        assert result.action == "reingest"
        message, queue = launcher.started[0]
        assert queue == app_config.queues.background_queue
        assert message.reingest is True
        assert message.workflow_name == ingest_execution.workflow_name
        assert message.payload == ingest_execution.original_payload
        assert message.parent_execution_arn == ingest_execution.arn
        assert granule_store.get("G1").status == GranuleStatus.RUNNING

    def test_warns_when_collection_does_not_replace(self, lifecycle, granule_store, ingest_execution):
        granule_store.create(make_granule(granule_id="G1", execution=ingest_execution.arn))

        result = lifecycle.apply_action("G1", {"action": "reingest"})

        assert result.warning == REINGEST_OVERWRITE_WARNING

    def test_no_warning_when_collection_replaces(
        self, lifecycle, granule_store, collection_store, ingest_execution
    ):
        collection_store.save(make_collection(duplicate_handling=DuplicateHandling.REPLACE))
        granule_store.create(make_granule(granule_id="G1", execution=ingest_execution.arn))

        result = lifecycle.apply_action("G1", {"action": "reingest"})

        assert result.warning is None
        assert "warning" not in result.to_api_dict()

    def test_running_granule_refused(self, lifecycle, granule_store, launcher, ingest_execution):
        granule_store.create(make_granule(
            granule_id="G1", execution=ingest_execution.arn, status=GranuleStatus.RUNNING
        ))
        with pytest.raises(InvalidTransitionError):
            lifecycle.apply_action("G1", {"action": "reingest"})
        assert launcher.started == []

    def test_missing_collection(self, lifecycle, granule_store, ingest_execution):
        granule_store.create(make_granule(
            granule_id="G1", execution=ingest_execution.arn, collection_id="OTHER___001"
        ))
        with pytest.raises(ResourceNotFoundError, match="Collection"):
            lifecycle.apply_action("G1", {"action": "reingest"})

    def test_missing_execution(self, lifecycle, granule_store):
        granule_store.create(make_granule(granule_id="G1", execution="arn:exec:gone"))
        with pytest.raises(ResourceNotFoundError, match="execution"):
            lifecycle.apply_action("G1", {"action": "reingest"})

    def test_record_points_at_pending_launch(self, lifecycle, granule_store, launcher, ingest_execution):
        granule_store.create(make_granule(granule_id="G1", execution=ingest_execution.arn))

        lifecycle.apply_action("G1", {"action": "reingest"})

        message, _ = launcher.started[0]
        assert granule_store.get("G1").execution == f"{PENDING_EXECUTION_PREFIX}{message.message_id}"

    def test_duplicate_report_from_previous_execution_ignored(
        self, lifecycle, granule_store, ingest_execution
    ):
        granule = make_granule(granule_id="G1", execution=ingest_execution.arn)
        granule_store.create(granule)
        lifecycle.apply_action("G1", {"action": "reingest"})

        summary = lifecycle.handle_execution_event(make_event(
            execution_arn=ingest_execution.arn,
            status=ExecutionStatus.COMPLETED,
            granules=[EventGranule(granule_id="G1")],
            timestamp=granule.updated_at,
        ))

        assert summary["skipped"] == ["G1"]
        assert granule_store.get("G1").status == GranuleStatus.RUNNING

    def test_reingest_execution_takes_over_and_supersedes_parent(
        self, lifecycle, granule_store, ingest_execution
    ):
        granule_store.create(make_granule(granule_id="G1", execution=ingest_execution.arn))
        lifecycle.apply_action("G1", {"action": "reingest"})

        started = lifecycle.handle_execution_event(make_event(
            execution_arn="arn:exec:reingest-1",
            status=ExecutionStatus.RUNNING,
            parent_arn=ingest_execution.arn,
            granules=[EventGranule(granule_id="G1")],
        ))
        assert started["updated"] == ["G1"]
        assert granule_store.get("G1").execution == "arn:exec:reingest-1"

        # Redelivered parent report with a fresh timestamp
        late = lifecycle.handle_execution_event(make_event(
            execution_arn=ingest_execution.arn,
            status=ExecutionStatus.COMPLETED,
            granules=[EventGranule(granule_id="G1")],
        ))

        assert late["skipped"] == ["G1"]
        stored = granule_store.get("G1")
        assert stored.status == GranuleStatus.RUNNING
        assert stored.execution == "arn:exec:reingest-1"

    def test_launch_failure_leaves_status(self, lifecycle, granule_store, launcher, ingest_execution):
        granule_store.create(make_granule(granule_id="G1", execution=ingest_execution.arn))
        launcher.fail = True

        with pytest.raises(WorkflowLaunchError):
            lifecycle.apply_action("G1", {"action": "reingest"})
        assert granule_store.get("G1").status == GranuleStatus.COMPLETED


# ============================================================================
# APPLY WORKFLOW
# ============================================================================

class TestApplyWorkflow:

    def test_starts_named_workflow(self, lifecycle, granule_store, launcher):
        granule_store.create(make_granule(granule_id="G1", status=GranuleStatus.FAILED))

        result = lifecycle.apply_action(
            "G1", {"action": "applyWorkflow", "workflow": "PublishGranule", "meta": {"k": "v"}}
        )

        assert result.action == "applyWorkflow PublishGranule"
        message, queue = launcher.started[0]
        assert queue is None
        assert message.workflow_name == "PublishGranule"
        assert message.meta == {"k": "v"}
        assert message.payload["granules"][0]["granuleId"] == "G1"
        assert granule_store.get("G1").status == GranuleStatus.RUNNING

    def test_running_granule_refused(self, lifecycle, granule_store):
        granule_store.create(make_granule(granule_id="G1", status=GranuleStatus.RUNNING))
        with pytest.raises(InvalidTransitionError):
            lifecycle.apply_action("G1", {"action": "applyWorkflow", "workflow": "W"})

    def test_duplicate_report_from_previous_execution_ignored(self, lifecycle, granule_store):
        granule = make_granule(granule_id="G1", execution="arn:exec:ingest", status=GranuleStatus.FAILED)
        granule_store.create(granule)
        lifecycle.apply_action("G1", {"action": "applyWorkflow", "workflow": "PublishGranule"})

        summary = lifecycle.handle_execution_event(make_event(
            execution_arn="arn:exec:ingest",
            status=ExecutionStatus.FAILED,
            granules=[EventGranule(granule_id="G1")],
            timestamp=granule.updated_at,
        ))

        assert summary["skipped"] == ["G1"]
        assert granule_store.get("G1").status == GranuleStatus.RUNNING


# ============================================================================
# REMOVE FROM CMR AND DELETE
# ============================================================================

class TestRemoveFromCmrAndDelete:

    def test_delete_published_refused(self, lifecycle, granule_store, object_store):
        object_store.put("A", "orig/g.txt")
        granule_store.create(make_granule(
            granule_id="G1", published=True, files=[make_granule_file("A", "orig/g.txt")]
        ))

        with pytest.raises(GranulePublishedError) as exc_info:
            lifecycle.delete_granule("G1")

        assert str(exc_info.value) == (
            "You cannot delete a granule that is published to CMR. Remove it from CMR first"
        )
        assert object_store.has("A", "orig/g.txt")
        assert granule_store.get("G1") is not None

    def test_remove_from_cmr_then_delete(self, lifecycle, granule_store, object_store, catalog):
        object_store.put("A", "orig/g.txt")
        object_store.put("A", "orig/g.cmr.xml")
        granule_store.create(make_granule(
            granule_id="G1",
            published=True,
            cmr_link="https://cmr.test/search/concepts/G1-TEST",
            files=[make_granule_file("A", "orig/g.txt"), make_granule_file("A", "orig/g.cmr.xml")],
        ))

        result = lifecycle.apply_action("G1", {"action": "removeFromCmr"})
        assert result.action == "removeFromCmr"
        assert catalog.deleted == ["G1"]
        unpublished = granule_store.get("G1")
        assert unpublished.published is False
        assert unpublished.cmr_link is None
        assert unpublished.status == GranuleStatus.COMPLETED

        assert lifecycle.delete_granule("G1") == {"detail": "Record deleted"}
        assert granule_store.get("G1") is None
        assert object_store.objects == {}

    def test_remove_unpublished_is_noop(self, lifecycle, granule_store, catalog):
        granule_store.create(make_granule(granule_id="G1"))
        lifecycle.apply_action("G1", {"action": "removeFromCmr"})
        assert catalog.deleted == []

    def test_catalog_failure_keeps_published(self, lifecycle, granule_store, catalog):
        granule_store.create(make_granule(granule_id="G1", published=True))
        catalog.fail = True

        with pytest.raises(CatalogError):
            lifecycle.apply_action("G1", {"action": "removeFromCmr"})
        assert granule_store.get("G1").published is True

    def test_delete_with_missing_files_succeeds(self, lifecycle, granule_store):
        granule_store.create(make_granule(
            granule_id="G1", files=[make_granule_file("A", "orig/gone.txt")]
        ))
        assert lifecycle.delete_granule("G1") == {"detail": "Record deleted"}
        assert granule_store.get("G1") is None

    def test_delete_failure_keeps_record(self, lifecycle, granule_store, object_store):
        object_store.put("A", "orig/g.txt")
        object_store.fail_delete.add("orig/g.txt")
        granule_store.create(make_granule(
            granule_id="G1", files=[make_granule_file("A", "orig/g.txt")]
        ))

        with pytest.raises(StorageError):
            lifecycle.delete_granule("G1")
        assert granule_store.get("G1") is not None

    def test_delete_unknown(self, lifecycle):
        with pytest.raises(ResourceNotFoundError):
            lifecycle.delete_granule("missing")


# ============================================================================
# MOVE ACTION
# ============================================================================

class TestMoveAction:

    def test_move_through_put(self, lifecycle, granule_store, object_store):
        object_store.put("B", "orig/g.txt")
        granule_store.create(make_granule(
            granule_id="G1", files=[make_granule_file("B", "orig/g.txt")]
        ))

        result = lifecycle.apply_action("G1", {
            "action": "move",
            "destinations": [{"regex": ".*\\.txt$", "bucket": "B", "filepath": "moved"}],
        })

        assert result.to_api_dict() == {"granuleId": "G1", "action": "move", "status": "SUCCESS"}
        assert granule_store.get("G1").files[0].key == "moved/g.txt"

    def test_move_conflict_surfaces(self, lifecycle, granule_store, object_store):
        object_store.put("B", "orig/g.txt")
        object_store.put("B", "moved/g.txt")
        granule_store.create(make_granule(
            granule_id="G1", files=[make_granule_file("B", "orig/g.txt")]
        ))

        with pytest.raises(GranuleConflictError):
            lifecycle.apply_action("G1", {
                "action": "move",
                "destinations": [{"regex": ".*", "bucket": "B", "filepath": "moved"}],
            })


# ============================================================================
# WORKFLOW EVENTS
# ============================================================================

class TestExecutionEvents:

    def test_first_report_creates_granule(self, lifecycle, granule_store, execution_store):
        event = make_event(
            status=ExecutionStatus.RUNNING,
            granules=[EventGranule(granule_id="G1")],
        )

        summary = lifecycle.handle_execution_event(event)

        assert summary["updated"] == ["G1"]
        stored = granule_store.get("G1")
        assert stored.status == GranuleStatus.RUNNING
        assert stored.execution == event.execution_arn
        assert stored.collection_id == "MOD09GQ___006"
        assert execution_store.get(event.execution_arn).status == ExecutionStatus.RUNNING

    def test_completion_sets_files_and_publication(self, lifecycle, granule_store):
        running = make_event(status=ExecutionStatus.RUNNING, granules=[EventGranule(granule_id="G1")])
        lifecycle.handle_execution_event(running)

        completed = make_event(
            execution_arn=running.execution_arn,
            status=ExecutionStatus.COMPLETED,
            granules=[EventGranule(
                granule_id="G1",
                files=[make_granule_file("B", "archive/g.txt")],
                published=True,
                cmr_link="https://cmr.test/search/concepts/G9-TEST",
            )],
        )
        lifecycle.handle_execution_event(completed)

        stored = granule_store.get("G1")
        assert stored.status == GranuleStatus.COMPLETED
        assert stored.published is True
        assert stored.cmr_link == "https://cmr.test/search/concepts/G9-TEST"
        assert stored.file_names() == ["g.txt"]
        assert stored.error is None

    def test_failure_records_error(self, lifecycle, granule_store):
        running = make_event(status=ExecutionStatus.RUNNING, granules=[EventGranule(granule_id="G1")])
        lifecycle.handle_execution_event(running)

        failed = make_event(
            execution_arn=running.execution_arn,
            status=ExecutionStatus.FAILED,
            granules=[EventGranule(granule_id="G1")],
            error={"Error": "SyncGranuleError", "Cause": "checksum mismatch"},
        )
        lifecycle.handle_execution_event(failed)

        stored = granule_store.get("G1")
        assert stored.status == GranuleStatus.FAILED
        assert stored.error == {"Error": "SyncGranuleError", "Cause": "checksum mismatch"}

    def test_terminal_granule_ignores_late_running_report(self, lifecycle, granule_store):
        arn = "arn:exec:ingest-one"
        granule_store.create(make_granule(granule_id="G1", execution=arn))

        summary = lifecycle.handle_execution_event(make_event(
            execution_arn=arn, status=ExecutionStatus.RUNNING, granules=[EventGranule(granule_id="G1")]
        ))

        assert summary["skipped"] == ["G1"]
        assert granule_store.get("G1").status == GranuleStatus.COMPLETED

    def test_new_execution_takes_over(self, lifecycle, granule_store):
        granule_store.create(make_granule(granule_id="G1", execution="arn:exec:old"))

        summary = lifecycle.handle_execution_event(make_event(
            execution_arn="arn:exec:new",
            status=ExecutionStatus.RUNNING,
            granules=[EventGranule(granule_id="G1")],
        ))

        assert summary["updated"] == ["G1"]
        stored = granule_store.get("G1")
        assert stored.status == GranuleStatus.RUNNING
        assert stored.execution == "arn:exec:new"

    def test_stale_report_from_other_execution_skipped(self, lifecycle, granule_store):
        granule = make_granule(granule_id="G1", execution="arn:exec:current")
        granule_store.create(granule)

        summary = lifecycle.handle_execution_event(make_event(
            execution_arn="arn:exec:older",
            status=ExecutionStatus.FAILED,
            granules=[EventGranule(granule_id="G1")],
            timestamp=granule.updated_at - timedelta(hours=1),
        ))

        assert summary["skipped"] == ["G1"]
        assert granule_store.get("G1").execution == "arn:exec:current"

    def test_report_without_collection_skips_new_granule(self, lifecycle, granule_store):
        summary = lifecycle.handle_execution_event(make_event(
            collection_id=None, granules=[EventGranule(granule_id="G1")]
        ))
        assert summary["skipped"] == ["G1"]
        assert granule_store.get("G1") is None

    def test_pdr_tally(self, lifecycle, pdr_store):
        arn = "arn:exec:parse-pdr"
        lifecycle.handle_execution_event(make_event(
            execution_arn=arn,
            status=ExecutionStatus.RUNNING,
            pdr_name="delivery.PDR",
            granules=[EventGranule(granule_id="G1"), EventGranule(granule_id="G2")],
        ))
        assert pdr_store.get("delivery.PDR").status == PdrStatus.RUNNING

        lifecycle.handle_execution_event(make_event(
            execution_arn=arn,
            status=ExecutionStatus.COMPLETED,
            pdr_name="delivery.PDR",
            granules=[EventGranule(granule_id="G1")],
        ))
        pdr = pdr_store.get("delivery.PDR")
        assert pdr.status == PdrStatus.RUNNING
        assert pdr.progress == 50.0

        summary = lifecycle.handle_execution_event(make_event(
            execution_arn=arn,
            status=ExecutionStatus.FAILED,
            pdr_name="delivery.PDR",
            granules=[EventGranule(granule_id="G2")],
        ))
        assert summary["pdr"] == {"name": "delivery.PDR", "status": "failed", "progress": 100.0}
        assert pdr_store.get("delivery.PDR").stats.completed == 1
