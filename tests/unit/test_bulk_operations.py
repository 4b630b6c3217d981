"""
Bulk granule operation tests.
"""

import pytest

from config import MetricsConfig
from exceptions import ValidationError, WorkflowLaunchError
from services import BulkOperationService


CONFIGURED = MetricsConfig(host="https://metrics.test", user="u", password="p")


@pytest.fixture
def bulk_service(launcher):
    return BulkOperationService(launcher, CONFIGURED)


class TestValidation:

    @pytest.mark.parametrize("body,message", [
        ({"ids": ["G1"]}, "workflowName is required."),
        ({"workflowName": "W"}, "One of ids or query is required"),
        ({"workflowName": "W", "ids": []}, "One of ids or query is required"),
        ({"workflowName": "W", "query": {"size": 5}}, "Index is required if query is sent"),
    ])
    def test_messages(self, bulk_service, body, message):
        with pytest.raises(ValidationError) as exc_info:
            bulk_service.validate(body)
        assert str(exc_info.value) == message

    def test_query_without_metrics_stack(self, launcher):
        service = BulkOperationService(launcher, MetricsConfig())
        with pytest.raises(ValidationError, match="ELK Metrics stack not configured"):
            service.validate({"workflowName": "W", "query": {"size": 5}, "index": "granules"})

    def test_wrong_field_type(self, bulk_service):
        with pytest.raises(ValidationError, match="Invalid bulk request"):
            bulk_service.validate({"workflowName": "W", "ids": "G1"})


class TestSubmit:

    def test_ids_request_queued(self, bulk_service, launcher):
        operation = bulk_service.submit({"workflowName": "Publish", "ids": ["G1", "G2"]})

        body = operation.to_api_dict()
        assert body["description"] == "Bulk run Publish on 2 granules"
        assert body["operationType"] == "Bulk Granules"
        assert body["status"] == "RUNNING"
        assert launcher.bulk[0].async_operation_id == operation.id
        assert launcher.bulk[0].ids == ["G1", "G2"]

    def test_query_request_uses_query_size(self, bulk_service, launcher):
        operation = bulk_service.submit({
            "workflowName": "Publish",
            "query": {"size": 40, "query": {"match_all": {}}},
            "index": "granules",
        })
        assert operation.description == "Bulk run Publish on 40 granules"
        assert launcher.bulk[0].index == "granules"

    def test_queue_failure(self, bulk_service, launcher):
        launcher.fail = True
        with pytest.raises(WorkflowLaunchError, match="Failed to run bulk operation"):
            bulk_service.submit({"workflowName": "Publish", "ids": ["G1"]})
