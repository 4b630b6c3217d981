"""
Blob object store adapter tests with a mocked BlobServiceClient.
"""

from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import HttpResponseError
from azure.core.exceptions import ResourceNotFoundError as AzureResourceNotFoundError

from config import StorageConfig
from core.models import FileLocation
from exceptions import ResourceNotFoundError, StorageError
from infrastructure.blob import BlobObjectStore


SOURCE = FileLocation(bucket="A", key="orig/g.txt")
TARGET = FileLocation(bucket="B", key="moved/g.txt")


@pytest.fixture
def blob_client():
    client = MagicMock()
    client.url = "https://account.blob.core.windows.net/A/orig/g.txt"
    return client


@pytest.fixture
def store(blob_client):
    service = MagicMock()
    service.get_container_client.return_value.get_blob_client.return_value = blob_client
    return BlobObjectStore(StorageConfig(storage_account_name="account"), blob_service=service)


class TestExists:

    def test_present(self, store, blob_client):
        assert store.object_exists(TARGET) is True

    def test_absent(self, store, blob_client):
        blob_client.get_blob_properties.side_effect = AzureResourceNotFoundError("gone")
        assert store.object_exists(TARGET) is False

    def test_other_failure(self, store, blob_client):
        blob_client.get_blob_properties.side_effect = HttpResponseError("throttled")
        with pytest.raises(StorageError):
            store.object_exists(TARGET)


class TestCopy:

    def test_completed_copy(self, store, blob_client):
        blob_client.start_copy_from_url.return_value = {"copy_status": "success", "copy_id": "c1"}
        store.copy_object(SOURCE, TARGET)
        blob_client.start_copy_from_url.assert_called_once_with(blob_client.url)

    def test_pending_copy_polled(self, store, blob_client, monkeypatch):
        monkeypatch.setattr(BlobObjectStore, "COPY_POLL_INTERVAL_SECONDS", 0)
        blob_client.start_copy_from_url.return_value = {"copy_status": "pending", "copy_id": "c1"}
        blob_client.get_blob_properties.return_value.copy.status = "success"

        store.copy_object(SOURCE, TARGET)

        blob_client.get_blob_properties.assert_called()

    def test_failed_copy(self, store, blob_client):
        blob_client.start_copy_from_url.return_value = {"copy_status": "failed", "copy_id": "c1"}
        with pytest.raises(StorageError, match="failed"):
            store.copy_object(SOURCE, TARGET)

    def test_missing_source(self, store, blob_client):
        blob_client.start_copy_from_url.side_effect = AzureResourceNotFoundError("gone")
        with pytest.raises(ResourceNotFoundError):
            store.copy_object(SOURCE, TARGET)


class TestDeleteAndRead:

    def test_delete_missing_returns_false(self, store, blob_client):
        blob_client.delete_blob.side_effect = AzureResourceNotFoundError("gone")
        assert store.delete_object(SOURCE) is False

    def test_read(self, store, blob_client):
        blob_client.download_blob.return_value.readall.return_value = b"<Granule/>"
        assert store.read_object(SOURCE) == b"<Granule/>"

    def test_read_missing(self, store, blob_client):
        blob_client.download_blob.side_effect = AzureResourceNotFoundError("gone")
        with pytest.raises(ResourceNotFoundError):
            store.read_object(SOURCE)

    def test_write_sets_content_type(self, store, blob_client):
        store.write_object(SOURCE, b"{}", "application/json")
        kwargs = blob_client.upload_blob.call_args.kwargs
        assert kwargs["overwrite"] is True
        assert kwargs["content_settings"].content_type == "application/json"
