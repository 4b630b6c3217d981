"""
Blob Storage Object Store - Central Authentication Point

Implements IObjectStore on Azure Blob Storage. A granule file's
"bucket" is a blob container and its "key" the blob name.

Key Features:
- DefaultAzureCredential for seamless authentication across environments
- Connection string support for local development (Azurite)
- Container client cache for connection reuse
- Azure SDK errors translated into StorageError / ResourceNotFoundError

Authentication Hierarchy (DefaultAzureCredential):
1. Environment variables (AZURE_CLIENT_ID, etc.)
2. Managed Identity (in Azure)
3. Azure CLI (local development)

Usage:
    from infrastructure import RepositoryFactory

    store = RepositoryFactory.create_object_store(config.storage)
    data = store.read_object(FileLocation(bucket="protected", key="g/g.cmr.xml"))
"""

# ============================================================================
# IMPORTS - Top of file for fail-fast behavior
# ============================================================================

import time
from typing import Dict, Optional

# Azure SDK imports - These will fail fast if not installed
from azure.storage.blob import BlobServiceClient, ContainerClient, ContentSettings
from azure.identity import DefaultAzureCredential
from azure.core.exceptions import AzureError
from azure.core.exceptions import ResourceNotFoundError as AzureResourceNotFoundError

# Application imports
from config import StorageConfig
from core.models import FileLocation
from exceptions import ResourceNotFoundError, StorageError
from interfaces.repository import IObjectStore
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "BlobObjectStore")


class BlobObjectStore(IObjectStore):
    """
    Azure Blob Storage implementation of IObjectStore.

    Thread-safe for concurrent use from the mover's worker pool: the
    azure clients are thread-safe and the container cache only grows.
    """

    # Server-side copies are asynchronous in Azure; poll until done
    COPY_POLL_INTERVAL_SECONDS = 0.5
    COPY_TIMEOUT_SECONDS = 300

    def __init__(self, config: StorageConfig, blob_service: Optional[BlobServiceClient] = None):
        """
        Initialize the blob service client.

        Args:
            config: Storage configuration
            blob_service: Pre-built client (tests, custom pipelines)
        """
        self.config = config
        try:
            if blob_service is not None:
                self.blob_service = blob_service
            elif config.connection_string:
                logger.info("Initializing BlobObjectStore with connection string")
                self.blob_service = BlobServiceClient.from_connection_string(config.connection_string)
            else:
                logger.info(
                    f"Initializing BlobObjectStore with DefaultAzureCredential for account: "
                    f"{config.storage_account_name}"
                )
                self.blob_service = BlobServiceClient(
                    account_url=config.account_url,
                    credential=DefaultAzureCredential()
                )
        except AzureError as e:
            logger.error(f"Failed to initialize BlobObjectStore: {e}")
            raise StorageError(f"Blob storage initialization failed: {e}") from e

        self._container_clients: Dict[str, ContainerClient] = {}

    def _get_container_client(self, container: str) -> ContainerClient:
        """
        Get or create cached container client.

        Args:
            container: Container name

        Returns:
            Cached or new ContainerClient
        """
        if container not in self._container_clients:
            self._container_clients[container] = self.blob_service.get_container_client(container)
            logger.debug(f"Created new container client for: {container}")
        return self._container_clients[container]

    def _blob_client(self, location: FileLocation):
        return self._get_container_client(location.bucket).get_blob_client(location.key)

    # ========================================================================
    # CORE BLOB OPERATIONS
    # ========================================================================

    def object_exists(self, location: FileLocation) -> bool:
        """
        Check if blob exists.

        Returns:
            True if blob exists, False otherwise
        """
        try:
            self._blob_client(location).get_blob_properties()
            return True
        except AzureResourceNotFoundError:
            return False
        except AzureError as e:
            logger.error(f"Error checking blob existence {location}: {e}")
            raise StorageError(f"Existence check failed for {location}: {e}") from e

    def copy_object(self, source: FileLocation, target: FileLocation) -> None:
        """
        Server-side blob copy (no data transfer to client).

        Waits for the copy to reach 'success' so callers can delete the
        source immediately afterwards.
        """
        try:
            source_url = self._blob_client(source).url
            dest_client = self._blob_client(target)

            logger.debug(f"Copying blob: {source} → {target}")
            copy_operation = dest_client.start_copy_from_url(source_url)
            status = copy_operation.get("copy_status")

            deadline = time.monotonic() + self.COPY_TIMEOUT_SECONDS
            while status == "pending":
                if time.monotonic() > deadline:
                    dest_client.abort_copy(copy_operation.get("copy_id"))
                    raise StorageError(f"Copy {source} → {target} timed out")
                time.sleep(self.COPY_POLL_INTERVAL_SECONDS)
                status = dest_client.get_blob_properties().copy.status

            if status != "success":
                raise StorageError(f"Copy {source} → {target} ended with status {status}")

            logger.info(f"Copied blob: {source} → {target}")

        except AzureResourceNotFoundError as e:
            logger.error(f"Copy source missing: {source}")
            raise ResourceNotFoundError(f"Object not found: {source}") from e
        except AzureError as e:
            logger.error(f"Failed to copy blob {source} → {target}: {e}")
            raise StorageError(f"Copy {source} → {target} failed: {e}") from e

    def delete_object(self, location: FileLocation) -> bool:
        """
        Delete a blob.

        Returns:
            True if deleted, False if not found
        """
        try:
            self._blob_client(location).delete_blob()
            logger.info(f"Deleted blob: {location}")
            return True
        except AzureResourceNotFoundError:
            logger.warning(f"Blob not found for deletion: {location}")
            return False
        except AzureError as e:
            logger.error(f"Failed to delete blob {location}: {e}")
            raise StorageError(f"Delete of {location} failed: {e}") from e

    def read_object(self, location: FileLocation) -> bytes:
        """
        Read entire blob to memory.

        Raises:
            ResourceNotFoundError: If blob doesn't exist
        """
        try:
            data = self._blob_client(location).download_blob().readall()
            logger.debug(f"Read {len(data)} bytes from {location}")
            return data
        except AzureResourceNotFoundError as e:
            logger.error(f"Blob not found: {location}")
            raise ResourceNotFoundError(f"Object not found: {location}") from e
        except AzureError as e:
            logger.error(f"Failed to read blob {location}: {e}")
            raise StorageError(f"Read of {location} failed: {e}") from e

    def write_object(
        self,
        location: FileLocation,
        data: bytes,
        content_type: Optional[str] = None
    ) -> None:
        """Write blob from bytes, overwriting any existing blob."""
        try:
            self._blob_client(location).upload_blob(
                data,
                overwrite=True,
                content_settings=ContentSettings(
                    content_type=content_type or "application/octet-stream"
                )
            )
            logger.info(f"Wrote blob: {location} ({len(data)} bytes)")
        except AzureError as e:
            logger.error(f"Failed to write blob {location}: {e}")
            raise StorageError(f"Write of {location} failed: {e}") from e
