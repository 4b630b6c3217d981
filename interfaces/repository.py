"""
Repository Interfaces

Defines the contracts between granule business logic and the external
collaborators it depends on: the object store holding file bytes, the
record stores, the CMR catalog and the workflow runtime.

All infrastructure access goes through implementations of these
interfaces so services can be tested against in-memory fakes.

Exports:
    IObjectStore: Blob/object storage
    IGranuleStore: Granule records
    ICollectionStore: Collection records
    IExecutionStore: Workflow execution records
    IPdrStore: PDR records
    ICatalogClient: CMR publish/unpublish
    IWorkflowLauncher: Workflow and bulk operation starts
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from core.models import (
    BulkOperationMessage,
    CollectionRecord,
    ExecutionRecord,
    FileLocation,
    GranuleFile,
    GranuleRecord,
    GranuleStatus,
    MetadataFormat,
    PdrRecord,
    WorkflowStartMessage,
)


class IObjectStore(ABC):
    """
    Interface for object store operations.

    Implementations raise StorageError for infrastructure failures and
    ResourceNotFoundError when reading an object that does not exist.
    """

    @abstractmethod
    def object_exists(self, location: FileLocation) -> bool:
        """HEAD-equivalent existence check. Read-only."""
        pass

    @abstractmethod
    def copy_object(self, source: FileLocation, target: FileLocation) -> None:
        """
        Copy source to target, overwriting target if present.

        Blocks until the copy has completed.
        """
        pass

    @abstractmethod
    def delete_object(self, location: FileLocation) -> bool:
        """
        Delete an object.

        Returns:
            True if deleted, False if it was already absent
        """
        pass

    @abstractmethod
    def read_object(self, location: FileLocation) -> bytes:
        """Read the full object body."""
        pass

    @abstractmethod
    def write_object(
        self,
        location: FileLocation,
        data: bytes,
        content_type: Optional[str] = None
    ) -> None:
        """Write (overwrite) an object."""
        pass


class IGranuleStore(ABC):
    """
    Interface for granule record persistence.

    Last write wins; no operation spans more than one record.
    """

    @abstractmethod
    def get(self, granule_id: str) -> Optional[GranuleRecord]:
        pass

    @abstractmethod
    def create(self, granule: GranuleRecord) -> bool:
        """
        Insert a new granule record.

        Returns:
            False if a record with the same id already exists
        """
        pass

    @abstractmethod
    def save(self, granule: GranuleRecord) -> GranuleRecord:
        """Upsert the full record, refreshing updated_at."""
        pass

    @abstractmethod
    def update_status(
        self,
        granule_id: str,
        status: GranuleStatus,
        error: Optional[Dict] = None,
        execution: Optional[str] = None
    ) -> bool:
        """
        Update status (and optionally error/execution) of one granule.

        Returns:
            False if the granule does not exist
        """
        pass

    @abstractmethod
    def delete(self, granule_id: str) -> bool:
        pass

    @abstractmethod
    def list_granules(
        self,
        status: Optional[GranuleStatus] = None,
        collection_id: Optional[str] = None,
        published: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Tuple[List[GranuleRecord], int]:
        """
        Filtered page of granules ordered by updated_at descending.

        Returns:
            (page of records, total matching count)
        """
        pass

    @abstractmethod
    def count_by_status(self, pdr_name: str) -> Dict[GranuleStatus, int]:
        """Granule status counts for every granule parsed from pdr_name."""
        pass

    @abstractmethod
    def list_files_at_location(self, bucket: str, key_prefix: str = "") -> List[Tuple[str, GranuleFile]]:
        """
        Granule files recorded under bucket/key_prefix.

        Returns:
            (granule_id, file) pairs
        """
        pass


class ICollectionStore(ABC):
    """Interface for collection record persistence."""

    @abstractmethod
    def get(self, name: str, version: str) -> Optional[CollectionRecord]:
        pass

    @abstractmethod
    def save(self, collection: CollectionRecord) -> CollectionRecord:
        pass


class IExecutionStore(ABC):
    """Interface for workflow execution record persistence."""

    @abstractmethod
    def get(self, arn: str) -> Optional[ExecutionRecord]:
        pass

    @abstractmethod
    def save(self, execution: ExecutionRecord) -> ExecutionRecord:
        """Upsert by arn."""
        pass


class IPdrStore(ABC):
    """Interface for PDR record persistence."""

    @abstractmethod
    def get(self, pdr_name: str) -> Optional[PdrRecord]:
        pass

    @abstractmethod
    def save(self, pdr: PdrRecord) -> PdrRecord:
        """Upsert by pdr_name."""
        pass


class ICatalogClient(ABC):
    """
    Interface for the CMR catalog.

    Implementations raise CatalogError on any failure.
    """

    @abstractmethod
    def publish_granule(
        self,
        granule: GranuleRecord,
        metadata: bytes,
        metadata_format: MetadataFormat
    ) -> str:
        """
        Publish (or re-publish) granule metadata.

        Returns:
            cmr_link for the published concept
        """
        pass

    @abstractmethod
    def delete_granule(self, granule: GranuleRecord) -> None:
        """Remove the granule from the catalog. Missing entries are not an error."""
        pass


class IWorkflowLauncher(ABC):
    """
    Interface for starting work in the external workflow runtime.

    Implementations raise WorkflowLaunchError when a message cannot be
    delivered.
    """

    @abstractmethod
    def start_workflow(self, message: WorkflowStartMessage, queue_name: Optional[str] = None) -> str:
        """
        Queue a workflow start.

        Args:
            message: Start request
            queue_name: Target queue; the launcher default when None

        Returns:
            Message ID
        """
        pass

    @abstractmethod
    def submit_bulk_operation(self, message: BulkOperationMessage) -> str:
        """Queue a bulk granule operation. Returns the message ID."""
        pass
