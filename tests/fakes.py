"""
In-memory fakes of every external collaborator.

Each fake implements the matching interface from interfaces/repository.py
and records the calls made against it so tests can assert on side
effects (or their absence).
"""

import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set, Tuple

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
from exceptions import CatalogError, ResourceNotFoundError, StorageError, WorkflowLaunchError
from interfaces.repository import (
    ICatalogClient,
    ICollectionStore,
    IExecutionStore,
    IGranuleStore,
    IObjectStore,
    IPdrStore,
    IWorkflowLauncher,
)


class FakeObjectStore(IObjectStore):
    """Thread-safe dict of FileLocation -> bytes."""

    def __init__(self):
        self.objects: Dict[FileLocation, bytes] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail_copy: Set[str] = set()      # file keys whose copy raises
        self.fail_delete: Set[str] = set()    # file keys whose delete raises
        self.fail_exists = False
        self._lock = threading.Lock()

    def put(self, bucket: str, key: str, data: bytes = b"data") -> FileLocation:
        location = FileLocation(bucket=bucket, key=key)
        self.objects[location] = data
        return location

    def has(self, bucket: str, key: str) -> bool:
        return FileLocation(bucket=bucket, key=key) in self.objects

    def mutating_calls(self) -> List[Tuple[str, str]]:
        return [c for c in self.calls if c[0] in ("copy", "delete", "write")]

    def _record(self, op: str, detail: str) -> None:
        with self._lock:
            self.calls.append((op, detail))

    def object_exists(self, location: FileLocation) -> bool:
        self._record("exists", str(location))
        if self.fail_exists:
            raise StorageError(f"exists check failed for {location}")
        return location in self.objects

    def copy_object(self, source: FileLocation, target: FileLocation) -> None:
        self._record("copy", f"{source} -> {target}")
        if source.key in self.fail_copy:
            raise StorageError(f"copy failed for {source}")
        with self._lock:
            if source not in self.objects:
                raise ResourceNotFoundError(f"Object not found: {source}")
            self.objects[target] = self.objects[source]

    def delete_object(self, location: FileLocation) -> bool:
        self._record("delete", str(location))
        if location.key in self.fail_delete:
            raise StorageError(f"delete failed for {location}")
        with self._lock:
            return self.objects.pop(location, None) is not None

    def read_object(self, location: FileLocation) -> bytes:
        self._record("read", str(location))
        if location not in self.objects:
            raise ResourceNotFoundError(f"Object not found: {location}")
        return self.objects[location]

    def write_object(self, location: FileLocation, data: bytes, content_type: Optional[str] = None) -> None:
        self._record("write", str(location))
        with self._lock:
            self.objects[location] = data


class FakeGranuleStore(IGranuleStore):
    def __init__(self, *granules: GranuleRecord):
        self.records: Dict[str, GranuleRecord] = {}
        self.saves = 0
        self.fail_save = False
        for granule in granules:
            self.records[granule.granule_id] = granule.model_copy(deep=True)

    def get(self, granule_id: str) -> Optional[GranuleRecord]:
        record = self.records.get(granule_id)
        return record.model_copy(deep=True) if record else None

    def create(self, granule: GranuleRecord) -> bool:
        if granule.granule_id in self.records:
            return False
        self.records[granule.granule_id] = granule.model_copy(deep=True)
        return True

    def save(self, granule: GranuleRecord) -> GranuleRecord:
        from exceptions import DatabaseError

        if self.fail_save:
            raise DatabaseError(f"save failed for {granule.granule_id}")
        stored = granule.model_copy(deep=True)
        stored.touch()
        self.records[granule.granule_id] = stored
        self.saves += 1
        return stored.model_copy(deep=True)

    def update_status(
        self,
        granule_id: str,
        status: GranuleStatus,
        error: Optional[Dict] = None,
        execution: Optional[str] = None
    ) -> bool:
        record = self.records.get(granule_id)
        if record is None:
            return False
        record.status = status
        record.error = error
        if execution:
            record.execution = execution
        record.touch()
        return True

    def delete(self, granule_id: str) -> bool:
        return self.records.pop(granule_id, None) is not None

    def list_granules(
        self,
        status: Optional[GranuleStatus] = None,
        collection_id: Optional[str] = None,
        published: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Tuple[List[GranuleRecord], int]:
        matches = [
            g for g in self.records.values()
            if (status is None or g.status == status)
            and (collection_id is None or g.collection_id == collection_id)
            and (published is None or g.published == published)
        ]
        matches.sort(key=lambda g: g.updated_at, reverse=True)
        return [g.model_copy(deep=True) for g in matches[offset:offset + limit]], len(matches)

    def count_by_status(self, pdr_name: str) -> Dict[GranuleStatus, int]:
        counts: Dict[GranuleStatus, int] = {}
        for granule in self.records.values():
            if granule.pdr_name == pdr_name:
                counts[granule.status] = counts.get(granule.status, 0) + 1
        return counts

    def list_files_at_location(self, bucket: str, key_prefix: str = "") -> List[Tuple[str, GranuleFile]]:
        return [
            (g.granule_id, f)
            for g in self.records.values()
            for f in g.files
            if f.bucket == bucket and f.key.startswith(key_prefix)
        ]


class FakeCollectionStore(ICollectionStore):
    def __init__(self, *collections: CollectionRecord):
        self.records = {(c.name, c.version): c for c in collections}

    def get(self, name: str, version: str) -> Optional[CollectionRecord]:
        return self.records.get((name, version))

    def save(self, collection: CollectionRecord) -> CollectionRecord:
        self.records[(collection.name, collection.version)] = collection
        return collection


class FakeExecutionStore(IExecutionStore):
    def __init__(self, *executions: ExecutionRecord):
        self.records = {e.arn: e for e in executions}

    def get(self, arn: str) -> Optional[ExecutionRecord]:
        return self.records.get(arn)

    def save(self, execution: ExecutionRecord) -> ExecutionRecord:
        self.records[execution.arn] = execution
        return execution


class FakePdrStore(IPdrStore):
    def __init__(self):
        self.records: Dict[str, PdrRecord] = {}

    def get(self, pdr_name: str) -> Optional[PdrRecord]:
        return self.records.get(pdr_name)

    def save(self, pdr: PdrRecord) -> PdrRecord:
        self.records[pdr.pdr_name] = pdr
        return pdr


class FakeCatalog(ICatalogClient):
    def __init__(self):
        self.published: List[Tuple[str, bytes, MetadataFormat]] = []
        self.deleted: List[str] = []
        self.fail = False

    def publish_granule(self, granule: GranuleRecord, metadata: bytes, metadata_format: MetadataFormat) -> str:
        if self.fail:
            raise CatalogError(f"CMR publish failed for {granule.granule_id}: HTTP 500")
        self.published.append((granule.granule_id, metadata, metadata_format))
        return f"https://cmr.test/search/concepts/G{len(self.published)}-TEST"

    def delete_granule(self, granule: GranuleRecord) -> None:
        if self.fail:
            raise CatalogError(f"CMR delete failed for {granule.granule_id}: HTTP 500")
        self.deleted.append(granule.granule_id)


class FakeLauncher(IWorkflowLauncher):
    def __init__(self):
        self.started: List[Tuple[WorkflowStartMessage, Optional[str]]] = []
        self.bulk: List[BulkOperationMessage] = []
        self.fail = False

    def start_workflow(self, message: WorkflowStartMessage, queue_name: Optional[str] = None) -> str:
        if self.fail:
            raise WorkflowLaunchError("Service Bus unavailable")
        self.started.append((message, queue_name))
        return message.message_id

    def submit_bulk_operation(self, message: BulkOperationMessage) -> str:
        if self.fail:
            raise WorkflowLaunchError("Service Bus unavailable")
        self.bulk.append(message)
        return message.async_operation_id


def utc(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)
