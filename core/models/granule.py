"""
Granule Database Models - Persistence Boundary

This module defines GranuleRecord and its owned GranuleFile entries.
JSON field names follow the public API (camelCase); Python attributes
are snake_case and both are accepted on input.

Exports:
    GranuleFile: One file belonging to a granule
    GranuleRecord: Granule record as stored and returned by the API
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from .destination import FileLocation
from .enums import FileType, GranuleStatus


CMR_METADATA_SUFFIXES = (".cmr.xml", ".cmr.json")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GranuleFile(BaseModel):
    """
    A file owned by exactly one granule.

    duplicate_found is set only when a move overwrote an object that
    the conflict check had not seen (a racing writer created it).
    """
    model_config = ConfigDict(populate_by_name=True)

    bucket: str = Field(..., min_length=1)
    key: str = Field(..., min_length=1)
    file_name: Optional[str] = Field(default=None, alias="fileName")
    size: Optional[int] = Field(default=None, ge=0)
    checksum: Optional[str] = Field(default=None)
    checksum_type: Optional[str] = Field(default=None, alias="checksumType")
    type: Optional[FileType] = Field(default=None)
    duplicate_found: Optional[bool] = Field(default=None, alias="duplicate_found")

    @model_validator(mode="after")
    def _default_file_name(self) -> "GranuleFile":
        if not self.file_name:
            self.file_name = self.key.rsplit("/", 1)[-1]
        return self

    @property
    def location(self) -> FileLocation:
        return FileLocation(bucket=self.bucket, key=self.key)

    @property
    def s3_uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"

    @property
    def is_cmr_metadata(self) -> bool:
        """True for CMR metadata documents (.cmr.xml / .cmr.json)."""
        return self.file_name.lower().endswith(CMR_METADATA_SUFFIXES)

    def at(self, location: FileLocation, duplicate_found: bool = False) -> "GranuleFile":
        """Copy of this file relocated to location."""
        update: Dict[str, Any] = {"bucket": location.bucket, "key": location.key}
        if duplicate_found:
            update["duplicate_found"] = True
        return self.model_copy(update=update)


class GranuleRecord(BaseModel):
    """
    Database and API representation of a granule.

    Invariants:
    - A published granule cannot be deleted.
    - cmr_link is present only while published.
    """
    model_config = ConfigDict(populate_by_name=True)

    granule_id: str = Field(..., min_length=1, alias="granuleId")
    collection_id: str = Field(..., min_length=1, alias="collectionId")
    status: GranuleStatus = Field(default=GranuleStatus.RUNNING)
    published: bool = Field(default=False)
    cmr_link: Optional[str] = Field(default=None, alias="cmrLink")
    execution: Optional[str] = Field(default=None, description="ARN of the last execution")
    pdr_name: Optional[str] = Field(default=None, alias="pdrName")
    provider: Optional[str] = Field(default=None)
    files: List[GranuleFile] = Field(default_factory=list)
    error: Optional[Dict[str, Any]] = Field(default=None)

    created_at: datetime = Field(default_factory=_utc_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=_utc_now, alias="updatedAt")
    processing_start_date_time: Optional[datetime] = Field(default=None, alias="processingStartDateTime")
    processing_end_date_time: Optional[datetime] = Field(default=None, alias="processingEndDateTime")
    time_to_preprocess: Optional[float] = Field(default=None, alias="timeToPreprocess")
    time_to_archive: Optional[float] = Field(default=None, alias="timeToArchive")

    @computed_field
    @property
    def duration(self) -> float:
        """Seconds between creation and last update."""
        return max((self.updated_at - self.created_at).total_seconds(), 0.0)

    def touch(self) -> None:
        self.updated_at = _utc_now()

    def file_names(self) -> List[str]:
        return [f.file_name for f in self.files]

    def metadata_files(self) -> List[GranuleFile]:
        return [f for f in self.files if f.is_cmr_metadata]

    def to_api_dict(self) -> Dict[str, Any]:
        """JSON-safe camelCase dict as returned by the granules API."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
