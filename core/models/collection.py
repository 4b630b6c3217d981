"""
Collection Model.

A collection is identified by name and version, joined as
"{name}___{version}" wherever a single id is needed.

Exports:
    CollectionRecord: Collection configuration record
    construct_collection_id: name + version -> collection id
    deconstruct_collection_id: collection id -> (name, version)
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from exceptions import ValidationError
from .enums import DuplicateHandling


COLLECTION_ID_SEPARATOR = "___"


def construct_collection_id(name: str, version: str) -> str:
    return f"{name}{COLLECTION_ID_SEPARATOR}{version}"


def deconstruct_collection_id(collection_id: str) -> Tuple[str, str]:
    """
    Split a collection id into name and version.

    Raises:
        ValidationError: If the id has no separator or an empty part
    """
    name, sep, version = collection_id.rpartition(COLLECTION_ID_SEPARATOR)
    if not sep or not name or not version:
        raise ValidationError(
            f"Invalid collectionId {collection_id!r}: expected name{COLLECTION_ID_SEPARATOR}version"
        )
    return name, version


class CollectionRecord(BaseModel):
    """Collection configuration shared by all of its granules."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    duplicate_handling: DuplicateHandling = Field(
        default=DuplicateHandling.ERROR,
        alias="duplicateHandling"
    )
    url_path: Optional[str] = Field(default=None)
    files: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="Per-file ingest config (regex, bucket, sampleFileName)"
    )

    @property
    def collection_id(self) -> str:
        return construct_collection_id(self.name, self.version)

    @property
    def allows_overwrite(self) -> bool:
        return self.duplicate_handling == DuplicateHandling.REPLACE
