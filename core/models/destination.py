"""
File Destination Models.

Exports:
    FileLocation: A bucket/key pair in the object store
    DestinationRule: Regex-routed move target for granule files
    PlannedMove: One file's current and resolved location
"""

import re
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FileLocation(BaseModel):
    """
    Immutable object store location.

    Hashable so it can key dictionaries and sets of targets.
    """
    model_config = ConfigDict(frozen=True)

    bucket: str = Field(..., min_length=1, description="Blob container name")
    key: str = Field(..., min_length=1, description="Blob name within the container")

    def __str__(self) -> str:
        return f"{self.bucket}/{self.key}"


class DestinationRule(BaseModel):
    """
    Move destination: files whose fileName matches regex go to bucket/filepath.

    Rules are evaluated in caller order; the first match wins.
    """

    regex: str = Field(..., min_length=1, description="Pattern searched against fileName")
    bucket: str = Field(..., min_length=1, description="Target container")
    filepath: str = Field(default="", description="Target prefix; the fileName is appended")

    @field_validator("regex")
    @classmethod
    def _compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid regex {value!r}: {e}") from e
        return value

    def matches(self, file_name: str) -> bool:
        return re.search(self.regex, file_name) is not None

    def target_for(self, file_name: str) -> FileLocation:
        """Location of file_name under this rule."""
        prefix = self.filepath.strip("/")
        key = f"{prefix}/{file_name}" if prefix else file_name
        return FileLocation(bucket=self.bucket, key=key)


class PlannedMove(BaseModel):
    """Resolved destination of one granule file."""
    model_config = ConfigDict(frozen=True)

    file_name: str
    source: FileLocation
    target: FileLocation

    @property
    def changes_location(self) -> bool:
        return self.source != self.target

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fileName": self.file_name,
            "source": str(self.source),
            "target": str(self.target),
        }
