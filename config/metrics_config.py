"""
Metrics Backend Configuration.

The metrics backend is the search index holding execution and granule
statistics. Bulk operations driven by a search query (instead of a list
of granule ids) need it; everything else works without it.

Environment Variables:
----------------------
METRICS_ES_HOST: Search index host
METRICS_ES_USER: Search index user
METRICS_ES_PASS: Search index password
"""

import os
from typing import Mapping, Optional
from pydantic import BaseModel, Field


class MetricsConfig(BaseModel):
    """
    Metrics backend connection settings.

    is_configured is True only when host, user and password are all set.
    """

    host: Optional[str] = Field(default=None, description="Metrics search host")
    user: Optional[str] = Field(default=None, description="Metrics search user")
    password: Optional[str] = Field(default=None, repr=False, description="Metrics search password")

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.password)

    def debug_dict(self) -> dict:
        return {
            "host": self.host,
            "user": self.user,
            "password": "***MASKED***" if self.password else None,
            "is_configured": self.is_configured,
        }

    @classmethod
    def from_environment(cls, env: Optional[Mapping[str, str]] = None) -> "MetricsConfig":
        """Load from environment variables."""
        env = os.environ if env is None else env
        return cls(
            host=env.get("METRICS_ES_HOST"),
            user=env.get("METRICS_ES_USER"),
            password=env.get("METRICS_ES_PASS"),
        )
