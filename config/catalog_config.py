"""
CMR Catalog Configuration.

Exports:
    CatalogConfig: CMR client settings
"""

import os
from typing import Mapping, Optional
from pydantic import BaseModel, Field

from .defaults import CatalogDefaults, env_int


class CatalogConfig(BaseModel):
    """
    Settings for the CMR ingest API client.

    Granules are published under /ingest/providers/{provider}/granules/{native_id}.
    """

    base_url: str = Field(
        default=CatalogDefaults.BASE_URL,
        description="CMR root URL"
    )

    provider: str = Field(
        default="",
        description="CMR provider id owning the granules"
    )

    client_id: str = Field(
        default=CatalogDefaults.CLIENT_ID,
        description="Client-Id header sent with every CMR call"
    )

    timeout_seconds: int = Field(
        default=CatalogDefaults.TIMEOUT_SECONDS,
        ge=1,
        description="HTTP timeout per CMR call"
    )

    token: Optional[str] = Field(
        default=None,
        repr=False,
        description="Bearer token for CMR ingest"
    )

    def debug_dict(self) -> dict:
        """Debug output with masked token."""
        return {
            "base_url": self.base_url,
            "provider": self.provider,
            "client_id": self.client_id,
            "timeout_seconds": self.timeout_seconds,
            "token": "***MASKED***" if self.token else None,
        }

    @classmethod
    def from_environment(cls, env: Optional[Mapping[str, str]] = None) -> "CatalogConfig":
        """Load from environment variables."""
        env = os.environ if env is None else env
        return cls(
            base_url=env.get("CMR_BASE_URL", CatalogDefaults.BASE_URL),
            provider=env.get("CMR_PROVIDER", ""),
            client_id=env.get("CMR_CLIENT_ID", CatalogDefaults.CLIENT_ID),
            timeout_seconds=env_int(env, "CMR_TIMEOUT_SECONDS", CatalogDefaults.TIMEOUT_SECONDS),
            token=env.get("CMR_TOKEN"),
        )
