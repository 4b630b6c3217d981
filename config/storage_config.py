"""
Blob Storage Configuration.

Granule files live in Azure Blob Storage. A "bucket" in granule records
is a blob container name and a "key" is the blob name inside it.

Exports:
    StorageConfig: Object store configuration
"""

import os
from typing import Mapping, Optional
from pydantic import BaseModel, Field

from exceptions import ConfigurationError
from .defaults import StorageDefaults, env_int


class StorageConfig(BaseModel):
    """
    Azure Blob Storage configuration.

    Authentication uses the connection string when present, otherwise
    DefaultAzureCredential against the named account.
    """

    storage_account_name: Optional[str] = Field(
        default=None,
        description="Storage account name (managed identity auth)"
    )

    connection_string: Optional[str] = Field(
        default=None,
        repr=False,
        description="Storage connection string (local development, Azurite)"
    )

    distribution_endpoint: str = Field(
        default=StorageDefaults.DISTRIBUTION_ENDPOINT,
        description="Base URL for public file links: {distribution_endpoint}{bucket}/{key}"
    )

    max_parallel: int = Field(
        default=StorageDefaults.MAX_PARALLEL,
        ge=1,
        description="Maximum concurrent object store calls per move stage"
    )

    @property
    def account_url(self) -> str:
        """Blob service endpoint for the configured account."""
        return f"https://{self.storage_account_name}.blob.core.windows.net"

    def distribution_url(self, bucket: str, key: str) -> str:
        """Public URL of an object as embedded in CMR metadata."""
        endpoint = self.distribution_endpoint
        if not endpoint.endswith("/"):
            endpoint += "/"
        return f"{endpoint}{bucket}/{key}"

    def debug_dict(self) -> dict:
        """Debug output with masked connection string."""
        return {
            "storage_account_name": self.storage_account_name,
            "connection_string": "***MASKED***" if self.connection_string else None,
            "distribution_endpoint": self.distribution_endpoint,
            "max_parallel": self.max_parallel,
        }

    @classmethod
    def from_environment(cls, env: Optional[Mapping[str, str]] = None) -> "StorageConfig":
        """Load from environment variables."""
        env = os.environ if env is None else env
        account = env.get("AZURE_STORAGE_ACCOUNT_NAME")
        connection_string = env.get("AZURE_STORAGE_CONNECTION_STRING")
        if not account and not connection_string:
            raise ConfigurationError(
                "AZURE_STORAGE_ACCOUNT_NAME or AZURE_STORAGE_CONNECTION_STRING must be set"
            )
        return cls(
            storage_account_name=account,
            connection_string=connection_string,
            distribution_endpoint=env.get("DISTRIBUTION_ENDPOINT", StorageDefaults.DISTRIBUTION_ENDPOINT),
            max_parallel=env_int(env, "MAX_PARALLEL_FILE_OPS", StorageDefaults.MAX_PARALLEL),
        )
