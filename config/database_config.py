"""
PostgreSQL Record Store Configuration.

Granule, collection, execution and PDR records are stored as rows in
one schema of a PostgreSQL database.

Exports:
    DatabaseConfig: Record store configuration
"""

import os
from typing import Mapping, Optional
from pydantic import BaseModel, Field

from .defaults import DatabaseDefaults, env_int, require_env


class DatabaseConfig(BaseModel):
    """
    PostgreSQL configuration with password authentication.
    """

    # Connection settings
    host: str = Field(
        ...,
        description="PostgreSQL server hostname",
        examples=["granuleops.postgres.database.azure.com"]
    )

    port: int = Field(
        default=DatabaseDefaults.PORT,
        description="PostgreSQL server port number"
    )

    user: Optional[str] = Field(
        default=None,
        description="PostgreSQL username"
    )

    password: Optional[str] = Field(
        default=None,
        repr=False,
        description="PostgreSQL password from POSTGRES_PASSWORD"
    )

    database: str = Field(
        ...,
        description="PostgreSQL database name"
    )

    # Schema and table names
    db_schema: str = Field(
        default=DatabaseDefaults.SCHEMA,
        description="Schema holding all record tables"
    )

    granules_table: str = Field(default=DatabaseDefaults.GRANULES_TABLE)
    collections_table: str = Field(default=DatabaseDefaults.COLLECTIONS_TABLE)
    executions_table: str = Field(default=DatabaseDefaults.EXECUTIONS_TABLE)
    pdrs_table: str = Field(default=DatabaseDefaults.PDRS_TABLE)

    connection_timeout_seconds: int = Field(
        default=DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS,
        description="Connect timeout passed to psycopg"
    )

    @property
    def connection_string(self) -> str:
        """Build PostgreSQL connection string (libpq keyword format)."""
        parts = [
            f"host={self.host}",
            f"port={self.port}",
            f"dbname={self.database}",
            f"connect_timeout={self.connection_timeout_seconds}",
        ]
        if self.user:
            parts.append(f"user={self.user}")
        if self.password:
            parts.append(f"password={self.password}")
        return " ".join(parts)

    def debug_dict(self) -> dict:
        """Debug output with masked password."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "database": self.database,
            "password": "***MASKED***" if self.password else None,
            "schema": self.db_schema,
            "tables": {
                "granules": self.granules_table,
                "collections": self.collections_table,
                "executions": self.executions_table,
                "pdrs": self.pdrs_table,
            },
        }

    @classmethod
    def from_environment(cls, env: Optional[Mapping[str, str]] = None) -> "DatabaseConfig":
        """Load from environment variables."""
        env = os.environ if env is None else env
        return cls(
            host=require_env(env, "POSTGRES_HOST"),
            port=env_int(env, "POSTGRES_PORT", DatabaseDefaults.PORT),
            user=env.get("POSTGRES_USER"),
            password=env.get("POSTGRES_PASSWORD"),
            database=require_env(env, "POSTGRES_DATABASE"),
            db_schema=env.get("POSTGRES_SCHEMA", DatabaseDefaults.SCHEMA),
            granules_table=env.get("GRANULES_TABLE", DatabaseDefaults.GRANULES_TABLE),
            collections_table=env.get("COLLECTIONS_TABLE", DatabaseDefaults.COLLECTIONS_TABLE),
            executions_table=env.get("EXECUTIONS_TABLE", DatabaseDefaults.EXECUTIONS_TABLE),
            pdrs_table=env.get("PDRS_TABLE", DatabaseDefaults.PDRS_TABLE),
            connection_timeout_seconds=env_int(
                env, "POSTGRES_CONNECTION_TIMEOUT", DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS
            ),
        )
