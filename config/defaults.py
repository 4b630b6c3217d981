"""
Configuration Defaults - Single source of truth for all default values.

Organization:
    - AppDefaults: Stack-level settings
    - StorageDefaults: Blob storage and fan-out limits
    - DatabaseDefaults: PostgreSQL record store
    - QueueDefaults: Service Bus queue names and retry policy
    - CatalogDefaults: CMR client settings

Required Environment Variables (will fail if not set):
    STACK_NAME - Deployment stack name reported in list responses
    POSTGRES_HOST / POSTGRES_DATABASE - Record store location
    AZURE_STORAGE_ACCOUNT_NAME or AZURE_STORAGE_CONNECTION_STRING - Object store
    ServiceBusConnection or SERVICE_BUS_NAMESPACE - Workflow queues

Usage:
    from config.defaults import DatabaseDefaults

    # In Pydantic Field definitions:
    port: int = Field(default=DatabaseDefaults.PORT, ...)
"""

from typing import Mapping, Optional

from exceptions import ConfigurationError


class AppDefaults:
    """Stack-level defaults."""

    ENVIRONMENT = "dev"
    LOG_LEVEL = "INFO"
    DEBUG_MODE = False

    # Caller timeout wrapping a whole granule move. 0 disables it.
    MOVE_TIMEOUT_SECONDS = 300

    # GET /granules paging
    DEFAULT_PAGE_LIMIT = 100
    MAX_PAGE_LIMIT = 1000


class StorageDefaults:
    """Blob storage defaults."""

    DISTRIBUTION_ENDPOINT = "https://data.example.com/"

    # Concurrent object store calls per stage
    MAX_PARALLEL = 10


class DatabaseDefaults:
    """PostgreSQL record store defaults."""

    PORT = 5432
    SCHEMA = "granule_ops"
    GRANULES_TABLE = "granules"
    COLLECTIONS_TABLE = "collections"
    EXECUTIONS_TABLE = "executions"
    PDRS_TABLE = "pdrs"
    CONNECTION_TIMEOUT_SECONDS = 30


class QueueDefaults:
    """Service Bus defaults."""

    WORKFLOW_QUEUE = "workflow-starts"
    BACKGROUND_QUEUE = "background-processing"
    BULK_QUEUE = "bulk-operations"
    EVENTS_QUEUE = "workflow-events"
    MAX_RETRIES = 3
    RETRY_DELAY_SECONDS = 2


class CatalogDefaults:
    """CMR client defaults."""

    BASE_URL = "https://cmr.earthdata.nasa.gov"
    CLIENT_ID = "granule-ops"
    TIMEOUT_SECONDS = 30


def require_env(env: Mapping[str, str], name: str) -> str:
    """
    Read a mandatory environment variable.

    Raises:
        ConfigurationError: If the variable is unset or blank
    """
    value = env.get(name)
    if value is None or not value.strip():
        raise ConfigurationError(f"{name} environment variable not set")
    return value


def env_flag(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    """Read a boolean environment variable ("true"/"false")."""
    value: Optional[str] = env.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes")


def env_int(env: Mapping[str, str], name: str, default: int) -> int:
    """Read an integer environment variable, failing fast on garbage."""
    value = env.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e
