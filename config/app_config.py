"""
Main Application Configuration.

Composes domain-specific configuration modules:
    - StorageConfig (Blob storage, fan-out limits)
    - DatabaseConfig (PostgreSQL record store)
    - QueueConfig (Service Bus queues)
    - CatalogConfig (CMR client)
    - MetricsConfig (search backend for bulk queries)

Exports:
    AppConfig: Main configuration class

Dependencies:
    pydantic: BaseModel for configuration validation
    config.defaults: Default value constants

Pattern:
    Composition over inheritance - domain configs are composed, not inherited.
    AppConfig is built once in function_app.py and handed to each component
    at construction; components never read the environment themselves.
"""

import os
from typing import Mapping, Optional
from pydantic import BaseModel, Field

from .storage_config import StorageConfig
from .database_config import DatabaseConfig
from .queue_config import QueueConfig
from .catalog_config import CatalogConfig
from .metrics_config import MetricsConfig
from .defaults import AppDefaults, env_flag, env_int, require_env


# ============================================================================
# APPLICATION CONFIGURATION
# ============================================================================

class AppConfig(BaseModel):
    """
    Application configuration - composition of domain configs.
    """

    # ========================================================================
    # Stack settings
    # ========================================================================

    stack_name: str = Field(
        ...,
        description="Deployment stack name, reported in GET /granules meta"
    )

    environment: str = Field(
        default=AppDefaults.ENVIRONMENT,
        description="Deployment environment (dev, test, prod)"
    )

    log_level: str = Field(
        default=AppDefaults.LOG_LEVEL,
        description="Root log level"
    )

    debug_mode: bool = Field(
        default=AppDefaults.DEBUG_MODE,
        description="Include exception type and stack detail in 500 responses"
    )

    move_timeout_seconds: int = Field(
        default=AppDefaults.MOVE_TIMEOUT_SECONDS,
        ge=0,
        description="Deadline for a whole granule move; 0 disables it"
    )

    # ========================================================================
    # Domain configurations
    # ========================================================================

    storage: StorageConfig
    database: DatabaseConfig
    queues: QueueConfig
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @property
    def move_timeout(self) -> Optional[float]:
        """Move deadline in seconds, None when disabled."""
        return float(self.move_timeout_seconds) if self.move_timeout_seconds > 0 else None

    @classmethod
    def from_environment(cls, env: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """
        Load the full configuration from environment variables.

        Raises:
            ConfigurationError: If a mandatory variable is missing
        """
        env = os.environ if env is None else env
        return cls(
            stack_name=require_env(env, "STACK_NAME"),
            environment=env.get("ENVIRONMENT", AppDefaults.ENVIRONMENT),
            log_level=env.get("LOG_LEVEL", AppDefaults.LOG_LEVEL).upper(),
            debug_mode=env_flag(env, "DEBUG_MODE", AppDefaults.DEBUG_MODE),
            move_timeout_seconds=env_int(env, "MOVE_TIMEOUT_SECONDS", AppDefaults.MOVE_TIMEOUT_SECONDS),
            storage=StorageConfig.from_environment(env),
            database=DatabaseConfig.from_environment(env),
            queues=QueueConfig.from_environment(env),
            catalog=CatalogConfig.from_environment(env),
            metrics=MetricsConfig.from_environment(env),
        )
