"""
Service Bus Queue Configuration.

Queue Architecture:
    - workflow_queue: Workflow start messages (applyWorkflow)
    - background_queue: Reingest start messages
    - bulk_queue: Asynchronous bulk granule operations
    - events_queue: Workflow execution status reports consumed by this app

Exports:
    QueueConfig: Pydantic queue configuration model
    QueueNames: Queue name constants
"""

import os
from typing import Mapping, Optional
from pydantic import BaseModel, Field

from exceptions import ConfigurationError
from .defaults import QueueDefaults, env_int


# ============================================================================
# QUEUE NAMES
# ============================================================================

class QueueNames:
    """Queue name constants for easy access."""
    WORKFLOW = QueueDefaults.WORKFLOW_QUEUE
    BACKGROUND = QueueDefaults.BACKGROUND_QUEUE
    BULK = QueueDefaults.BULK_QUEUE
    EVENTS = QueueDefaults.EVENTS_QUEUE


# ============================================================================
# QUEUE CONFIGURATION
# ============================================================================

class QueueConfig(BaseModel):
    """
    Azure Service Bus queue configuration.

    Either connection_string or fully_qualified_namespace must be set.
    """

    # Service Bus connection
    connection_string: Optional[str] = Field(
        default=None,
        repr=False,
        description="Service Bus connection string (ServiceBusConnection app setting)"
    )

    fully_qualified_namespace: Optional[str] = Field(
        default=None,
        description="Service Bus namespace for managed identity auth (alternative to connection string)"
    )

    # Queue names
    workflow_queue: str = Field(
        default=QueueDefaults.WORKFLOW_QUEUE,
        description="Queue receiving workflow start messages"
    )

    background_queue: str = Field(
        default=QueueDefaults.BACKGROUND_QUEUE,
        description="Queue receiving reingest start messages"
    )

    bulk_queue: str = Field(
        default=QueueDefaults.BULK_QUEUE,
        description="Queue receiving bulk granule operations"
    )

    events_queue: str = Field(
        default=QueueDefaults.EVENTS_QUEUE,
        description="Queue carrying workflow execution status reports"
    )

    # Retry configuration
    max_retries: int = Field(
        default=QueueDefaults.MAX_RETRIES,
        ge=0,
        le=10,
        description="Number of retry attempts for Service Bus sends"
    )

    retry_delay_seconds: float = Field(
        default=QueueDefaults.RETRY_DELAY_SECONDS,
        ge=0,
        description="Base delay between send retries (doubles each attempt)"
    )

    def debug_dict(self) -> dict:
        """Debug output with masked connection string."""
        return {
            "connection": "***MASKED***" if self.connection_string else None,
            "fully_qualified_namespace": self.fully_qualified_namespace,
            "workflow_queue": self.workflow_queue,
            "background_queue": self.background_queue,
            "bulk_queue": self.bulk_queue,
            "events_queue": self.events_queue,
            "max_retries": self.max_retries,
        }

    @classmethod
    def from_environment(cls, env: Optional[Mapping[str, str]] = None) -> "QueueConfig":
        """Load from environment variables."""
        env = os.environ if env is None else env
        connection_string = env.get("ServiceBusConnection")
        # Check both SERVICE_BUS_NAMESPACE and Azure Functions binding variable
        namespace = (
            env.get("SERVICE_BUS_NAMESPACE")
            or env.get("ServiceBusConnection__fullyQualifiedNamespace")
        )
        if not connection_string and not namespace:
            raise ConfigurationError(
                "ServiceBusConnection or SERVICE_BUS_NAMESPACE must be set"
            )
        return cls(
            connection_string=connection_string,
            fully_qualified_namespace=namespace,
            workflow_queue=env.get("SERVICE_BUS_WORKFLOW_QUEUE", QueueDefaults.WORKFLOW_QUEUE),
            background_queue=env.get("SERVICE_BUS_BACKGROUND_QUEUE", QueueDefaults.BACKGROUND_QUEUE),
            bulk_queue=env.get("SERVICE_BUS_BULK_QUEUE", QueueDefaults.BULK_QUEUE),
            events_queue=env.get("SERVICE_BUS_EVENTS_QUEUE", QueueDefaults.EVENTS_QUEUE),
            max_retries=env_int(env, "SERVICE_BUS_RETRY_COUNT", QueueDefaults.MAX_RETRIES),
            retry_delay_seconds=env_int(env, "SERVICE_BUS_RETRY_DELAY", QueueDefaults.RETRY_DELAY_SECONDS),
        )
