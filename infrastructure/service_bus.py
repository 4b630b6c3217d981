"""
Service Bus Workflow Launcher

Starts work in the external workflow runtime by placing JSON messages
on Azure Service Bus queues:

- workflow_queue: applyWorkflow starts
- background_queue: reingest starts
- bulk_queue: asynchronous bulk granule operations

Key Features:
- Connection string (local) or DefaultAzureCredential (Azure) auth
- Sender cache per queue
- Automatic retry with exponential backoff
- Failures surfaced as WorkflowLaunchError (HTTP 503)
"""

import time
from datetime import timedelta
from typing import Dict, Optional

from azure.servicebus import ServiceBusClient, ServiceBusMessage, ServiceBusSender
from azure.servicebus.exceptions import ServiceBusError
from azure.identity import DefaultAzureCredential
from azure.core.exceptions import AzureError
from pydantic import BaseModel

from config import QueueConfig
from core.models import BulkOperationMessage, WorkflowStartMessage
from exceptions import WorkflowLaunchError
from interfaces.repository import IWorkflowLauncher
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "ServiceBusWorkflowLauncher")


class ServiceBusWorkflowLauncher(IWorkflowLauncher):
    """
    IWorkflowLauncher implementation on Azure Service Bus queues.
    """

    MESSAGE_TTL = timedelta(hours=24)

    def __init__(self, config: QueueConfig, client: Optional[ServiceBusClient] = None):
        """
        Initialize Service Bus client with credential management.

        Args:
            config: Queue configuration
            client: Pre-built client (tests)
        """
        self.config = config
        self.max_retries = max(1, config.max_retries)
        self.retry_delay = config.retry_delay_seconds

        if client is not None:
            self.client = client
        elif config.connection_string:
            logger.info("Using Service Bus connection string authentication")
            self.client = ServiceBusClient.from_connection_string(config.connection_string)
        else:
            logger.info(f"Using DefaultAzureCredential for Service Bus namespace: {config.fully_qualified_namespace}")
            self.client = ServiceBusClient(
                fully_qualified_namespace=config.fully_qualified_namespace,
                credential=DefaultAzureCredential()
            )

        # Senders can be safely reused; receivers are never needed here
        self._senders: Dict[str, ServiceBusSender] = {}

    def _get_sender(self, queue_name: str) -> ServiceBusSender:
        if queue_name not in self._senders:
            logger.debug(f"Creating new sender for queue: {queue_name}")
            self._senders[queue_name] = self.client.get_queue_sender(queue_name)
        return self._senders[queue_name]

    def _send(
        self,
        queue_name: str,
        message: BaseModel,
        message_id: str,
        properties: Dict[str, str]
    ) -> str:
        """
        Serialize and send one message with retry.

        Returns:
            Service Bus message ID

        Raises:
            WorkflowLaunchError: When every attempt fails
        """
        sb_message = ServiceBusMessage(
            body=message.model_dump_json(by_alias=True),
            content_type="application/json",
            message_id=message_id,
            time_to_live=self.MESSAGE_TTL,
            application_properties={k: v for k, v in properties.items() if v is not None}
        )

        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                self._get_sender(queue_name).send_messages(sb_message)
                logger.info(f"Message sent to Service Bus queue {queue_name}. ID: {sb_message.message_id}")
                return sb_message.message_id
            except (ServiceBusError, AzureError) as e:
                last_error = e
                logger.warning(
                    f"Attempt {attempt + 1}/{self.max_retries} to send to {queue_name} failed: "
                    f"{type(e).__name__}: {e}"
                )
                # Drop the sender so the next attempt reconnects
                self._senders.pop(queue_name, None)
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_delay * (2 ** attempt))

        logger.error(f"Failed to send message to {queue_name} after {self.max_retries} attempts")
        raise WorkflowLaunchError(str(last_error)) from last_error

    def start_workflow(self, message: WorkflowStartMessage, queue_name: Optional[str] = None) -> str:
        queue = queue_name or self.config.workflow_queue
        logger.info(
            f"Starting workflow {message.workflow_name} for granule {message.granule_id} on {queue}"
        )
        return self._send(queue, message, message.message_id, {
            "workflow_name": message.workflow_name,
            "granule_id": message.granule_id,
            "message_type": "reingest" if message.reingest else "workflow_start",
        })

    def submit_bulk_operation(self, message: BulkOperationMessage) -> str:
        logger.info(
            f"Submitting bulk operation {message.async_operation_id} "
            f"({message.workflow_name}) to {self.config.bulk_queue}"
        )
        return self._send(self.config.bulk_queue, message, message.async_operation_id, {
            "workflow_name": message.workflow_name,
            "async_operation_id": message.async_operation_id,
            "message_type": "bulk_granules",
        })

    def close(self) -> None:
        for sender in self._senders.values():
            sender.close()
        self._senders.clear()
        self.client.close()
