"""
Azure Functions entry point for the granule operations API.

Composition root: configuration is read from the environment once here,
every repository and service is constructed explicitly from it, and the
triggers are registered against those instances.

Architecture:
    HTTP API -> GranuleLifecycle -> GranuleMover -> Blob storage / CMR
                      |                                   |
               Service Bus (workflow starts)        PostgreSQL records
                      |
    Workflow runtime -> Service Bus (execution events) -> GranuleLifecycle

Exports:
    app: Azure Function App instance

Endpoints:
    GET    /api/granules
    GET    /api/granules/{granuleId}
    PUT    /api/granules/{granuleId}
    DELETE /api/granules/{granuleId}
    POST   /api/granules/bulk

Queue Triggers:
    workflow events queue (SERVICE_BUS_EVENTS_QUEUE) -> handle_execution_event
"""

import azure.functions as func

from config import AppConfig, debug_config
from infrastructure import RepositoryFactory
from services import BulkOperationService, ConflictDetector, GranuleLifecycle, GranuleMover
from triggers.granules import create_granules_blueprint
from triggers.workflow_events import process_workflow_event
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "FunctionApp")


# ============================================================================
# COMPOSITION
# ============================================================================

config = AppConfig.from_environment()
LoggerFactory.configure(config.log_level)
logger.info(f"Configuration loaded: {debug_config(config)}")

repos = RepositoryFactory.create_repositories(config)

mover = GranuleMover(
    object_store=repos['object_store'],
    granule_store=repos['granule_store'],
    storage=config.storage,
    catalog=repos['catalog'],
    conflict_detector=ConflictDetector(
        repos['object_store'],
        config.storage.max_parallel,
        repos['granule_store']
    )
)

lifecycle = GranuleLifecycle(
    config=config,
    granule_store=repos['granule_store'],
    collection_store=repos['collection_store'],
    execution_store=repos['execution_store'],
    pdr_store=repos['pdr_store'],
    object_store=repos['object_store'],
    catalog=repos['catalog'],
    launcher=repos['launcher'],
    mover=mover
)

bulk_service = BulkOperationService(repos['launcher'], config.metrics)


# ============================================================================
# FUNCTION APP
# ============================================================================

app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)

app.register_functions(create_granules_blueprint(lifecycle, bulk_service, config))
logger.info("Blueprints registered: granules")


@app.service_bus_queue_trigger(
    arg_name="msg",
    queue_name=config.queues.events_queue,
    connection="ServiceBusConnection"
)
def process_workflow_events(msg: func.ServiceBusMessage) -> None:
    """
    Apply execution status reports from the workflow runtime.

    Exceptions propagate so Service Bus retries the message and
    dead-letters it after the max delivery count.
    """
    process_workflow_event(lifecycle, msg.get_body())
