"""
Repository Factory - Central Creation Point

This module provides the factory for creating all repository and adapter
instances. It is the single point for instantiation, so function_app.py
can wire services from configuration without knowing concrete classes.

Current Support:
- Azure Blob object store
- PostgreSQL granule / collection / execution / PDR stores
- CMR catalog client
- Service Bus workflow launcher

Exports:
    RepositoryFactory: Static factory methods per collaborator
"""

from typing import Dict, Any

from config import AppConfig, CatalogConfig, DatabaseConfig, QueueConfig, StorageConfig
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.FACTORY, "RepositoryFactory")


# ============================================================================
# REPOSITORY FACTORY - Central creation point
# ============================================================================

class RepositoryFactory:
    """
    Factory for creating repository instances.

    Every method takes its domain config explicitly; nothing is read
    from the environment here.
    """

    @staticmethod
    def create_repositories(config: AppConfig) -> Dict[str, Any]:
        """
        Create every collaborator the granule services need.

        Args:
            config: Application configuration

        Returns:
            Dictionary with object_store, granule_store, collection_store,
            execution_store, pdr_store, catalog and launcher

        Example:
            repos = RepositoryFactory.create_repositories(config)
            granules = repos['granule_store']
        """
        logger.info("Creating granule repositories")
        repos = {
            'object_store': RepositoryFactory.create_object_store(config.storage),
            'granule_store': RepositoryFactory.create_granule_store(config.database),
            'collection_store': RepositoryFactory.create_collection_store(config.database),
            'execution_store': RepositoryFactory.create_execution_store(config.database),
            'pdr_store': RepositoryFactory.create_pdr_store(config.database),
            'catalog': RepositoryFactory.create_catalog_client(config.catalog),
            'launcher': RepositoryFactory.create_workflow_launcher(config.queues),
        }
        logger.info("All repositories created successfully")
        return repos

    @staticmethod
    def create_object_store(config: StorageConfig) -> 'BlobObjectStore':
        from .blob import BlobObjectStore

        logger.debug(f"Creating BlobObjectStore (account: {config.storage_account_name or 'connection string'})")
        return BlobObjectStore(config)

    @staticmethod
    def create_granule_store(config: DatabaseConfig) -> 'PostgreSQLGranuleStore':
        from .postgresql import PostgreSQLGranuleStore
        return PostgreSQLGranuleStore(config)

    @staticmethod
    def create_collection_store(config: DatabaseConfig) -> 'PostgreSQLCollectionStore':
        from .postgresql import PostgreSQLCollectionStore
        return PostgreSQLCollectionStore(config)

    @staticmethod
    def create_execution_store(config: DatabaseConfig) -> 'PostgreSQLExecutionStore':
        from .postgresql import PostgreSQLExecutionStore
        return PostgreSQLExecutionStore(config)

    @staticmethod
    def create_pdr_store(config: DatabaseConfig) -> 'PostgreSQLPdrStore':
        from .postgresql import PostgreSQLPdrStore
        return PostgreSQLPdrStore(config)

    @staticmethod
    def create_catalog_client(config: CatalogConfig) -> 'CmrClient':
        from .cmr_client import CmrClient

        logger.debug(f"Creating CmrClient for provider {config.provider or '(unset)'}")
        return CmrClient(config)

    @staticmethod
    def create_workflow_launcher(config: QueueConfig) -> 'ServiceBusWorkflowLauncher':
        """
        Create the Service Bus workflow launcher.

        Uses connection string when configured, otherwise
        DefaultAzureCredential against the namespace.
        """
        from .service_bus import ServiceBusWorkflowLauncher

        logger.info("Creating Service Bus workflow launcher")
        return ServiceBusWorkflowLauncher(config)
