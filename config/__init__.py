"""
Configuration Package - Domain-Specific Configuration Modules

This package provides application configuration using a composition-based approach.

Structure:
    config/
    ├── __init__.py              # This file - exports and debug helper
    ├── app_config.py            # Main config (composes domain configs)
    ├── storage_config.py        # Blob storage
    ├── database_config.py       # PostgreSQL record store
    ├── queue_config.py          # Service Bus queues
    ├── catalog_config.py        # CMR client
    ├── metrics_config.py        # Search backend for bulk queries
    └── defaults.py              # Default values and env helpers

Usage:
    from config import AppConfig, debug_config
    config = AppConfig.from_environment()
    info = debug_config(config)  # Passwords masked
"""

from .storage_config import StorageConfig
from .database_config import DatabaseConfig
from .queue_config import QueueConfig, QueueNames
from .catalog_config import CatalogConfig
from .metrics_config import MetricsConfig
from .app_config import AppConfig


def debug_config(config: AppConfig) -> dict:
    """
    Get sanitized configuration for debugging (masks sensitive values).

    Returns:
        Dictionary with configuration values, secrets masked

    Usage:
        info = debug_config(config)
        print(info['database']['password'])  # Shows "***MASKED***"
    """
    return {
        'stack_name': config.stack_name,
        'environment': config.environment,
        'log_level': config.log_level,
        'debug_mode': config.debug_mode,
        'move_timeout_seconds': config.move_timeout_seconds,
        'storage': config.storage.debug_dict(),
        'database': config.database.debug_dict(),
        'queues': config.queues.debug_dict(),
        'catalog': config.catalog.debug_dict(),
        'metrics': config.metrics.debug_dict(),
    }


__all__ = [
    'AppConfig',
    'StorageConfig',
    'DatabaseConfig',
    'QueueConfig',
    'QueueNames',
    'CatalogConfig',
    'MetricsConfig',
    'debug_config',
]
