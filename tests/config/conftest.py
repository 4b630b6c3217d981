"""
Config test fixtures: explicit environment mappings.
"""

import pytest


@pytest.fixture
def minimal_env():
    """Smallest environment AppConfig.from_environment accepts."""
    return {
        "STACK_NAME": "stack",
        "AZURE_STORAGE_ACCOUNT_NAME": "account",
        "POSTGRES_HOST": "localhost",
        "POSTGRES_DATABASE": "granules",
        "SERVICE_BUS_NAMESPACE": "bus.servicebus.windows.net",
    }
