"""
Root conftest.py: sys.path, env vars, shared fixtures.

Sets up the test environment so all production code can be imported
without database connections or Azure credentials. Every external
collaborator is replaced by the in-memory fakes in tests/fakes.py.
"""

import os
import sys

import pytest

# Add project root to sys.path so 'core', 'services', 'config', etc. are importable
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


TEST_ENV = {
    "STACK_NAME": "test-stack",
    "ENVIRONMENT": "dev",
    "AZURE_STORAGE_ACCOUNT_NAME": "teststorage",
    "DISTRIBUTION_ENDPOINT": "https://data.test.example.com/",
    "POSTGRES_HOST": "localhost",
    "POSTGRES_DATABASE": "testdb",
    "ServiceBusConnection": "Endpoint=sb://test.servicebus.windows.net/;SharedAccessKeyName=k;SharedAccessKey=v",
    "CMR_PROVIDER": "TEST_PROVIDER",
}


@pytest.fixture(autouse=True, scope="session")
def set_minimal_env_vars():
    """
    Set minimal environment variables to prevent import crashes.

    Config is only read in function_app.py, but a developer shell may
    still import it; safe defaults keep that from failing.
    """
    for key, value in TEST_ENV.items():
        os.environ.setdefault(key, value)


@pytest.fixture
def test_env():
    """Copy of the baseline environment mapping for config tests."""
    return dict(TEST_ENV)


@pytest.fixture
def app_config(test_env):
    """AppConfig built from the baseline environment, small fan-out."""
    from config import AppConfig

    env = dict(test_env)
    env["MAX_PARALLEL_FILE_OPS"] = "4"
    return AppConfig.from_environment(env)
