"""
Infrastructure Package - Lazy Loading Implementation.

Concrete adapters behind the interfaces in interfaces/repository.py.

Imports are deferred until a name is first accessed: function_app.py is
loaded by the Functions host before app settings and managed identity
tokens are guaranteed, so Azure SDK clients must not be built at import.

Exports:
    RepositoryFactory
    BlobObjectStore
    PostgreSQLRepository, PostgreSQLGranuleStore, PostgreSQLCollectionStore,
    PostgreSQLExecutionStore, PostgreSQLPdrStore
    CmrClient
    ServiceBusWorkflowLauncher
"""

from typing import TYPE_CHECKING

# For type checking only - doesn't actually import at runtime
if TYPE_CHECKING:
    from .factory import RepositoryFactory as _RepositoryFactory
    from .blob import BlobObjectStore as _BlobObjectStore
    from .postgresql import PostgreSQLRepository as _PostgreSQLRepository
    from .cmr_client import CmrClient as _CmrClient
    from .service_bus import ServiceBusWorkflowLauncher as _ServiceBusWorkflowLauncher


_LAZY = {
    "RepositoryFactory": ".factory",
    "BlobObjectStore": ".blob",
    "PostgreSQLRepository": ".postgresql",
    "PostgreSQLGranuleStore": ".postgresql",
    "PostgreSQLCollectionStore": ".postgresql",
    "PostgreSQLExecutionStore": ".postgresql",
    "PostgreSQLPdrStore": ".postgresql",
    "CmrClient": ".cmr_client",
    "ServiceBusWorkflowLauncher": ".service_bus",
}


def __getattr__(name: str):
    """
    Lazy import mechanism - only imports when actually accessed.
    This prevents module-level code execution until needed.
    """
    module_name = _LAZY.get(name)
    if module_name is None:
        raise AttributeError(f"module 'infrastructure' has no attribute '{name}'")

    import importlib
    module = importlib.import_module(module_name, __name__)
    return getattr(module, name)


__all__ = list(_LAZY)
