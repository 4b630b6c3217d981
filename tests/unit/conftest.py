"""
Unit test fixtures: in-memory stores and wired services.
"""

import pytest

from tests.factories.model_factories import make_collection, make_execution
from tests.fakes import (
    FakeCatalog,
    FakeCollectionStore,
    FakeExecutionStore,
    FakeGranuleStore,
    FakeLauncher,
    FakeObjectStore,
    FakePdrStore,
)


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def granule_store():
    return FakeGranuleStore()


@pytest.fixture
def collection_store():
    """Holds MOD09GQ___006 with duplicateHandling=error."""
    return FakeCollectionStore(make_collection())


@pytest.fixture
def execution_store():
    return FakeExecutionStore()


@pytest.fixture
def pdr_store():
    return FakePdrStore()


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def launcher():
    return FakeLauncher()


@pytest.fixture
def storage_config(app_config):
    return app_config.storage


@pytest.fixture
def mover(object_store, granule_store, storage_config, catalog):
    from services import GranuleMover

    return GranuleMover(object_store, granule_store, storage_config, catalog)


@pytest.fixture
def lifecycle(
    app_config, granule_store, collection_store, execution_store,
    pdr_store, object_store, catalog, launcher, mover
):
    from services import GranuleLifecycle

    return GranuleLifecycle(
        config=app_config,
        granule_store=granule_store,
        collection_store=collection_store,
        execution_store=execution_store,
        pdr_store=pdr_store,
        object_store=object_store,
        catalog=catalog,
        launcher=launcher,
        mover=mover
    )


@pytest.fixture
def ingest_execution(execution_store):
    """Completed ingest execution registered in the execution store."""
    execution = make_execution()
    execution_store.save(execution)
    return execution
