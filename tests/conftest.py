import os
import sys

import pytest

# Add src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

from associate.engine import GraphEngine, set_shared_engine  # noqa: E402
from associate.store.sqlite_store import SQLiteGraphStore  # noqa: E402


@pytest.fixture
async def store():
    """In-memory SQLite graph store, schema applied."""
    graph_store = SQLiteGraphStore(":memory:")
    await graph_store.initialize()
    yield graph_store
    await graph_store.close()


@pytest.fixture
async def engine(store):
    """Graph engine over the in-memory store."""
    return GraphEngine(store, default_zone_name="Default")


@pytest.fixture
async def shared_engine(engine):
    """Engine installed in the shared slot the servers read from."""
    set_shared_engine(engine)
    yield engine
    set_shared_engine(None)


@pytest.fixture
async def zone(engine):
    return await engine.zones.create(name="Work", description="Day job")


@pytest.fixture
async def plan(engine, zone):
    return await engine.plans.create(name="Payments", zone_id=zone.id)
