"""Shared pytest fixtures for testing."""

import os
from typing import AsyncGenerator, Dict, Iterable, List, Tuple

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "test"

from screenflow.config import NavigationConfig, Settings, StorageConfig
from screenflow.engine import FlowGraphEngine
from screenflow.main import create_app
from screenflow.models import BranchConfig, InsertScreenOptions
from screenflow.store import InMemoryScreenStore, ScreenStore, SqlScreenStore


# =============================================================================
# Settings / Store Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment."""
    return Settings(
        environment="test",
        log_level="warning",
        log_format="console",
        navigation=NavigationConfig(
            default_trigger="button-click",
            max_branches_per_screen=5,
            max_screens_per_flow=50,
        ),
        storage=StorageConfig(backend="memory"),
    )


@pytest.fixture
def store() -> InMemoryScreenStore:
    """Create an in-memory screen store."""
    return InMemoryScreenStore()


@pytest_asyncio.fixture
async def sql_store(tmp_path) -> AsyncGenerator[SqlScreenStore, None]:
    """Create a SQLite-backed screen store in a temp directory."""
    sql = SqlScreenStore(f"sqlite+aiosqlite:///{tmp_path / 'screenflow.db'}")
    await sql.initialize()
    yield sql
    await sql.close()


@pytest.fixture
def engine(store: ScreenStore, settings: Settings) -> FlowGraphEngine:
    """Create an engine over the in-memory store."""
    return FlowGraphEngine(store, settings)


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def app(settings: Settings, store: ScreenStore) -> FastAPI:
    """Create test FastAPI application."""
    return create_app(settings=settings, store=store)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# Test Data Helpers
# =============================================================================


async def make_flow(
    engine: FlowGraphEngine,
    names: Iterable[str],
    edges: Iterable[Tuple[str, str]] = (),
) -> Tuple[str, Dict[str, str]]:
    """
    Create a flow with screens appended in the given order.

    Returns:
        Tuple of (flow_id, screen id by name)
    """
    flow = await engine.flows.create_flow("Test Flow")
    ids: Dict[str, str] = {}
    for name in names:
        result = await engine.sequence.insert_screen(
            flow.id,
            InsertScreenOptions(screen_dsl={"title": name}, name=name),
        )
        ids[name] = result.screen.id

    for source, target in edges:
        await engine.create_branch(
            flow.id, ids[source], BranchConfig(to_screen_id=ids[target])
        )

    return flow.id, ids


async def ordered_names(engine: FlowGraphEngine, flow_id: str) -> List[str]:
    """Screen names in current order."""
    screens = await engine.sequence.get_ordered_screens(flow_id)
    return [s.name for s in screens]


@pytest.fixture
def sample_dsl() -> dict:
    """Sample screen DSL."""
    return {
        "pattern": "hero-centered",
        "title": "Welcome",
        "components": [{"type": "button", "label": "Continue"}],
    }
