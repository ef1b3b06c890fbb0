"""Service test fixtures — SQLite database, fake chain, fixed clock, API client.

Invariants:
    - Every test gets a fresh SQLite database file (tmp_path) with all tables
    - The chain is a FakeChain (dict-backed); no test reaches a real RPC endpoint
    - `client` runs the FastAPI app over ASGITransport with services built
      from test settings and swapped onto app.state

Design Decisions:
    - SQLite file, not :memory:: every pooled connection must see the same tables
    - ASGITransport does not run the lifespan; the fixture builds services itself,
      the same way the lifespan does
    - `services` is parametrized over memory and database backends so every route
      test checks both implementations
"""

import pytest
from httpx import ASGITransport, AsyncClient

from castcanvas.core.domain_types import LedgerBackend, StoreBackend
from castcanvas.infrastructure.database import DatabaseSessionManager
from castcanvas.main import app
from castcanvas.services.container import build_services
from tests.services.fakes import FakeChain, FixedClock, make_settings


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
async def db(tmp_path):
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'canvas.db'}")
    await manager.create_all()
    yield manager
    await manager.dispose()


@pytest.fixture(params=["memory", "database"])
async def services(request, chain, tmp_path):
    db = None
    if request.param == "database":
        db = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
        await db.create_all()
    settings = make_settings(
        store_backend=StoreBackend(request.param),
        ledger_backend=LedgerBackend(request.param),
    )
    built = build_services(settings, db=db, chain=chain)
    yield built
    await built.aclose()
    if db is not None:
        await db.dispose()


@pytest.fixture
async def client(services):
    """FastAPI test client with services swapped onto app.state."""
    original = getattr(app.state, "services", None)
    app.state.services = services
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c
    app.state.services = original
