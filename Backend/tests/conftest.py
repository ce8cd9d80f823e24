"""
Pytest configuration and fixtures for async database testing.

Every test gets its own SQLite database file, so sessions opened from
`session_factory` use separate connections and really contend for the write
lock, as they would for separate requests.

Note: SQLite transactions take the write lock when they begin. A session left
inside a transaction blocks every other session until it commits or rolls
back, so fixtures always commit before handing control to the test.
"""
import os
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Must be set before ticketing is imported: the module-level engine and the
# cached settings are built from the environment.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["NEARBY_WINDOW_HOURS"] = "48"

from ticketing import catalog  # noqa: E402
from ticketing.core.db import Base, build_engine, utc_now  # noqa: E402
from ticketing.tenancy import TenantContext, TenantResolutionSource, get_tenant_by_slug  # noqa: E402


ADMIN_KEY = "test-admin-key"


@pytest.fixture(scope="function")
async def async_engine(tmp_path):
    """
    Create async SQLAlchemy engine for a fresh test database.

    Engine is created per test to ensure clean state.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'ticketing_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(async_engine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def async_session(session_factory):
    async with session_factory() as session:
        yield session


async def make_tenant(session: AsyncSession, slug: str, name: str, is_active: bool = True) -> TenantContext:
    """Provision a tenant and return the context a request for it would carry."""
    await catalog.provision_tenant(session, TenantContext.administrative(), slug, name, is_active)
    await session.commit()
    tenant = await get_tenant_by_slug(session, slug)
    await session.commit()
    return TenantContext(tenant_id=tenant.id, tenant_slug=tenant.slug, source=TenantResolutionSource.URL_SLUG)


async def make_show(
    session: AsyncSession,
    ctx: TenantContext,
    ticket_count: int = 1000,
    *,
    seating_capacity: int = 1200,
    timezone_name: str = "UTC",
    start_in: timedelta = timedelta(days=30),
):
    """Venue + act + show owned by `ctx`, committed."""
    venue = await catalog.create_venue(
        session, ctx, f"{ctx.tenant_slug} Hall", seating_capacity=seating_capacity, timezone_name=timezone_name
    )
    act = await catalog.create_act(session, ctx, f"{ctx.tenant_slug} Band")
    show = await catalog.create_show(session, ctx, venue.key, act.key, ticket_count, utc_now() + start_in)
    await session.commit()
    return venue, act, show


@pytest.fixture
async def tenant_a(async_session):
    """TenantContext for tenant A."""
    return await make_tenant(async_session, "tenant-a", "Tenant A")


@pytest.fixture
async def tenant_b(async_session):
    """TenantContext for tenant B."""
    return await make_tenant(async_session, "tenant-b", "Tenant B")


@pytest.fixture
async def show_a(async_session, tenant_a):
    """(venue, act, show) for tenant A; show capacity 1000 at a 1200-seat venue."""
    return await make_show(async_session, tenant_a)


@pytest.fixture(scope="function")
async def client(session_factory):
    """
    Create FastAPI AsyncClient with database session override.

    Each request gets its own session from the per-test engine.
    """
    from ticketing.core.db import get_session
    from ticketing.main import app

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
