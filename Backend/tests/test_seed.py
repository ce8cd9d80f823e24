"""
Demo data seeding.

Run with: pytest Backend/tests/test_seed.py -v
"""

from ticketing import allocation, catalog
from ticketing.seed import DEMO_TENANT_SLUG, seed_initial_data
from ticketing.tenancy import TenantResolutionSource


class TestSeedInitialData:

    async def test_seeds_with_tenant_scoped_context(self, async_session):
        ctx = await seed_initial_data(async_session)

        assert ctx.tenant_slug == DEMO_TENANT_SLUG
        assert not ctx.is_administrative
        assert ctx.source == TenantResolutionSource.URL_SLUG

    async def test_demo_show_is_partly_allocated(self, async_session):
        ctx = await seed_initial_data(async_session)

        act = (await catalog.list_acts_out(async_session, ctx))[0]
        show = (await catalog.list_shows_for_act_out(async_session, ctx, act.key))[0]
        capacity = await allocation.get_show_capacity(async_session, ctx, show.key)
        assert (capacity.total, capacity.allocated, capacity.available) == (1000, 800, 200)

    async def test_is_idempotent(self, async_session):
        assert await seed_initial_data(async_session) is not None
        assert await seed_initial_data(async_session) is None
