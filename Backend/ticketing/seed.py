from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Optional

from .allocation import create_offer
from .catalog import create_act, create_show, create_venue, provision_tenant
from .core.db import utc_now
from .tenancy import TenantContext, get_tenant_by_slug, resolve_tenant_from_slug

DEMO_TENANT_SLUG = "globoticket"


async def seed_initial_data(session) -> Optional[TenantContext]:
    """Create the demo tenant and its catalog; returns the tenant context used, or None if already seeded."""
    if await get_tenant_by_slug(session, DEMO_TENANT_SLUG) is not None:
        return None

    await provision_tenant(session, TenantContext.administrative(), DEMO_TENANT_SLUG, "GloboTicket")
    # Same tenant-scoped context a request to /t/globoticket would carry
    ctx = await resolve_tenant_from_slug(session, DEMO_TENANT_SLUG)

    venue = await create_venue(
        session,
        ctx,
        "The Paramount",
        address="713 Congress Ave, Austin, TX",
        seating_capacity=1200,
        description="Historic theatre in downtown Austin",
        latitude=30.2694,
        longitude=-97.7425,
        timezone_name="America/Chicago",
    )
    act = await create_act(session, ctx, "The Midnight Owls")

    # 8pm venue time, a month out.
    show_date = (utc_now() + timedelta(days=30)).date()
    show = await create_show(
        session,
        ctx,
        venue.key,
        act.key,
        1000,
        datetime.combine(show_date, time(20, 0)),
    )

    await create_offer(session, ctx, show.key, "General Admission", Decimal("45.00"), 600)
    await create_offer(session, ctx, show.key, "VIP", Decimal("120.00"), 200)

    await session.commit()
    return ctx
