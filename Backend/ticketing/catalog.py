"""
Tenants, venues, acts and shows: the entity graph ticket offers hang off.

All reads and writes go through the tenant isolation filter; new venues and
acts are stamped with the caller's tenant, and shows may only reference a
venue and an act the caller owns.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from .core.config import get_settings
from .core.db import utc_now
from .core.errors import InvalidArgumentError
from .models import Act, Show, Tenant, Venue
from .scheduling import get_zone, resolve_instant, utc_offset_minutes, with_offset
from .schemas import ActOut, ShowOut, TenantOut, VenueOut
from .tenancy import (
    TenantContext,
    get_act,
    get_show_with_names,
    get_tenant_by_slug,
    get_venue,
    is_valid_slug,
    list_acts,
    list_shows_for_act,
    list_venues,
    normalize_slug,
    require_owned,
)


logger = logging.getLogger(__name__)

TENANT_NAME_MAX_LENGTH = 200
VENUE_NAME_MAX_LENGTH = 200
VENUE_ADDRESS_MAX_LENGTH = 500
ACT_NAME_MAX_LENGTH = 200


def _require_name(value: str, field: str, max_length: int) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidArgumentError(field, f"{field.capitalize()} is required")
    if len(value) > max_length:
        raise InvalidArgumentError(field, f"{field.capitalize()} cannot exceed {max_length} characters")
    return value


# ────────────────────────────────────────────────────────────────
# Tenants (administrative)
# ────────────────────────────────────────────────────────────────

async def provision_tenant(
    session: AsyncSession,
    ctx: TenantContext,
    slug: str,
    name: str,
    is_active: bool = True,
) -> TenantOut:
    """Create a tenant. Only an administrative context may do this."""
    if not ctx.is_administrative:
        raise InvalidArgumentError("tenant", "Tenant provisioning requires administrative access")

    normalized = normalize_slug(slug)
    if not is_valid_slug(normalized):
        raise InvalidArgumentError(
            "slug", "Slug must be 1-50 lowercase letters, digits or hyphens, not starting or ending with a hyphen"
        )
    name = _require_name(name, "name", TENANT_NAME_MAX_LENGTH)

    if await get_tenant_by_slug(session, normalized) is not None:
        raise InvalidArgumentError("slug", f"Slug '{normalized}' is already taken")

    tenant = Tenant(slug=normalized, name=name, is_active=is_active)
    session.add(tenant)
    await session.flush()

    logger.info(f"Provisioned tenant {tenant.slug} (id={tenant.id}, active={tenant.is_active})")
    return TenantOut(
        slug=tenant.slug,
        name=tenant.name,
        is_active=tenant.is_active,
        created_at=tenant.created_at,
    )


# ────────────────────────────────────────────────────────────────
# Venues
# ────────────────────────────────────────────────────────────────

def venue_out(venue: Venue) -> VenueOut:
    return VenueOut(
        key=venue.public_id,
        name=venue.name,
        address=venue.address,
        seating_capacity=venue.seating_capacity,
        description=venue.description,
        latitude=venue.latitude,
        longitude=venue.longitude,
        timezone=venue.timezone,
        created_at=venue.created_at,
        updated_at=venue.updated_at,
    )


def _apply_venue_fields(
    venue: Venue,
    name: str,
    address: Optional[str],
    seating_capacity: int,
    description: str,
    latitude: Optional[float],
    longitude: Optional[float],
    timezone_name: Optional[str],
) -> None:
    venue.name = _require_name(name, "name", VENUE_NAME_MAX_LENGTH)

    address = (address or "").strip() or None
    if address and len(address) > VENUE_ADDRESS_MAX_LENGTH:
        raise InvalidArgumentError("address", f"Address cannot exceed {VENUE_ADDRESS_MAX_LENGTH} characters")
    venue.address = address

    if isinstance(seating_capacity, bool) or not isinstance(seating_capacity, int) or seating_capacity < 0:
        raise InvalidArgumentError("seating_capacity", "Seating capacity must be zero or a positive whole number")
    venue.seating_capacity = seating_capacity

    venue.description = description or ""

    if (latitude is None) != (longitude is None):
        raise InvalidArgumentError("latitude", "Latitude and longitude must be given together")
    if latitude is not None and not -90 <= latitude <= 90:
        raise InvalidArgumentError("latitude", "Latitude must be between -90 and 90")
    if longitude is not None and not -180 <= longitude <= 180:
        raise InvalidArgumentError("longitude", "Longitude must be between -180 and 180")
    venue.latitude = latitude
    venue.longitude = longitude

    timezone_name = (timezone_name or "").strip() or get_settings().default_venue_timezone
    get_zone(timezone_name)
    venue.timezone = timezone_name


async def create_venue(
    session: AsyncSession,
    ctx: TenantContext,
    name: str,
    *,
    address: Optional[str] = None,
    seating_capacity: int = 0,
    description: str = "",
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    timezone_name: Optional[str] = None,
) -> VenueOut:
    venue = Venue(tenant_id=ctx.require_tenant_id())
    _apply_venue_fields(
        venue, name, address, seating_capacity, description, latitude, longitude, timezone_name
    )
    session.add(venue)
    await session.flush()
    logger.info(f"Created venue {venue.public_id} for tenant {ctx.tenant_slug}")
    return venue_out(venue)


async def update_venue(
    session: AsyncSession,
    ctx: TenantContext,
    venue_key: uuid.UUID,
    name: str,
    *,
    address: Optional[str] = None,
    seating_capacity: int = 0,
    description: str = "",
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    timezone_name: Optional[str] = None,
) -> VenueOut:
    """
    Replace a venue's fields.

    Shows already scheduled keep their ticket count and stored offset; a
    capacity or time zone change only affects shows created afterwards.
    """
    venue = await get_venue(session, ctx, venue_key)
    _apply_venue_fields(
        venue, name, address, seating_capacity, description, latitude, longitude, timezone_name
    )
    await session.flush()
    logger.info(f"Updated venue {venue_key}")
    return venue_out(venue)


async def get_venue_out(session: AsyncSession, ctx: TenantContext, venue_key: uuid.UUID) -> VenueOut:
    return venue_out(await get_venue(session, ctx, venue_key))


async def list_venues_out(session: AsyncSession, ctx: TenantContext) -> List[VenueOut]:
    return [venue_out(venue) for venue in await list_venues(session, ctx)]


# ────────────────────────────────────────────────────────────────
# Acts
# ────────────────────────────────────────────────────────────────

def act_out(act: Act) -> ActOut:
    return ActOut(key=act.public_id, name=act.name, created_at=act.created_at, updated_at=act.updated_at)


async def create_act(session: AsyncSession, ctx: TenantContext, name: str) -> ActOut:
    act = Act(tenant_id=ctx.require_tenant_id(), name=_require_name(name, "name", ACT_NAME_MAX_LENGTH))
    session.add(act)
    await session.flush()
    logger.info(f"Created act {act.public_id} for tenant {ctx.tenant_slug}")
    return act_out(act)


async def update_act(session: AsyncSession, ctx: TenantContext, act_key: uuid.UUID, name: str) -> ActOut:
    act = await get_act(session, ctx, act_key)
    act.name = _require_name(name, "name", ACT_NAME_MAX_LENGTH)
    await session.flush()
    logger.info(f"Updated act {act_key}")
    return act_out(act)


async def get_act_out(session: AsyncSession, ctx: TenantContext, act_key: uuid.UUID) -> ActOut:
    return act_out(await get_act(session, ctx, act_key))


async def list_acts_out(session: AsyncSession, ctx: TenantContext) -> List[ActOut]:
    return [act_out(act) for act in await list_acts(session, ctx)]


# ────────────────────────────────────────────────────────────────
# Shows
# ────────────────────────────────────────────────────────────────

def show_out(show: Show, venue: Venue, act: Act) -> ShowOut:
    return ShowOut(
        key=show.public_id,
        venue_key=venue.public_id,
        venue_name=venue.name,
        venue_capacity=venue.seating_capacity,
        act_key=act.public_id,
        act_name=act.name,
        ticket_count=show.ticket_count,
        start_time=with_offset(show.start_at_utc, show.start_utc_offset_minutes),
        created_at=show.created_at,
        updated_at=show.updated_at,
    )


async def create_show(
    session: AsyncSession,
    ctx: TenantContext,
    venue_key: uuid.UUID,
    act_key: uuid.UUID,
    ticket_count: int,
    start_time: datetime,
    *,
    now: Optional[datetime] = None,
) -> ShowOut:
    """
    Schedule an act at a venue.

    Both the venue and the act must belong to the caller's tenant. The ticket
    count is capped by the venue's seating capacity, and the start time must
    be in the future. A start time without an offset is venue wall-clock time.
    """
    venue = await require_owned(session, Venue, venue_key, ctx)
    act = await require_owned(session, Act, act_key, ctx)
    # Administrative callers see every tenant; a show still may not mix them.
    if venue.tenant_id != act.tenant_id:
        raise InvalidArgumentError("act_key", "Venue and act belong to different tenants")

    if isinstance(ticket_count, bool) or not isinstance(ticket_count, int) or ticket_count < 1:
        raise InvalidArgumentError("ticket_count", "Ticket count must be at least 1")
    if ticket_count > venue.seating_capacity:
        raise InvalidArgumentError(
            "ticket_count",
            f"Ticket count ({ticket_count}) cannot exceed venue seating capacity ({venue.seating_capacity})",
        )

    start_utc = resolve_instant(start_time, venue.timezone)
    if start_utc <= (now or utc_now()):
        raise InvalidArgumentError("start_time", "Show start time must be in the future")

    show = Show(
        venue_id=venue.id,
        act_id=act.id,
        ticket_count=ticket_count,
        start_at_utc=start_utc,
        start_utc_offset_minutes=utc_offset_minutes(start_utc, venue.timezone),
    )
    session.add(show)
    await session.flush()

    logger.info(f"Created show {show.public_id}: act={act.public_id} venue={venue.public_id} tickets={ticket_count}")
    return show_out(show, venue, act)


async def get_show_out(session: AsyncSession, ctx: TenantContext, show_key: uuid.UUID) -> ShowOut:
    show, venue, act = await get_show_with_names(session, ctx, show_key)
    return show_out(show, venue, act)


async def list_shows_for_act_out(session: AsyncSession, ctx: TenantContext, act_key: uuid.UUID) -> List[ShowOut]:
    """Shows of an act, earliest first."""
    act = await get_act(session, ctx, act_key)
    rows = await list_shows_for_act(session, ctx, act.id)
    return [show_out(show, venue, show_act) for show, venue, show_act in rows]
