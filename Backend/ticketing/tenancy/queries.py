"""
Tenant isolation filter and tenant-scoped queries.

Every read or write of a tenant-owned model goes through this module. The
filter is a plain SQL predicate built from the caller's TenantContext:

    Venue, Act       -> tenant_id column on the row
    Show             -> owning Venue's tenant_id
    TicketOffer      -> owning Show -> Venue's tenant_id

Rows outside the caller's tenant are simply not selected, so lookups for them
behave exactly like lookups for rows that do not exist.

Usage:
    from ticketing.tenancy.queries import scoped_select, require_owned

    stmt = scoped_select(Show, ctx).where(Show.act_id == act.id)
    venue = await require_owned(session, Venue, venue_key, ctx)

scripts/check_tenant_scoping.py fails the build if a query for a tenant-owned
model anywhere in the package skips these helpers.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional, Sequence, Type, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from ..core.errors import NotFoundError
from ..models import Act, Show, Tenant, TicketOffer, Venue
from .context import TenantContext


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Models carrying their own tenant_id column.
DIRECTLY_OWNED: tuple[type, ...] = (Venue, Act)

# child model -> (foreign key column on the child, parent model)
OWNERSHIP_CHAIN: dict[type, tuple] = {
    Show: (Show.venue_id, Venue),
    TicketOffer: (TicketOffer.show_id, Show),
}

TENANT_OWNED_MODELS: tuple[type, ...] = DIRECTLY_OWNED + tuple(OWNERSHIP_CHAIN)


# ────────────────────────────────────────────────────────────────
# Composable filter
# ────────────────────────────────────────────────────────────────

def ownership_path(model: type) -> list[type]:
    """Models walked from `model` up to the one holding tenant_id, inclusive."""
    path = [model]
    current = model
    while current in OWNERSHIP_CHAIN:
        current = OWNERSHIP_CHAIN[current][1]
        path.append(current)
    if current not in DIRECTLY_OWNED:
        raise TypeError(f"{model.__name__} has no tenant ownership path")
    return path


def _owned_by(model: type, tenant_id: int) -> ColumnElement[bool]:
    if model is Tenant:
        return Tenant.id == tenant_id
    if model in DIRECTLY_OWNED:
        return model.tenant_id == tenant_id

    path = ownership_path(model)
    fk_column, parent = OWNERSHIP_CHAIN[model]

    # SELECT parent.id FROM parent JOIN grandparent ... WHERE root.tenant_id = :tenant_id
    owners = select(parent.id)
    for child, owner in zip(path[1:], path[2:]):
        child_fk, _ = OWNERSHIP_CHAIN[child]
        owners = owners.join(owner, child_fk == owner.id)
    root = path[-1]
    return fk_column.in_(owners.where(root.tenant_id == tenant_id))


def tenant_filter(model: type, ctx: TenantContext) -> Optional[ColumnElement[bool]]:
    """
    Return the WHERE clause confining `model` to the caller's tenant.

    Returns None for administrative contexts (no restriction). Raises
    TypeError for models with no known ownership path so that a new table
    cannot be queried unscoped by accident.
    """
    if model is not Tenant and model not in TENANT_OWNED_MODELS:
        raise TypeError(f"{model.__name__} is not a tenant-owned model")
    if ctx.is_administrative:
        return None
    return _owned_by(model, ctx.tenant_id)


def apply_tenant_scope(stmt: Select, ctx: TenantContext, *models: type) -> Select:
    """Add the tenant predicate for each of `models` to an existing statement."""
    for model in models:
        clause = tenant_filter(model, ctx)
        if clause is not None:
            stmt = stmt.where(clause)
    return stmt


def scoped_select(model: Type[T], ctx: TenantContext) -> Select:
    """
    Create a SELECT for `model` pre-filtered to the caller's tenant.

    Usage:
        stmt = scoped_select(TicketOffer, ctx).where(TicketOffer.show_id == show.id)
    """
    return apply_tenant_scope(select(model), ctx, model)


async def require_owned(
    session: AsyncSession,
    model: Type[T],
    public_id: uuid.UUID,
    ctx: TenantContext,
    *,
    for_update: bool = False,
) -> T:
    """
    Fetch an entity by external key within the caller's tenant.

    Raises NotFoundError when the row does not exist or belongs to another
    tenant; callers cannot tell the two apart.
    """
    stmt = scoped_select(model, ctx).where(model.public_id == public_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(stmt)
    entity = result.scalar_one_or_none()
    if entity is None:
        logger.debug(f"{model.__name__} {public_id} not visible to tenant {ctx.tenant_id}")
        raise NotFoundError(model.__name__, public_id)
    return entity


# ────────────────────────────────────────────────────────────────
# Tenant Queries (administrative)
# ────────────────────────────────────────────────────────────────

async def get_tenant_by_slug(session: AsyncSession, slug: str) -> Optional[Tenant]:
    result = await session.execute(select(Tenant).where(Tenant.slug == slug))
    return result.scalar_one_or_none()


# ────────────────────────────────────────────────────────────────
# Venue / Act Queries (Tenant-Scoped)
# ────────────────────────────────────────────────────────────────

async def get_venue(session: AsyncSession, ctx: TenantContext, venue_key: uuid.UUID) -> Venue:
    return await require_owned(session, Venue, venue_key, ctx)


async def list_venues(session: AsyncSession, ctx: TenantContext) -> Sequence[Venue]:
    result = await session.execute(scoped_select(Venue, ctx).order_by(Venue.name, Venue.id))
    return result.scalars().all()


async def get_act(session: AsyncSession, ctx: TenantContext, act_key: uuid.UUID) -> Act:
    return await require_owned(session, Act, act_key, ctx)


async def list_acts(session: AsyncSession, ctx: TenantContext) -> Sequence[Act]:
    result = await session.execute(scoped_select(Act, ctx).order_by(Act.name, Act.id))
    return result.scalars().all()


# ────────────────────────────────────────────────────────────────
# Show Queries (Tenant-Scoped through Venue)
# ────────────────────────────────────────────────────────────────

async def get_show(session: AsyncSession, ctx: TenantContext, show_key: uuid.UUID) -> Show:
    return await require_owned(session, Show, show_key, ctx)


async def lock_show(session: AsyncSession, ctx: TenantContext, show_id: int) -> Show:
    """
    Re-read a show row holding a write lock until the transaction ends.

    On PostgreSQL this is SELECT ... FOR UPDATE. SQLite transactions already
    hold the database write lock (BEGIN IMMEDIATE, see core/db.py).
    """
    stmt = (
        scoped_select(Show, ctx)
        .where(Show.id == show_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    show = result.scalar_one_or_none()
    if show is None:
        raise NotFoundError("Show", show_id)
    return show


async def get_show_with_names(
    session: AsyncSession,
    ctx: TenantContext,
    show_key: uuid.UUID,
) -> tuple[Show, Venue, Act]:
    """Show plus its venue and act rows, all confined to the caller's tenant."""
    stmt = (
        select(Show, Venue, Act)
        .join(Venue, Show.venue_id == Venue.id)
        .join(Act, Show.act_id == Act.id)
        .where(Show.public_id == show_key)
    )
    stmt = apply_tenant_scope(stmt, ctx, Show, Venue, Act)
    row = (await session.execute(stmt)).one_or_none()
    if row is None:
        raise NotFoundError("Show", show_key)
    return row[0], row[1], row[2]


async def list_shows_for_act(
    session: AsyncSession,
    ctx: TenantContext,
    act_id: int,
) -> Sequence[tuple[Show, Venue, Act]]:
    stmt = (
        select(Show, Venue, Act)
        .join(Venue, Show.venue_id == Venue.id)
        .join(Act, Show.act_id == Act.id)
        .where(Show.act_id == act_id)
        .order_by(Show.start_at_utc, Show.id)
    )
    stmt = apply_tenant_scope(stmt, ctx, Show, Venue, Act)
    result = await session.execute(stmt)
    return [(row[0], row[1], row[2]) for row in result.all()]


async def list_shows_at_venue_between(
    session: AsyncSession,
    ctx: TenantContext,
    venue_id: int,
    window_start_utc: datetime,
    window_end_utc: datetime,
) -> Sequence[tuple[Show, str]]:
    """Shows at a venue starting within [start, end] inclusive, with act names, earliest first."""
    stmt = (
        select(Show, Act.name)
        .join(Act, Show.act_id == Act.id)
        .where(
            Show.venue_id == venue_id,
            Show.start_at_utc >= window_start_utc,
            Show.start_at_utc <= window_end_utc,
        )
        .order_by(Show.start_at_utc, Show.id)
    )
    stmt = apply_tenant_scope(stmt, ctx, Show, Act)
    result = await session.execute(stmt)
    return [(row[0], row[1]) for row in result.all()]


# ────────────────────────────────────────────────────────────────
# Ticket Offer Queries (Tenant-Scoped through Show -> Venue)
# ────────────────────────────────────────────────────────────────

async def get_ticket_offer(
    session: AsyncSession,
    ctx: TenantContext,
    offer_key: uuid.UUID,
) -> TicketOffer:
    return await require_owned(session, TicketOffer, offer_key, ctx)


async def list_ticket_offers(
    session: AsyncSession,
    ctx: TenantContext,
    show_id: int,
) -> Sequence[TicketOffer]:
    result = await session.execute(
        scoped_select(TicketOffer, ctx)
        .where(TicketOffer.show_id == show_id)
        .order_by(TicketOffer.created_at, TicketOffer.id)
    )
    return result.scalars().all()


async def allocated_ticket_count(
    session: AsyncSession,
    ctx: TenantContext,
    show_id: int,
    exclude_offer_id: Optional[int] = None,
) -> int:
    """Sum of ticket_count over a show's offers, optionally leaving one offer out."""
    stmt = select(func.coalesce(func.sum(TicketOffer.ticket_count), 0)).where(
        TicketOffer.show_id == show_id
    )
    if exclude_offer_id is not None:
        stmt = stmt.where(TicketOffer.id != exclude_offer_id)
    stmt = apply_tenant_scope(stmt, ctx, TicketOffer)
    return int(await session.scalar(stmt) or 0)
