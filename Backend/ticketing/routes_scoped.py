"""
Slug-scoped routes for the multi-tenant ticketing API.

Pattern: /t/{slug}/endpoint

The slug resolves the TenantContext for the request; every handler passes it
explicitly to the core. Domain errors propagate to the handlers registered in
main.py.

Usage:
    POST /t/globoticket/venues                              -> Create a venue
    GET  /t/globoticket/venues/{key}/nearby-shows?start=... -> Shows within 48h
    POST /t/globoticket/shows                               -> Schedule an act
    POST /t/globoticket/shows/{key}/ticket-offers           -> Allocate tickets
    PUT  /t/globoticket/ticket-offers/{key}                 -> Re-price / resize
    GET  /t/globoticket/shows/{key}/capacity                -> total/allocated/available
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from . import allocation, catalog, scheduling
from .core.db import get_session
from .core.responses import ApiResponse
from .schemas import (
    ActOut,
    ActWrite,
    NearbyShowsResponse,
    ShowCapacityOut,
    ShowCreate,
    ShowOut,
    TicketOfferOut,
    TicketOfferWrite,
    VenueOut,
    VenueWrite,
)
from .tenancy import TenantContext, resolve_tenant_from_slug

logger = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────────
# Router Definition
# ────────────────────────────────────────────────────────────────

router = APIRouter(prefix="/t/{slug}", tags=["scoped-api"])


# ────────────────────────────────────────────────────────────────
# Dependency: Tenant Context from URL Slug
# ────────────────────────────────────────────────────────────────

async def get_tenant_context_from_slug(
    slug: str = Path(..., description="Tenant URL slug (e.g., 'globoticket')"),
    session: AsyncSession = Depends(get_session),
) -> TenantContext:
    """
    Resolve tenant context strictly from the URL slug.

    Unknown and inactive tenants raise NotFoundError (404).
    """
    return await resolve_tenant_from_slug(session, slug)


# ────────────────────────────────────────────────────────────────
# Venues
# ────────────────────────────────────────────────────────────────

def _venue_kwargs(body: VenueWrite) -> dict:
    return {
        "address": body.address,
        "seating_capacity": body.seating_capacity,
        "description": body.description,
        "latitude": body.latitude,
        "longitude": body.longitude,
        "timezone_name": body.timezone,
    }


@router.post("/venues", response_model=ApiResponse[VenueOut], status_code=status.HTTP_201_CREATED)
async def create_venue(
    body: VenueWrite,
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    venue = await catalog.create_venue(session, ctx, body.name, **_venue_kwargs(body))
    await session.commit()
    return ApiResponse.success(venue)


@router.get("/venues", response_model=ApiResponse[List[VenueOut]])
async def list_venues(
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    return ApiResponse.success(await catalog.list_venues_out(session, ctx))


@router.get("/venues/{venue_key}", response_model=ApiResponse[VenueOut])
async def get_venue(
    venue_key: uuid.UUID,
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    return ApiResponse.success(await catalog.get_venue_out(session, ctx, venue_key))


@router.put("/venues/{venue_key}", response_model=ApiResponse[VenueOut])
async def update_venue(
    venue_key: uuid.UUID,
    body: VenueWrite,
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    venue = await catalog.update_venue(session, ctx, venue_key, body.name, **_venue_kwargs(body))
    await session.commit()
    return ApiResponse.success(venue)


@router.get("/venues/{venue_key}/nearby-shows", response_model=ApiResponse[NearbyShowsResponse])
async def nearby_shows(
    venue_key: uuid.UUID,
    start: datetime = Query(..., description="Candidate start; venue wall-clock time if no offset"),
    exclude_show: Optional[uuid.UUID] = Query(None, description="Show being edited, left out of results"),
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    result = await scheduling.find_nearby_shows(
        session, ctx, venue_key, start, exclude_show_key=exclude_show
    )
    return ApiResponse.success(result)


# ────────────────────────────────────────────────────────────────
# Acts
# ────────────────────────────────────────────────────────────────

@router.post("/acts", response_model=ApiResponse[ActOut], status_code=status.HTTP_201_CREATED)
async def create_act(
    body: ActWrite,
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    act = await catalog.create_act(session, ctx, body.name)
    await session.commit()
    return ApiResponse.success(act)


@router.get("/acts", response_model=ApiResponse[List[ActOut]])
async def list_acts(
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    return ApiResponse.success(await catalog.list_acts_out(session, ctx))


@router.get("/acts/{act_key}", response_model=ApiResponse[ActOut])
async def get_act(
    act_key: uuid.UUID,
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    return ApiResponse.success(await catalog.get_act_out(session, ctx, act_key))


@router.put("/acts/{act_key}", response_model=ApiResponse[ActOut])
async def update_act(
    act_key: uuid.UUID,
    body: ActWrite,
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    act = await catalog.update_act(session, ctx, act_key, body.name)
    await session.commit()
    return ApiResponse.success(act)


@router.get("/acts/{act_key}/shows", response_model=ApiResponse[List[ShowOut]])
async def list_shows_for_act(
    act_key: uuid.UUID,
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    return ApiResponse.success(await catalog.list_shows_for_act_out(session, ctx, act_key))


# ────────────────────────────────────────────────────────────────
# Shows
# ────────────────────────────────────────────────────────────────

@router.post("/shows", response_model=ApiResponse[ShowOut], status_code=status.HTTP_201_CREATED)
async def create_show(
    body: ShowCreate,
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    show = await catalog.create_show(
        session, ctx, body.venue_key, body.act_key, body.ticket_count, body.start_time
    )
    await session.commit()
    return ApiResponse.success(show)


@router.get("/shows/{show_key}", response_model=ApiResponse[ShowOut])
async def get_show(
    show_key: uuid.UUID,
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    return ApiResponse.success(await catalog.get_show_out(session, ctx, show_key))


@router.get("/shows/{show_key}/capacity", response_model=ApiResponse[ShowCapacityOut])
async def show_capacity(
    show_key: uuid.UUID,
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    return ApiResponse.success(await allocation.get_show_capacity(session, ctx, show_key))


# ────────────────────────────────────────────────────────────────
# Ticket Offers
# ────────────────────────────────────────────────────────────────

@router.post(
    "/shows/{show_key}/ticket-offers",
    response_model=ApiResponse[TicketOfferOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_ticket_offer(
    show_key: uuid.UUID,
    body: TicketOfferWrite,
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    # The slug lookup already opened the transaction; the engine joins it.
    offer = await allocation.create_offer(
        session, ctx, show_key, body.name, body.price, body.ticket_count
    )
    await session.commit()
    return ApiResponse.success(offer)


@router.get("/shows/{show_key}/ticket-offers", response_model=ApiResponse[List[TicketOfferOut]])
async def list_ticket_offers(
    show_key: uuid.UUID,
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    return ApiResponse.success(await allocation.list_offers(session, ctx, show_key))


@router.put("/ticket-offers/{offer_key}", response_model=ApiResponse[TicketOfferOut])
async def update_ticket_offer(
    offer_key: uuid.UUID,
    body: TicketOfferWrite,
    ctx: TenantContext = Depends(get_tenant_context_from_slug),
    session: AsyncSession = Depends(get_session),
):
    offer = await allocation.update_offer(
        session, ctx, offer_key, body.name, body.price, body.ticket_count
    )
    await session.commit()
    return ApiResponse.success(offer)
