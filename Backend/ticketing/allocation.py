"""
Capacity allocation for ticket offers.

Invariant: for every show, the ticket_count of all its offers sums to at most
the show's ticket_count.

Every create/update runs one transaction that

    1. resolves the show (or offer) through the tenant isolation filter,
    2. locks the show row (FOR UPDATE on PostgreSQL, BEGIN IMMEDIATE on SQLite),
    3. sums the offers currently allocated against the show,
    4. rejects the request or writes the offer,

so two writers on the same show are serialized between steps 2 and 4 and the
second always sums the first one's committed allocation. A rejected or
interrupted request rolls back with nothing written.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from .core.errors import CapacityExceededError, InvalidArgumentError
from .models import Show, TicketOffer
from .schemas import ShowCapacityOut, TicketOfferOut
from .tenancy import (
    TenantContext,
    allocated_ticket_count,
    get_show,
    get_ticket_offer,
    list_ticket_offers,
    lock_show,
    require_owned,
)


logger = logging.getLogger(__name__)

OFFER_NAME_MAX_LENGTH = 100
PRICE_QUANTUM = Decimal("0.01")
# Largest value the Numeric(10, 2) price column holds
MAX_PRICE = Decimal("99999999.99")


@dataclass(frozen=True)
class OfferFields:
    name: str
    price: Decimal
    ticket_count: int


def validate_offer_fields(name: str, price, ticket_count: int) -> OfferFields:
    """Check the mutable offer fields; price is rounded to whole cents."""
    name = (name or "").strip()
    if not name:
        raise InvalidArgumentError("name", "Offer name is required")
    if len(name) > OFFER_NAME_MAX_LENGTH:
        raise InvalidArgumentError(
            "name", f"Offer name cannot exceed {OFFER_NAME_MAX_LENGTH} characters"
        )

    try:
        amount = price if isinstance(price, Decimal) else Decimal(str(price))
        if not amount.is_finite():
            raise InvalidOperation
        amount = amount.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidArgumentError("price", "Price must be a decimal amount")
    if amount <= 0:
        raise InvalidArgumentError("price", "Price must be greater than zero")
    if amount > MAX_PRICE:
        raise InvalidArgumentError("price", f"Price cannot exceed {MAX_PRICE}")

    if isinstance(ticket_count, bool) or not isinstance(ticket_count, int):
        raise InvalidArgumentError("ticket_count", "Ticket count must be a whole number")
    if ticket_count <= 0:
        raise InvalidArgumentError("ticket_count", "Ticket count must be greater than zero")

    return OfferFields(name=name, price=amount, ticket_count=ticket_count)


@asynccontextmanager
async def _transaction(session: AsyncSession):
    # Join the caller's transaction rather than nesting; the caller commits.
    if session.in_transaction():
        yield
    else:
        async with session.begin():
            yield


def to_offer_out(offer: TicketOffer, show_key: uuid.UUID) -> TicketOfferOut:
    return TicketOfferOut(
        key=offer.public_id,
        show_key=show_key,
        name=offer.name,
        price=offer.price,
        ticket_count=offer.ticket_count,
        created_at=offer.created_at,
        updated_at=offer.updated_at,
    )


def _check_capacity(show: Show, already_allocated: int, requested: int) -> None:
    available = show.ticket_count - already_allocated
    if requested > available:
        logger.warning(
            f"Capacity exceeded for show {show.public_id}: requested={requested}, "
            f"available={available}, total={show.ticket_count}"
        )
        raise CapacityExceededError(
            requested=requested,
            available=available,
            total=show.ticket_count,
            allocated=already_allocated,
        )


async def create_offer(
    session: AsyncSession,
    ctx: TenantContext,
    show_key: uuid.UUID,
    name: str,
    price,
    ticket_count: int,
) -> TicketOfferOut:
    """
    Create a ticket offer if the show has room for `ticket_count` more tickets.

    Raises:
        NotFoundError: show absent or owned by another tenant
        InvalidArgumentError: name/price/ticket_count rejected
        CapacityExceededError: carries the show's available count
    """
    fields = validate_offer_fields(name, price, ticket_count)

    async with _transaction(session):
        show = await require_owned(session, Show, show_key, ctx, for_update=True)
        allocated = await allocated_ticket_count(session, ctx, show.id)
        _check_capacity(show, allocated, fields.ticket_count)

        offer = TicketOffer(
            show_id=show.id,
            name=fields.name,
            price=fields.price,
            ticket_count=fields.ticket_count,
        )
        session.add(offer)
        await session.flush()
        result = to_offer_out(offer, show.public_id)

    logger.info(
        f"Created ticket offer {result.key} on show {show_key}: "
        f"{fields.ticket_count} tickets, {show.ticket_count - allocated - fields.ticket_count} left"
    )
    return result


async def update_offer(
    session: AsyncSession,
    ctx: TenantContext,
    offer_key: uuid.UUID,
    name: str,
    price,
    ticket_count: int,
) -> TicketOfferOut:
    """
    Replace an offer's name, price and ticket count.

    The offer's own current allocation is left out of the allocated sum: the
    new count replaces it rather than adding to it. The owning show never
    changes.
    """
    fields = validate_offer_fields(name, price, ticket_count)

    async with _transaction(session):
        offer = await get_ticket_offer(session, ctx, offer_key)
        show = await lock_show(session, ctx, offer.show_id)
        # Another writer may have changed this offer before we took the lock.
        await session.refresh(offer)

        other_offers = await allocated_ticket_count(
            session, ctx, show.id, exclude_offer_id=offer.id
        )
        _check_capacity(show, other_offers, fields.ticket_count)

        offer.name = fields.name
        offer.price = fields.price
        offer.ticket_count = fields.ticket_count
        await session.flush()
        result = to_offer_out(offer, show.public_id)

    logger.info(f"Updated ticket offer {offer_key}: {fields.ticket_count} tickets")
    return result


async def get_show_capacity(
    session: AsyncSession,
    ctx: TenantContext,
    show_key: uuid.UUID,
) -> ShowCapacityOut:
    show = await get_show(session, ctx, show_key)
    allocated = await allocated_ticket_count(session, ctx, show.id)
    return ShowCapacityOut(
        show_key=show.public_id,
        total=show.ticket_count,
        allocated=allocated,
        available=show.ticket_count - allocated,
    )


async def list_offers(
    session: AsyncSession,
    ctx: TenantContext,
    show_key: uuid.UUID,
) -> List[TicketOfferOut]:
    show = await get_show(session, ctx, show_key)
    offers = await list_ticket_offers(session, ctx, show.id)
    return [to_offer_out(offer, show.public_id) for offer in offers]
