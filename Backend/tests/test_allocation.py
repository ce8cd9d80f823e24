"""
Capacity allocation tests.

Covers the boundary cases of the capacity check, the update rule (an offer's
own allocation is replaced, not added to) and concurrent writers on one show,
each in its own session and connection.

Run with: pytest Backend/tests/test_allocation.py -v
"""

import asyncio
import uuid
from decimal import Decimal

import pytest

from ticketing import allocation
from ticketing.core.errors import CapacityExceededError, InvalidArgumentError, NotFoundError

from conftest import make_show


async def capacity(session_factory, ctx, show_key):
    async with session_factory() as session:
        return await allocation.get_show_capacity(session, ctx, show_key)


# ────────────────────────────────────────────────────────────────
# Field Validation
# ────────────────────────────────────────────────────────────────

class TestValidateOfferFields:

    def test_valid_fields_are_normalized(self):
        fields = allocation.validate_offer_fields("  VIP  ", "120.005", 10)
        assert fields.name == "VIP"
        assert fields.price == Decimal("120.01")
        assert fields.ticket_count == 10

    @pytest.mark.parametrize("name", ["", "   ", None, "x" * 101])
    def test_rejects_bad_names(self, name):
        with pytest.raises(InvalidArgumentError) as exc:
            allocation.validate_offer_fields(name, Decimal("10"), 1)
        assert exc.value.field == "name"

    def test_accepts_100_character_name(self):
        assert len(allocation.validate_offer_fields("x" * 100, Decimal("10"), 1).name) == 100

    @pytest.mark.parametrize(
        "price",
        [Decimal("0"), Decimal("-5"), Decimal("0.004"), "abc", Decimal("NaN"), Decimal("1e30"), Decimal("123456789.00")],
    )
    def test_rejects_bad_prices(self, price):
        with pytest.raises(InvalidArgumentError) as exc:
            allocation.validate_offer_fields("GA", price, 1)
        assert exc.value.field == "price"

    def test_accepts_largest_storable_price(self):
        assert allocation.validate_offer_fields("GA", "99999999.99", 1).price == allocation.MAX_PRICE

    @pytest.mark.parametrize("count", [0, -1, True, 1.5])
    def test_rejects_bad_ticket_counts(self, count):
        with pytest.raises(InvalidArgumentError) as exc:
            allocation.validate_offer_fields("GA", Decimal("10"), count)
        assert exc.value.field == "ticket_count"


# ────────────────────────────────────────────────────────────────
# Create / Update
# ────────────────────────────────────────────────────────────────

class TestCreateOffer:

    async def test_exactly_available_succeeds_and_drains_capacity(self, async_session, session_factory, tenant_a, show_a):
        show = show_a[2]
        offer = await allocation.create_offer(async_session, tenant_a, show.key, "GA", Decimal("45"), 1000)

        assert offer.ticket_count == 1000
        assert offer.show_key == show.key
        assert offer.price == Decimal("45.00")
        assert offer.created_at.tzinfo is not None

        snapshot = await capacity(session_factory, tenant_a, show.key)
        assert (snapshot.total, snapshot.allocated, snapshot.available) == (1000, 1000, 0)

    async def test_one_over_available_fails_and_changes_nothing(self, async_session, session_factory, tenant_a, show_a):
        show = show_a[2]
        await allocation.create_offer(async_session, tenant_a, show.key, "GA", Decimal("45"), 700)

        with pytest.raises(CapacityExceededError) as exc:
            await allocation.create_offer(async_session, tenant_a, show.key, "VIP", Decimal("90"), 301)

        assert exc.value.available == 300
        assert exc.value.details["available"] == 300
        assert "only 300 tickets available" in exc.value.message

        snapshot = await capacity(session_factory, tenant_a, show.key)
        assert (snapshot.allocated, snapshot.available) == (700, 300)

    async def test_unknown_show(self, async_session, tenant_a, show_a):
        with pytest.raises(NotFoundError):
            await allocation.create_offer(async_session, tenant_a, uuid.uuid4(), "GA", Decimal("45"), 1)

    async def test_invalid_fields_fail_before_touching_the_show(self, async_session, tenant_a):
        # The show key does not exist; validation must win.
        with pytest.raises(InvalidArgumentError):
            await allocation.create_offer(async_session, tenant_a, uuid.uuid4(), "", Decimal("45"), 1)
        assert not async_session.in_transaction()

    async def test_joins_callers_transaction(self, async_session, session_factory, tenant_a, show_a):
        show = show_a[2]
        # Any statement autobegins the session's transaction.
        await allocation.list_offers(async_session, tenant_a, show.key)
        assert async_session.in_transaction()

        await allocation.create_offer(async_session, tenant_a, show.key, "GA", Decimal("45"), 100)
        # Not committed: the caller owns the transaction.
        assert async_session.in_transaction()
        await async_session.rollback()

        snapshot = await capacity(session_factory, tenant_a, show.key)
        assert snapshot.allocated == 0

    async def test_offers_listed_in_creation_order(self, async_session, tenant_a, show_a):
        show = show_a[2]
        for name in ("Early Bird", "GA", "VIP"):
            await allocation.create_offer(async_session, tenant_a, show.key, name, Decimal("10"), 10)

        offers = await allocation.list_offers(async_session, tenant_a, show.key)
        assert [o.name for o in offers] == ["Early Bird", "GA", "VIP"]


class TestUpdateOffer:

    async def test_update_excludes_own_allocation(self, async_session, session_factory, tenant_a, show_a):
        """total 1000, A=600, B=200 -> A may grow to 1000 - 200 = 800."""
        show = show_a[2]
        offer_a = await allocation.create_offer(async_session, tenant_a, show.key, "A", Decimal("50"), 600)
        await allocation.create_offer(async_session, tenant_a, show.key, "B", Decimal("80"), 200)

        updated = await allocation.update_offer(async_session, tenant_a, offer_a.key, "A", Decimal("50"), 800)
        assert updated.ticket_count == 800
        assert updated.key == offer_a.key
        assert updated.show_key == show.key

        snapshot = await capacity(session_factory, tenant_a, show.key)
        assert (snapshot.allocated, snapshot.available) == (1000, 0)

    async def test_update_one_over_fails(self, async_session, session_factory, tenant_a, show_a):
        show = show_a[2]
        offer_a = await allocation.create_offer(async_session, tenant_a, show.key, "A", Decimal("50"), 600)
        await allocation.create_offer(async_session, tenant_a, show.key, "B", Decimal("80"), 200)

        with pytest.raises(CapacityExceededError) as exc:
            await allocation.update_offer(async_session, tenant_a, offer_a.key, "A", Decimal("50"), 801)
        assert exc.value.available == 800
        assert exc.value.allocated == 200

        snapshot = await capacity(session_factory, tenant_a, show.key)
        assert snapshot.allocated == 800

    async def test_update_changes_name_and_price(self, async_session, tenant_a, show_a):
        show = show_a[2]
        offer = await allocation.create_offer(async_session, tenant_a, show.key, "GA", Decimal("45"), 100)

        updated = await allocation.update_offer(async_session, tenant_a, offer.key, "Standing", "39.50", 100)
        assert updated.name == "Standing"
        assert updated.price == Decimal("39.50")
        assert updated.created_at == offer.created_at
        assert updated.updated_at >= offer.updated_at

    async def test_unknown_offer(self, async_session, tenant_a, show_a):
        with pytest.raises(NotFoundError):
            await allocation.update_offer(async_session, tenant_a, uuid.uuid4(), "GA", Decimal("45"), 1)


class TestGaVipScenario:

    async def test_scenario(self, async_session, session_factory, tenant_a, show_a):
        show = show_a[2]

        ga = await allocation.create_offer(async_session, tenant_a, show.key, "GA", Decimal("45"), 600)
        assert (await capacity(session_factory, tenant_a, show.key)).available == 400

        with pytest.raises(CapacityExceededError) as exc:
            await allocation.create_offer(async_session, tenant_a, show.key, "VIP", Decimal("150"), 450)
        assert exc.value.available == 400

        await allocation.update_offer(async_session, tenant_a, ga.key, "GA", Decimal("45"), 300)
        assert (await capacity(session_factory, tenant_a, show.key)).available == 700


# ────────────────────────────────────────────────────────────────
# Concurrency
# ────────────────────────────────────────────────────────────────

async def _attempt_create(session_factory, ctx, show_key, name, count):
    async with session_factory() as session:
        try:
            return await allocation.create_offer(session, ctx, show_key, name, Decimal("10"), count)
        except CapacityExceededError as exc:
            return exc


async def _attempt_update(session_factory, ctx, offer_key, name, count):
    async with session_factory() as session:
        try:
            return await allocation.update_offer(session, ctx, offer_key, name, Decimal("10"), count)
        except CapacityExceededError as exc:
            return exc


class TestConcurrentAllocation:
    """Separate sessions racing on one show; never both succeed past capacity."""

    async def test_two_creates_that_jointly_exceed_capacity(self, session_factory, tenant_a, show_a):
        show = show_a[2]
        results = await asyncio.gather(
            _attempt_create(session_factory, tenant_a, show.key, "First", 600),
            _attempt_create(session_factory, tenant_a, show.key, "Second", 600),
        )

        failures = [r for r in results if isinstance(r, CapacityExceededError)]
        assert len(failures) == 1
        assert failures[0].available == 400

        snapshot = await capacity(session_factory, tenant_a, show.key)
        assert snapshot.allocated == 600

    async def test_many_creates_never_oversell(self, session_factory, tenant_a, show_a):
        show = show_a[2]
        results = await asyncio.gather(
            *(_attempt_create(session_factory, tenant_a, show.key, f"Batch {i}", 150) for i in range(10))
        )

        successes = [r for r in results if not isinstance(r, CapacityExceededError)]
        assert len(successes) == 6

        snapshot = await capacity(session_factory, tenant_a, show.key)
        assert snapshot.allocated == 900
        assert snapshot.allocated <= snapshot.total

    async def test_two_updates_that_jointly_exceed_capacity(self, async_session, session_factory, tenant_a, show_a):
        show = show_a[2]
        a = await allocation.create_offer(async_session, tenant_a, show.key, "A", Decimal("10"), 400)
        b = await allocation.create_offer(async_session, tenant_a, show.key, "B", Decimal("10"), 400)

        results = await asyncio.gather(
            _attempt_update(session_factory, tenant_a, a.key, "A", 550),
            _attempt_update(session_factory, tenant_a, b.key, "B", 550),
        )

        assert sum(isinstance(r, CapacityExceededError) for r in results) == 1
        snapshot = await capacity(session_factory, tenant_a, show.key)
        assert snapshot.allocated == 950

    async def test_shows_do_not_interfere(self, async_session, session_factory, tenant_a, show_a):
        other_show = (await make_show(async_session, tenant_a, ticket_count=500))[2]
        show = show_a[2]

        results = await asyncio.gather(
            _attempt_create(session_factory, tenant_a, show.key, "Main", 1000),
            _attempt_create(session_factory, tenant_a, other_show.key, "Other", 500),
        )
        assert not any(isinstance(r, CapacityExceededError) for r in results)
