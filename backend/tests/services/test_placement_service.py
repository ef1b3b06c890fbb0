"""Placement Service — validate, consume, commit; all-or-nothing.

Invariants:
    - Invalid input never consumes quota
    - An exhausted user gets QuotaExceededError and nothing is written
    - A failed canvas commit refunds the consumed unit and re-raises
    - A failed refund is logged and never replaces the commit error
"""

import pytest

from castcanvas.core.errors import (
    ChainRPCError, DatabaseError, InvalidInputError, QuotaExceededError,
)
from castcanvas.services.canvas_store import InMemoryCanvasStore
from castcanvas.services.placement_service import PlacementService
from castcanvas.services.quota_ledger import InMemoryQuotaLedger
from tests.services.fakes import ALICE, tx_hash


class FailingStore(InMemoryCanvasStore):
    """Validates like the real store, then fails the commit."""

    async def place(self, x, y, color, owner):
        raise DatabaseError("disk full", "commit")


class RefundFailingLedger(InMemoryQuotaLedger):
    """Consumes normally; the refund transport is down."""

    async def refund(self, user, source):
        raise ChainRPCError("connection refused", "addPixelsToUser")


@pytest.fixture
def ledger(clock):
    return InMemoryQuotaLedger(daily_limit=5, clock=clock)


@pytest.fixture
def service(ledger, clock):
    return PlacementService(InMemoryCanvasStore(canvas_size=1000, clock=clock), ledger)


async def test_place_returns_pixel_and_remaining(service):
    result = await service.place(10, 10, "#FF0000", ALICE)
    assert result.pixel.owner == ALICE
    assert result.pixel.color == "#FF0000"
    assert result.remaining_pixels == 4


async def test_lower_case_address_shares_quota(service):
    await service.place(0, 0, "#FF0000", ALICE.lower())
    result = await service.place(1, 0, "#FF0000", ALICE)
    assert result.remaining_pixels == 3
    assert result.pixel.owner == ALICE


@pytest.mark.parametrize("x,y,color", [(1000, 0, "#FF0000"), (0, 0, "blue")])
async def test_invalid_input_costs_nothing(service, ledger, x, y, color):
    with pytest.raises(InvalidInputError):
        await service.place(x, y, color, ALICE)
    assert await ledger.available(ALICE) == 5


async def test_sixth_placement_is_rejected(service):
    for i in range(5):
        await service.place(i, 0, "#FF0000", ALICE)
    with pytest.raises(QuotaExceededError):
        await service.place(5, 0, "#FF0000", ALICE)
    assert await service.store.count() == 5


async def test_purchased_units_extend_the_day(service, ledger):
    for i in range(5):
        await service.place(i, 0, "#FF0000", ALICE)
    await ledger.credit(tx_hash(1), 10, ALICE)
    result = await service.place(5, 0, "#FF0000", ALICE)
    assert result.remaining_pixels == 9


async def test_failed_commit_refunds_quota(ledger, clock):
    service = PlacementService(FailingStore(canvas_size=1000, clock=clock), ledger)
    with pytest.raises(DatabaseError):
        await service.place(1, 1, "#FF0000", ALICE)
    assert await ledger.available(ALICE) == 5


async def test_failed_refund_keeps_commit_error(clock, caplog):
    ledger = RefundFailingLedger(daily_limit=5, clock=clock)
    service = PlacementService(FailingStore(canvas_size=1000, clock=clock), ledger)
    with caplog.at_level("ERROR", logger="castcanvas.services.placement_service"):
        with pytest.raises(DatabaseError):
            await service.place(1, 1, "#FF0000", ALICE)
    assert "Quota refund failed, unit lost" in caplog.messages
    assert await ledger.available(ALICE) == 4
