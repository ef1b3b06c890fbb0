"""Contract Mirror — tests for the executable model of the pixel contract.

Tests cover:
    - purchasePixels requires the exact price and credits the sender
    - usePixel spends daily before purchased and is owner-only
    - Views apply rollover without writing
    - Owner administration (reset, add, withdraw, emergencyWithdraw)
    - Reverts leave state untouched; withdrawals are non-reentrant
"""

import pytest

from castcanvas.core.contract_mirror import CallContext, ContractMirror, ZERO_ADDRESS
from castcanvas.core.domain_types import SECONDS_PER_DAY
from castcanvas.core.errors import ContractRevertError

OWNER = "0x" + "0a" * 20
ALICE = "0x" + "a1" * 20
MALLORY = "0x" + "ee" * 20
PRICE = 10**15
NOW = 20_000 * SECONDS_PER_DAY + 3600


@pytest.fixture
def contract():
    return ContractMirror(owner=OWNER, price_wei=PRICE)


def _owner(timestamp=NOW):
    return CallContext(sender=OWNER, timestamp=timestamp)


# ─── purchasePixels ──────────────────────────────────────────────

def test_purchase_credits_sender(contract):
    contract.purchase_pixels(CallContext(ALICE, PRICE, NOW))
    assert contract.get_available_pixels(ALICE, NOW) == 15
    assert contract.balance_wei == PRICE
    assert contract.events[-1].name == "PixelsPurchased"
    assert contract.events[-1].args["amount"] == 10


@pytest.mark.parametrize("value", [0, PRICE - 1, PRICE * 2])
def test_purchase_requires_exact_price(contract, value):
    with pytest.raises(ContractRevertError, match="Incorrect payment amount"):
        contract.purchase_pixels(CallContext(ALICE, value, NOW))
    assert contract.balance_wei == 0
    assert contract.get_available_pixels(ALICE, NOW) == 5
    assert contract.events == []


def test_user_keys_are_case_insensitive(contract):
    contract.purchase_pixels(CallContext(ALICE.upper().replace("0X", "0x"), PRICE, NOW))
    assert contract.get_available_pixels(ALICE, NOW) == 15


# ─── usePixel ────────────────────────────────────────────────────

def test_use_pixel_spends_daily_then_purchased(contract):
    contract.purchase_pixels(CallContext(ALICE, PRICE, NOW))
    sources = []
    for _ in range(6):
        assert contract.use_pixel(_owner(), ALICE) is True
        sources.append(contract.events[-1].args["source"])
    assert sources == ["daily"] * 5 + ["purchased"]
    assert contract.get_daily_pixels(ALICE, NOW) == 0
    assert contract.get_available_pixels(ALICE, NOW) == 9


def test_use_pixel_returns_false_when_exhausted(contract):
    for _ in range(5):
        contract.use_pixel(_owner(), ALICE)
    events_before = len(contract.events)
    assert contract.use_pixel(_owner(), ALICE) is False
    assert len(contract.events) == events_before


def test_use_pixel_is_owner_only(contract):
    with pytest.raises(ContractRevertError, match="Not the contract owner"):
        contract.use_pixel(CallContext(MALLORY, 0, NOW), ALICE)


# ─── rollover ────────────────────────────────────────────────────

def test_views_apply_rollover_without_writing(contract):
    for _ in range(5):
        contract.use_pixel(_owner(), ALICE)
    tomorrow = NOW + SECONDS_PER_DAY
    assert contract.get_daily_pixels(ALICE, tomorrow) == 5
    # a view never writes
    assert contract.daily_pixels[ALICE.lower()] == 0
    assert contract.get_daily_pixels(ALICE, NOW) == 0


def test_rollover_keeps_purchased(contract):
    contract.purchase_pixels(CallContext(ALICE, PRICE, NOW))
    for _ in range(5):
        contract.use_pixel(_owner(), ALICE)
    assert contract.get_available_pixels(ALICE, NOW + SECONDS_PER_DAY) == 15


# ─── owner administration ───────────────────────────────────────

def test_reset_daily_pixels(contract):
    contract.use_pixel(_owner(), ALICE)
    contract.reset_daily_pixels(_owner(), ALICE)
    assert contract.get_daily_pixels(ALICE, NOW) == 5
    assert contract.events[-1].name == "DailyPixelsReset"


def test_add_pixels_to_user(contract):
    contract.add_pixels_to_user(_owner(), ALICE, 3)
    assert contract.purchased_pixels[ALICE.lower()] == 3


def test_add_pixels_requires_positive_amount(contract):
    with pytest.raises(ContractRevertError, match="Amount must be positive"):
        contract.add_pixels_to_user(_owner(), ALICE, 0)


@pytest.mark.parametrize("call", [
    lambda c, ctx: c.reset_daily_pixels(ctx, ALICE),
    lambda c, ctx: c.add_pixels_to_user(ctx, ALICE, 1),
    lambda c, ctx: c.withdraw(ctx),
    lambda c, ctx: c.emergency_withdraw(ctx, MALLORY),
])
def test_admin_functions_are_owner_only(contract, call):
    with pytest.raises(ContractRevertError, match="Not the contract owner"):
        call(contract, CallContext(MALLORY, 0, NOW))


# ─── withdrawals ─────────────────────────────────────────────────

def test_withdraw_sends_balance_to_owner():
    sent = []
    contract = ContractMirror(
        owner=OWNER, price_wei=PRICE, transfer=lambda to, amount: sent.append((to, amount)),
    )
    contract.purchase_pixels(CallContext(ALICE, PRICE, NOW))
    assert contract.withdraw(_owner()) == PRICE
    assert sent == [(OWNER, PRICE)]
    assert contract.balance_wei == 0


def test_withdraw_requires_funds(contract):
    with pytest.raises(ContractRevertError, match="No funds to withdraw"):
        contract.withdraw(_owner())


def test_emergency_withdraw_rejects_zero_address(contract):
    contract.purchase_pixels(CallContext(ALICE, PRICE, NOW))
    with pytest.raises(ContractRevertError, match="Invalid recipient"):
        contract.emergency_withdraw(_owner(), ZERO_ADDRESS)
    assert contract.balance_wei == PRICE


def test_failed_transfer_restores_balance():
    def failing(to, amount):
        raise RuntimeError("recipient rejected ether")

    contract = ContractMirror(owner=OWNER, price_wei=PRICE, transfer=failing)
    contract.purchase_pixels(CallContext(ALICE, PRICE, NOW))
    with pytest.raises(ContractRevertError, match="Transfer failed"):
        contract.withdraw(_owner())
    assert contract.balance_wei == PRICE


def test_withdraw_is_not_reentrant():
    contract = ContractMirror(owner=OWNER, price_wei=PRICE)

    def reenter(to, amount):
        contract.withdraw(_owner())

    contract.transfer = reenter
    contract.purchase_pixels(CallContext(ALICE, PRICE, NOW))
    with pytest.raises(ContractRevertError, match="reentrant call"):
        contract.withdraw(_owner())
    assert contract.balance_wei == PRICE
    # guard released after the revert
    contract.transfer = lambda to, amount: None
    assert contract.withdraw(_owner()) == PRICE
