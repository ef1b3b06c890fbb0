"""Quota Rules — pure arithmetic over QuotaRecord shared by every ledger backend.

Invariants:
    - All functions are PURE: they take a record and return a new one
    - Rollover only moves last_reset_day forward (never backwards)
    - Daily allotment is always spent before purchased balance
    - take_unit on an empty record returns the record unchanged and source None

Design Decisions:
    - One rule set for memory, SQL and the contract model: backends differ in how
      they make the read-modify-write atomic, never in what the rules are
    - daily_limit passed explicitly (not read from settings): core stays config-free
"""

from castcanvas.core.domain_types import DayIndex, QuotaRecord, QuotaSource, UserId


def new_record(user: UserId, today: DayIndex, daily_limit: int) -> QuotaRecord:
    """Lazily created record — full daily allotment, nothing purchased."""
    return QuotaRecord(
        user=user,
        daily_remaining=daily_limit,
        last_reset_day=today,
        purchased_balance=0,
    )


def is_stale(record: QuotaRecord, today: DayIndex) -> bool:
    return record.last_reset_day < today


def apply_rollover(
    record: QuotaRecord, today: DayIndex, daily_limit: int,
) -> QuotaRecord:
    """Stale -> Fresh transition. Fresh records pass through untouched."""
    if not is_stale(record, today):
        return record
    return record.evolve(daily_remaining=daily_limit, last_reset_day=today)


def take_unit(record: QuotaRecord) -> tuple[QuotaRecord, QuotaSource | None]:
    """Spend one unit: daily first, then purchased. Caller applies rollover first."""
    if record.daily_remaining > 0:
        return (
            record.evolve(daily_remaining=record.daily_remaining - 1),
            QuotaSource.DAILY,
        )
    if record.purchased_balance > 0:
        return (
            record.evolve(purchased_balance=record.purchased_balance - 1),
            QuotaSource.PURCHASED,
        )
    return record, None


def add_purchased(record: QuotaRecord, amount: int) -> QuotaRecord:
    if amount < 0:
        raise ValueError("credit amount must be non-negative")
    return record.evolve(purchased_balance=record.purchased_balance + amount)


def restore_unit(
    record: QuotaRecord, source: QuotaSource, daily_limit: int,
) -> QuotaRecord:
    """Undo a take_unit on a rolled-over record.

    A daily unit is capped at the limit: if the day turned over between consume
    and refund, the rollover already refilled the bucket and this is a no-op.
    """
    if source is QuotaSource.PURCHASED:
        return record.evolve(purchased_balance=record.purchased_balance + 1)
    return record.evolve(
        daily_remaining=min(daily_limit, record.daily_remaining + 1),
    )


def used_today(record: QuotaRecord, daily_limit: int) -> int:
    return daily_limit - record.daily_remaining
