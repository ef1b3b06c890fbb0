"""Domain Types — verifies value types, day indexing and enum values.

Tests:
    - Day index is floor(unix_seconds / 86400) in UTC
    - QuotaRecord.available sums both buckets
    - Pixel serializes with camelCase-friendly keys
    - CreditResult built from a receipt keeps every field
"""

from datetime import datetime, timedelta, timezone

from castcanvas.core.domain_types import (
    CreditResult, DayIndex, LedgerBackend, Pixel, PurchaseReceipt, ProofId,
    QuotaRecord, QuotaSource, StoreBackend, UserId, SECONDS_PER_DAY,
    as_utc, day_index, day_index_from_timestamp,
)


def test_day_index_from_timestamp_floors():
    assert day_index_from_timestamp(0) == 0
    assert day_index_from_timestamp(SECONDS_PER_DAY - 1) == 0
    assert day_index_from_timestamp(SECONDS_PER_DAY) == 1


def test_day_index_changes_at_utc_midnight():
    before = datetime(2026, 3, 1, 23, 59, 59, tzinfo=timezone.utc)
    after = before + timedelta(seconds=1)
    assert day_index(after) == day_index(before) + 1


def test_day_index_uses_utc_for_offset_datetimes():
    local = datetime(2026, 3, 2, 1, 0, tzinfo=timezone(timedelta(hours=3)))
    utc = datetime(2026, 3, 1, 22, 0, tzinfo=timezone.utc)
    assert day_index(local) == day_index(utc)


def test_as_utc_attaches_tz_to_naive():
    naive = datetime(2026, 3, 1, 12, 0)
    assert as_utc(naive).tzinfo is timezone.utc
    aware = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert as_utc(aware) is aware


def test_quota_record_available_is_sum_of_buckets():
    record = QuotaRecord(UserId("alice"), 3, DayIndex(10), 7)
    assert record.available == 10


def test_quota_record_evolve_returns_new_record():
    record = QuotaRecord(UserId("alice"), 5, DayIndex(10), 0)
    evolved = record.evolve(daily_remaining=4)
    assert evolved.daily_remaining == 4
    assert record.daily_remaining == 5


def test_pixel_to_dict():
    written = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    pixel = Pixel(1, 2, "#FF0000", UserId("alice"), written)
    data = pixel.to_dict()
    assert data["x"] == 1
    assert data["y"] == 2
    assert data["color"] == "#FF0000"
    assert data["user"] == "alice"
    assert data["timestamp"] == int(written.timestamp() * 1000)
    assert data["writtenAt"] == written.isoformat()


def test_credit_result_from_receipt():
    receipt = PurchaseReceipt(
        ProofId("0x" + "a" * 64), UserId("alice"), 10, 25,
        datetime(2026, 3, 1, tzinfo=timezone.utc),
    )
    result = CreditResult.from_receipt(receipt, True)
    assert result.proof_id == receipt.proof_id
    assert result.credited_pixels == 10
    assert result.total_purchased == 25
    assert result.already_processed is True


def test_enum_values():
    assert QuotaSource.DAILY.value == "daily"
    assert QuotaSource.PURCHASED.value == "purchased"
    assert {b.value for b in StoreBackend} == {"memory", "database"}
    assert {b.value for b in LedgerBackend} == {"memory", "database", "contract"}
