"""QuotaRecord ORM — per-user daily and purchased pixel counters.

Invariants:
    - user_id is the primary key; rows are created lazily and never deleted
    - CHECK constraints keep both counters non-negative at the database level
    - last_reset_day is a UTC day index (unix_seconds // 86400)

Design Decisions:
    - Counters mutated with conditional UPDATE statements (see services/quota_ledger.py),
      never read-modify-write in Python: atomic across worker processes
"""

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from castcanvas.db.base import Base


class QuotaRecordRow(Base):
    """Quota counters for one user."""
    __tablename__ = "quota_records"
    __table_args__ = (
        CheckConstraint("daily_remaining >= 0", name="ck_quota_daily_non_negative"),
        CheckConstraint("purchased_balance >= 0", name="ck_quota_purchased_non_negative"),
    )

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    daily_remaining: Mapped[int] = mapped_column(Integer, nullable=False)
    last_reset_day: Mapped[int] = mapped_column(Integer, nullable=False)
    purchased_balance: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
