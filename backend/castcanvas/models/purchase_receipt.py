"""PurchaseReceipt ORM — idempotency record for credited payment proofs.

Invariants:
    - proof_id is the primary key: a proof can be credited at most once, ever
    - Rows are insert-only (no UPDATE path exists in the codebase)

Design Decisions:
    - total_purchased stored on the receipt so a replay can return the original
      result without recomputing it from the (since changed) balance
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from castcanvas.db.base import Base


class PurchaseReceiptRow(Base):
    """Processed payment proof."""
    __tablename__ = "purchase_receipts"

    proof_id: Mapped[str] = mapped_column(String(66), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    credited_pixels: Mapped[int] = mapped_column(Integer, nullable=False)
    total_purchased: Mapped[int] = mapped_column(Integer, nullable=False)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
