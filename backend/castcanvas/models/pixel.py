"""Pixel ORM — one row per written coordinate.

Invariants:
    - (x, y) is the primary key: at most one pixel per coordinate
    - A write replaces every column of the row (no history table)

Design Decisions:
    - Composite natural key over surrogate id: the upsert target IS the coordinate
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from castcanvas.db.base import Base


class PixelRow(Base):
    """Latest pixel at a coordinate."""
    __tablename__ = "pixels"

    x: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    y: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    color: Mapped[str] = mapped_column(String(7), nullable=False)
    owner: Mapped[str] = mapped_column(String(128), nullable=False)
    written_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        default=lambda: datetime.now(timezone.utc),
    )
