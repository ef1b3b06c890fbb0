"""Placement Service — validate, reserve one quota unit, commit the pixel.

Invariants:
    - Input is validated BEFORE quota is touched: bad input never costs a unit
    - Exactly one ledger.consume() per placement attempt
    - All-or-nothing: if the canvas commit fails after a successful consume, the
      unit is refunded and the original error re-raised, even when the refund
      itself fails (that failure is logged)
    - QuotaExceededError when consume() reports nothing left (no canvas write)

Design Decisions:
    - Orchestration only: no locking here — atomicity lives in the ledger (per user)
      and in the store (per coordinate)
    - remaining_pixels read after the commit, so the response reflects this write
"""

import logging
from dataclasses import dataclass

from castcanvas.core.domain_types import Pixel
from castcanvas.core.enforce_input import normalize_user
from castcanvas.core.errors import QuotaExceededError
from castcanvas.core.repository_protocols import CanvasStore, QuotaLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacementResult:
    pixel: Pixel
    remaining_pixels: int


class PlacementService:

    def __init__(self, store: CanvasStore, ledger: QuotaLedger):
        self.store = store
        self.ledger = ledger

    async def place(self, x: int, y: int, color: str, user: str) -> PlacementResult:
        owner = normalize_user(user)
        self.store.validate(x, y, color)

        source = await self.ledger.consume(owner)
        if source is None:
            logger.info("Quota exhausted", extra={"user": owner})
            raise QuotaExceededError(owner)

        try:
            pixel = await self.store.place(x, y, color, owner)
        except Exception:
            logger.error(
                "Canvas commit failed, refunding quota unit",
                extra={"user": owner, "x": x, "y": y, "source": source.value},
            )
            try:
                await self.ledger.refund(owner, source)
            except Exception:
                logger.exception(
                    "Quota refund failed, unit lost",
                    extra={"user": owner, "source": source.value},
                )
            raise

        remaining = await self.ledger.available(owner)
        logger.info(
            "Pixel placed",
            extra={"user": owner, "x": x, "y": y, "source": source.value},
        )
        return PlacementResult(pixel=pixel, remaining_pixels=remaining)
