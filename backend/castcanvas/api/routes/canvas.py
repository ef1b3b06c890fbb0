"""Canvas Routes — read the board, place a pixel, inspect a user's quota.

Invariants:
    - GET /canvas never touches the ledger
    - POST /canvas goes through PlacementService only (validate → consume → commit)
    - GET /canvas/user requires `address`; a missing address is INVALID_INPUT (400)

Design Decisions:
    - camelCase response keys: the browser client reads them verbatim
    - usedPixels counts today's daily units only; purchased units are reported apart
"""

from fastapi import APIRouter, Depends, Query

from castcanvas.api.dependencies import get_services
from castcanvas.core.enforce_input import normalize_user
from castcanvas.core.errors import InvalidInputError
from castcanvas.core.quota_rules import used_today
from castcanvas.schemas.canvas import PixelPlacement
from castcanvas.services.container import CanvasServices

router = APIRouter(prefix="/canvas", tags=["canvas"])


@router.get("")
async def get_canvas(services: CanvasServices = Depends(get_services)):
    pixels = await services.store.get()
    return {
        "success": True,
        "pixels": [p.to_dict() for p in pixels],
        "totalPixels": len(pixels),
        "canvasSize": services.store.canvas_size,
    }


@router.post("")
async def place_pixel(
    body: PixelPlacement,
    services: CanvasServices = Depends(get_services),
):
    result = await services.placement.place(body.x, body.y, body.color, body.user)
    return {
        "success": True,
        "pixel": result.pixel.to_dict(),
        "remainingPixels": result.remaining_pixels,
    }


@router.get("/user")
async def get_user_quota(
    address: str | None = Query(default=None),
    services: CanvasServices = Depends(get_services),
):
    """Quota snapshot for one user. Reading it performs the lazy day rollover."""
    if not address or not address.strip():
        raise InvalidInputError("address query parameter is required", field="address")
    user = normalize_user(address.strip(), field="address")

    ledger = services.ledger
    record = await ledger.snapshot(user)
    return {
        "success": True,
        "remainingPixels": record.available,
        "usedPixels": used_today(record, ledger.daily_limit),
        "dailyLimit": ledger.daily_limit,
        "dailyRemaining": record.daily_remaining,
        "purchasedPixels": record.purchased_balance,
    }
