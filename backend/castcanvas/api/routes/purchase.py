"""Purchase Routes — submit a payment proof, read pricing and purchased balance.

Invariants:
    - POST /canvas/purchase credits at most once per proof id; a replay answers 200
      with alreadyProcessed=true and the totals recorded the first time
    - Verification failures are 400, chain RPC failures 500 (core/errors.py)
    - GET /canvas/purchase requires `user`; a missing user is INVALID_INPUT (400)
    - paymentWallet always reflects where payments must be sent for the active
      ledger backend (the contract address for the contract backend)

Design Decisions:
    - price is a JSON number in ether (what the browser client displays);
      priceWei carries the exact integer the payment must transfer
"""

from fastapi import APIRouter, Depends, Query

from castcanvas.api.dependencies import get_services
from castcanvas.core.enforce_input import normalize_user
from castcanvas.core.errors import InvalidInputError
from castcanvas.schemas.canvas import PurchaseSubmission
from castcanvas.services.container import CanvasServices

router = APIRouter(prefix="/canvas/purchase", tags=["purchase"])


@router.post("")
async def submit_purchase(
    body: PurchaseSubmission,
    services: CanvasServices = Depends(get_services),
):
    user = normalize_user(body.user)
    result = await services.verifier.verify(user, body.proof_id)
    return {
        "success": True,
        "purchasedPixels": result.credited_pixels,
        "totalPurchased": result.total_purchased,
        "price": float(services.settings.price_per_purchase),
        "priceWei": services.settings.price_wei,
        "paymentWallet": services.payment_wallet,
        "alreadyProcessed": result.already_processed,
    }


@router.get("")
async def get_purchase_info(
    user: str | None = Query(default=None),
    services: CanvasServices = Depends(get_services),
):
    if not user or not user.strip():
        raise InvalidInputError("user query parameter is required", field="user")
    record = await services.ledger.snapshot(normalize_user(user.strip()))
    return {
        "success": True,
        "purchasedPixels": record.purchased_balance,
        "pricePerPurchase": float(services.settings.price_per_purchase),
        "priceWei": services.settings.price_wei,
        "pixelsPerPurchase": services.settings.pixels_per_purchase,
        "paymentWallet": services.payment_wallet,
    }
