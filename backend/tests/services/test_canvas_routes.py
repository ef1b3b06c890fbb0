"""Canvas Routes — GET/POST /canvas and GET /canvas/user over both backends.

Invariants:
    - Responses use camelCase keys and carry success
    - Invalid input is 400; an exhausted quota is 429
    - The daily quota plus a purchase gives 5 placements, a 429, then 9 remaining
    - A contract-backed ledger answers 400 for identities that are not addresses
"""

from dataclasses import replace

import pytest
from httpx import ASGITransport, AsyncClient

from castcanvas.core.contract_mirror import ContractMirror
from castcanvas.main import app
from castcanvas.services.container import build_services
from castcanvas.services.contract_ledger import ContractQuotaLedger
from castcanvas.services.placement_service import PlacementService
from castcanvas.services.receipt_store import InMemoryReceiptStore
from tests.services.fakes import (
    ALICE, BOB, CONTRACT_OWNER, PRICE_WEI, MirrorContractClient, make_settings, tx_hash,
)


def _pixel(x=1, y=1, color="#FF0000", user=ALICE):
    return {"x": x, "y": y, "color": color, "user": user}


async def test_empty_canvas(client):
    res = await client.get("/canvas")
    assert res.status_code == 200
    body = res.json()
    assert body == {
        "success": True, "pixels": [], "totalPixels": 0, "canvasSize": 1000,
    }


async def test_place_pixel(client):
    res = await client.post("/canvas", json=_pixel())
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["remainingPixels"] == 4
    assert body["pixel"]["x"] == 1
    assert body["pixel"]["user"] == ALICE

    canvas = (await client.get("/canvas")).json()
    assert canvas["totalPixels"] == 1
    assert canvas["pixels"][0]["color"] == "#FF0000"


async def test_last_write_wins(client):
    await client.post("/canvas", json=_pixel(color="#FF0000", user=ALICE))
    await client.post("/canvas", json=_pixel(color="#0000FF", user=BOB))
    canvas = (await client.get("/canvas")).json()
    assert canvas["totalPixels"] == 1
    assert canvas["pixels"][0]["color"] == "#0000FF"
    assert canvas["pixels"][0]["user"] == BOB


async def test_out_of_bounds_is_400(client):
    res = await client.post("/canvas", json=_pixel(x=1000))
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["error"]["code"] == "INVALID_INPUT"
    assert body["error"]["context"]["field"] == "x"


async def test_bad_color_is_400(client):
    res = await client.post("/canvas", json=_pixel(color="red"))
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_INPUT"


async def test_malformed_body_is_400(client):
    res = await client.post("/canvas", json={"x": 1.5, "y": 0, "color": "#FF0000"})
    assert res.status_code == 400
    body = res.json()
    assert body["error"]["code"] == "VALIDATION_ERROR"
    fields = {d["field"] for d in body["error"]["details"]}
    assert "body.x" in fields
    assert "body.user" in fields


async def test_invalid_placement_costs_nothing(client):
    await client.post("/canvas", json=_pixel(color="red"))
    res = await client.get("/canvas/user", params={"address": ALICE})
    assert res.json()["remainingPixels"] == 5


async def test_user_quota(client):
    await client.post("/canvas", json=_pixel(x=1))
    await client.post("/canvas", json=_pixel(x=2))
    res = await client.get("/canvas/user", params={"address": ALICE.lower()})
    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "remainingPixels": 3,
        "usedPixels": 2,
        "dailyLimit": 5,
        "dailyRemaining": 3,
        "purchasedPixels": 0,
    }


async def test_user_quota_requires_address(client):
    res = await client.get("/canvas/user")
    assert res.status_code == 400
    assert res.json()["error"]["context"]["field"] == "address"


async def test_daily_limit_then_purchase(client, chain):
    for i in range(5):
        res = await client.post("/canvas", json=_pixel(x=i))
        assert res.status_code == 200
        assert res.json()["remainingPixels"] == 4 - i

    res = await client.post("/canvas", json=_pixel(x=5))
    assert res.status_code == 429
    assert res.json()["error"]["code"] == "QUOTA_EXCEEDED"

    chain.add_payment(tx_hash(1), ALICE)
    res = await client.post(
        "/canvas/purchase", json={"user": ALICE, "proofId": tx_hash(1)},
    )
    assert res.status_code == 200
    assert res.json()["purchasedPixels"] == 10

    res = await client.post("/canvas", json=_pixel(x=5))
    assert res.status_code == 200
    assert res.json()["remainingPixels"] == 9

    quota = (await client.get("/canvas/user", params={"address": ALICE})).json()
    assert quota["usedPixels"] == 5
    assert quota["purchasedPixels"] == 9


@pytest.fixture
async def contract_backed_client(chain, clock):
    services = build_services(make_settings(), chain=chain)
    ledger = ContractQuotaLedger(
        MirrorContractClient(
            ContractMirror(owner=CONTRACT_OWNER, price_wei=PRICE_WEI), clock,
        ),
        InMemoryReceiptStore(),
        clock=clock,
    )
    services = replace(
        services, ledger=ledger, placement=PlacementService(services.store, ledger),
    )
    original = getattr(app.state, "services", None)
    app.state.services = services
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c
    app.state.services = original
    await services.aclose()


async def test_contract_ledger_places_for_address(contract_backed_client):
    res = await contract_backed_client.post("/canvas", json=_pixel(user=ALICE.lower()))
    assert res.status_code == 200
    assert res.json()["remainingPixels"] == 4


async def test_contract_ledger_rejects_fid_identity(contract_backed_client):
    res = await contract_backed_client.post("/canvas", json=_pixel(user="12345"))
    assert res.status_code == 400
    body = res.json()
    assert body["error"]["code"] == "INVALID_INPUT"
    assert body["error"]["context"]["field"] == "user"
    assert (await contract_backed_client.get("/canvas")).json()["totalPixels"] == 0

    res = await contract_backed_client.get("/canvas/user", params={"address": "12345"})
    assert res.status_code == 400
