"""End-to-end HTTP flows over in-memory adapters.

Covers opening an account, spending all free credits, the refund path and
the ledger history, through the public REST API.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from src.ic_common.errors import ProviderError
from src.main import create_app
from tests.fakes import ScriptedGenerator, build_memory_container

BASE = "/api/v1/accounts"


async def _open(client: AsyncClient, account_id: str, credits: int | None = None) -> None:
    body = {} if credits is None else {"credits": credits}
    resp = await client.post(f"{BASE}/{account_id}", json=body)
    assert resp.status_code == 201


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestBalance:
    async def test_new_account_has_three_credits(self, client: AsyncClient) -> None:
        await _open(client, "alice")
        resp = await client.get(f"{BASE}/alice/balance")
        assert resp.status_code == 200
        body = resp.json()
        assert body["code"] == 0
        assert body["data"] == {"account_id": "alice", "credits": 3, "tier": "free"}
        assert body["request_id"] == resp.headers["X-Request-ID"]

    async def test_unknown_account_404(self, client: AsyncClient) -> None:
        resp = await client.get(f"{BASE}/nobody/balance")
        assert resp.status_code == 404
        assert resp.json()["code"] == 2002

    async def test_eligibility(self, client: AsyncClient) -> None:
        await _open(client, "bob", credits=1)
        resp = await client.get(f"{BASE}/bob/eligibility", params={"operation": "prd"})
        data = resp.json()["data"]
        assert data["allowed"] is True
        assert data["show_warning"] is True
        assert data["cost"] == 1

    async def test_eligibility_unknown_operation(self, client: AsyncClient) -> None:
        await _open(client, "bob")
        resp = await client.get(f"{BASE}/bob/eligibility", params={"operation": "pitch_deck"})
        assert resp.status_code == 422
        assert resp.json()["code"] == 1001


class TestGenerationFlow:
    async def test_spend_all_credits_then_rejected(self, client: AsyncClient) -> None:
        await _open(client, "carol")
        for expected in (2, 1, 0):
            resp = await client.post(
                f"{BASE}/carol/generations",
                json={"operation": "startup_analysis", "input": "Drone-delivered coffee"},
            )
            assert resp.status_code == 201
            data = resp.json()["data"]
            assert data["credits_charged"] == 1
            assert data["trace"][-1] == "SUCCESS"
            balance = await client.get(f"{BASE}/carol/balance")
            assert balance.json()["data"]["credits"] == expected

        resp = await client.post(
            f"{BASE}/carol/generations",
            json={"operation": "prd", "input": "One more"},
        )
        assert resp.status_code == 402
        assert resp.json()["code"] == 2001

        ledger = (await client.get(f"{BASE}/carol/ledger")).json()["data"]
        assert [item["kind"] for item in ledger["items"]] == ["DEDUCT"] * 3

    async def test_empty_input_rejected(self, client: AsyncClient) -> None:
        await _open(client, "dave")
        resp = await client.post(f"{BASE}/dave/generations", json={"operation": "prd", "input": ""})
        assert resp.status_code == 422
        balance = await client.get(f"{BASE}/dave/balance")
        assert balance.json()["data"]["credits"] == 3

    async def test_generator_failure_refunds(self) -> None:
        container = build_memory_container(ScriptedGenerator(error=ProviderError("model offline")))
        transport = ASGITransport(app=create_app(container))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            await _open(client, "erin")
            resp = await client.post(
                f"{BASE}/erin/generations", json={"operation": "roadmap", "input": "idea"}
            )
            assert resp.status_code == 502
            assert resp.json()["code"] == 3001

            balance = await client.get(f"{BASE}/erin/balance")
            assert balance.json()["data"]["credits"] == 3

            ledger = (await client.get(f"{BASE}/erin/ledger")).json()["data"]
            assert [(i["kind"], i["amount"]) for i in ledger["items"]] == [
                ("REFUND", 1),
                ("DEDUCT", -1),
            ]
            assert ledger["items"][0]["metadata"]["saga_id"] == ledger["items"][1]["metadata"]["saga_id"]


class TestTopUpAndLedger:
    async def test_top_up_and_paging(self, client: AsyncClient) -> None:
        await _open(client, "frank", credits=0)
        for amount in (1, 2, 3):
            resp = await client.post(
                f"{BASE}/frank/credits", json={"amount": amount, "description": f"Pack of {amount}"}
            )
            assert resp.status_code == 200
        assert resp.json()["data"]["credits"] == 6

        page1 = (await client.get(f"{BASE}/frank/ledger", params={"limit": 2})).json()["data"]
        assert [i["amount"] for i in page1["items"]] == [3, 2]
        assert page1["has_more"] is True

        page2 = (
            await client.get(f"{BASE}/frank/ledger", params={"limit": 2, "cursor": page1["next_cursor"]})
        ).json()["data"]
        assert [i["amount"] for i in page2["items"]] == [1]
        assert page2["has_more"] is False

    async def test_malformed_cursor_is_422(self, client: AsyncClient) -> None:
        await _open(client, "iris")
        resp = await client.get(f"{BASE}/iris/ledger", params={"cursor": "not-a-cursor"})
        assert resp.status_code == 422
        assert resp.json()["code"] == 1001

    async def test_admin_adjustment_down(self, client: AsyncClient) -> None:
        await _open(client, "gina")
        resp = await client.post(
            f"{BASE}/gina/credits",
            json={"amount": -2, "kind": "ADMIN_ADJUSTMENT", "description": "Chargeback"},
        )
        assert resp.json()["data"]["credits"] == 1

    @pytest.mark.parametrize("payload", [{"amount": 0, "description": "x"}, {"amount": -1, "description": "x"}])
    async def test_bad_top_up(self, client: AsyncClient, payload: dict[str, object]) -> None:
        await _open(client, "hank")
        resp = await client.post(f"{BASE}/hank/credits", json=payload)
        assert resp.status_code == 422


class TestUnmetered:
    async def test_everything_allowed(self) -> None:
        container = build_memory_container(unmetered=True)
        transport = ASGITransport(app=create_app(container))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            balance = await client.get(f"{BASE}/anyone/balance")
            assert balance.json()["data"] == {"account_id": "anyone", "credits": 9999, "tier": "admin"}

            resp = await client.post(
                f"{BASE}/anyone/generations", json={"operation": "prd", "input": "idea"}
            )
            assert resp.status_code == 201
            assert resp.json()["data"]["credits_charged"] == 0
