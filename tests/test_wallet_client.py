import json

import httpx
import pytest

from kira.errors import WalletServiceError
from kira.wallet import Wallet, WalletServiceClient


def _client(handler) -> WalletServiceClient:
    return WalletServiceClient(
        "https://wallet.test",
        token="secret",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_balances() -> None:
    balances = {"sol": 0.5, "usdc": 100, "usdi": 2.25}

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer secret"
        token = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(200, json={"balance": balances[token]})

    client = _client(handler)

    assert await client.native_balance("U1") == 0.5
    assert await client.deposit_balance("U1") == 100.0
    assert await client.yield_balance("U1") == 2.25
    await client.aclose()


@pytest.mark.asyncio
async def test_wallet_lookup() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/users/U1/wallet":
            return httpx.Response(200, json={"publicKey": "PubKey1"})
        return httpx.Response(404, json={"error": "no wallet"})

    client = _client(handler)

    assert await client.wallet("U1") == Wallet(public_key="PubKey1")
    assert await client.wallet("U2") is None


@pytest.mark.asyncio
async def test_withdraw_posts_amount_and_address() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"signature": "sig123", "amount": 20})

    client = _client(handler)
    tx = await client.withdraw("U1", 20, "Dest")

    assert seen == {"path": "/users/U1/withdraw", "body": {"amount": 20, "address": "Dest"}}
    assert tx.signature == "sig123"
    assert tx.amount == 20.0


@pytest.mark.asyncio
async def test_error_status_raises() -> None:
    client = _client(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(WalletServiceError) as excinfo:
        await client.mint("U1", 5)
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_transport_failure_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)

    with pytest.raises(WalletServiceError) as excinfo:
        await client.deposit_balance("U1")
    assert excinfo.value.status_code is None
