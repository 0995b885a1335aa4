import pytest

from fakes import ReplySink
from kira.actions.wallet_actions import SERVICE_UNAVAILABLE, WalletActions
from kira.agent.emitter import TurnContext
from kira.errors import WalletServiceError
from kira.wallet import Transaction, Wallet


class FakeWallet:
    def __init__(self, usdc: float = 0.0, usdi: float = 0.0, public_key: str | None = "PubKey1") -> None:
        self.usdc = usdc
        self.usdi = usdi
        self.public_key = public_key
        self.fail = False
        self.operations: list[tuple] = []

    async def deposit_balance(self, user_id: str) -> float:
        if self.fail:
            raise WalletServiceError("down", status_code=503)
        return self.usdc

    async def yield_balance(self, user_id: str) -> float:
        return self.usdi

    async def wallet(self, user_id: str) -> Wallet | None:
        return Wallet(public_key=self.public_key) if self.public_key else None

    async def mint(self, user_id: str, amount: float) -> Transaction:
        self.operations.append(("mint", amount))
        return Transaction(signature="sigM", amount=amount)

    async def redeem(self, user_id: str, amount: float) -> Transaction:
        self.operations.append(("redeem", amount))
        return Transaction(signature="sigR", amount=amount)

    async def withdraw(self, user_id: str, amount: float, address: str) -> Transaction:
        self.operations.append(("withdraw", amount, address))
        return Transaction(signature="sigW", amount=amount)


def _turn(sink: ReplySink) -> TurnContext:
    return TurnContext(user_id="U1", text="x", send=sink)


@pytest.mark.asyncio
async def test_mint_converts_requested_amount(sink: ReplySink) -> None:
    wallet = FakeWallet(usdc=100)

    await WalletActions(wallet).mint(_turn(sink), amount=50)

    assert wallet.operations == [("mint", 50)]
    assert len(sink.sent) == 1
    assert "50.00000 USDC" in sink.sent[0][0]
    assert "sigM" in sink.sent[0][0]


@pytest.mark.asyncio
async def test_mint_rejects_more_than_balance(sink: ReplySink) -> None:
    wallet = FakeWallet(usdc=10)

    await WalletActions(wallet).mint(_turn(sink), amount=50)

    assert wallet.operations == []
    assert "10.00000 USDC" in sink.sent[0][0]


@pytest.mark.asyncio
async def test_redeem(sink: ReplySink) -> None:
    wallet = FakeWallet(usdi=5)

    await WalletActions(wallet).redeem(_turn(sink), amount=5)

    assert wallet.operations == [("redeem", 5)]


@pytest.mark.asyncio
async def test_withdraw(sink: ReplySink) -> None:
    wallet = FakeWallet(usdc=30)

    await WalletActions(wallet).withdraw(_turn(sink), amount=20, address="Dest")

    assert wallet.operations == [("withdraw", 20, "Dest")]
    assert "Dest" in sink.sent[0][0]


@pytest.mark.asyncio
async def test_service_failure_replies_once(sink: ReplySink) -> None:
    wallet = FakeWallet(usdc=30)
    wallet.fail = True

    await WalletActions(wallet).withdraw(_turn(sink), amount=20, address="Dest")

    assert wallet.operations == []
    assert sink.sent == [(SERVICE_UNAVAILABLE, False)]


@pytest.mark.asyncio
async def test_deposit_sends_address(sink: ReplySink) -> None:
    await WalletActions(FakeWallet()).deposit(_turn(sink))

    assert "PubKey1" in sink.sent[0][0]


@pytest.mark.asyncio
async def test_deposit_without_wallet(sink: ReplySink) -> None:
    await WalletActions(FakeWallet(public_key=None)).deposit(_turn(sink))

    assert "don't have a wallet" in sink.sent[0][0]


def test_registry_covers_side_effecting_actions() -> None:
    registry = WalletActions(FakeWallet()).registry()
    assert sorted(registry.list_names()) == ["deposit", "mint", "redeem", "withdraw"]


def test_registry_rejects_undeclared_action() -> None:
    registry = WalletActions(FakeWallet()).registry()
    with pytest.raises(ValueError):
        registry.register("balance", WalletActions(FakeWallet()).deposit)
    with pytest.raises(ValueError):
        registry.register("mint", WalletActions(FakeWallet()).mint)
