"""
Wallet Action Handlers
======================

Handlers for the side-effecting actions. Each one:
- checks what it can against live balances
- asks the wallet service to perform the operation
- sends exactly one reply, success or failure

The amounts come straight from the validated selection; handlers never
round them up to the balance or substitute defaults.
"""

from typing import TYPE_CHECKING

from kira.actions import ActionRegistry
from kira.agent.context import format_amount
from kira.errors import WalletServiceError
from kira.utils.logger import Logger
from kira.wallet import WalletServiceClient

if TYPE_CHECKING:
    from kira.agent.emitter import TurnContext

logger = Logger("WalletActions")

SERVICE_UNAVAILABLE = "The wallet service is unavailable right now. Please try again later."


class WalletActions:
    """
    The mint, redeem, withdraw and deposit capabilities.

    Example:
        actions = WalletActions(wallet_client)
        registry = actions.registry()

        await registry.execute("mint", turn, {"amount": 50})
    """

    def __init__(self, wallet: WalletServiceClient):
        self.wallet = wallet

    def registry(self) -> ActionRegistry:
        """Build a registry with all four handlers."""
        registry = ActionRegistry()
        registry.register("mint", self.mint)
        registry.register("redeem", self.redeem)
        registry.register("withdraw", self.withdraw)
        registry.register("deposit", self.deposit)
        return registry

    async def mint(self, turn: "TurnContext", amount: float) -> None:
        """Convert USDC to USDi."""
        try:
            balance = await self.wallet.deposit_balance(turn.user_id)
            if amount > balance:
                await turn.reply(
                    f"You only have {format_amount(balance)} USDC in your wallet. "
                    f"Deposit more USDC or choose a smaller amount."
                )
                return

            tx = await self.wallet.mint(turn.user_id, amount)
        except WalletServiceError as e:
            logger.error("Mint failed", e, {"user_id": turn.user_id, "amount": amount})
            await turn.reply(SERVICE_UNAVAILABLE)
            return

        logger.info(f"Minted {format_amount(tx.amount)} USDi for {turn.user_id}")
        await turn.reply(
            f"Converted {format_amount(tx.amount)} USDC to USDi. "
            f"You are now earning yield.\nTransaction: {tx.signature}"
        )

    async def redeem(self, turn: "TurnContext", amount: float) -> None:
        """Convert USDi back to USDC."""
        try:
            balance = await self.wallet.yield_balance(turn.user_id)
            if amount > balance:
                await turn.reply(
                    f"You only have {format_amount(balance)} USDi in your wallet. "
                    f"Choose a smaller amount to redeem."
                )
                return

            tx = await self.wallet.redeem(turn.user_id, amount)
        except WalletServiceError as e:
            logger.error("Redeem failed", e, {"user_id": turn.user_id, "amount": amount})
            await turn.reply(SERVICE_UNAVAILABLE)
            return

        logger.info(f"Redeemed {format_amount(tx.amount)} USDi for {turn.user_id}")
        await turn.reply(
            f"Converted {format_amount(tx.amount)} USDi back to USDC.\n"
            f"Transaction: {tx.signature}"
        )

    async def withdraw(self, turn: "TurnContext", amount: float, address: str) -> None:
        """Send USDC to an external address."""
        try:
            balance = await self.wallet.deposit_balance(turn.user_id)
            if amount > balance:
                await turn.reply(
                    f"You only have {format_amount(balance)} USDC available to withdraw."
                )
                return

            tx = await self.wallet.withdraw(turn.user_id, amount, address)
        except WalletServiceError as e:
            logger.error("Withdraw failed", e, {"user_id": turn.user_id, "amount": amount})
            await turn.reply(SERVICE_UNAVAILABLE)
            return

        logger.info(f"Withdrew {format_amount(tx.amount)} USDC for {turn.user_id}")
        await turn.reply(
            f"Sent {format_amount(tx.amount)} USDC to {address}.\n"
            f"Transaction: {tx.signature}"
        )

    async def deposit(self, turn: "TurnContext") -> None:
        """Tell the user where to send USDC."""
        try:
            wallet = await self.wallet.wallet(turn.user_id)
        except WalletServiceError as e:
            logger.error("Wallet lookup failed", e, {"user_id": turn.user_id})
            await turn.reply(SERVICE_UNAVAILABLE)
            return

        if wallet is None:
            await turn.reply("You don't have a wallet yet. Please try again in a moment.")
            return

        await turn.reply(
            f"Send USDC to your wallet address:\n{wallet.public_key}"
        )
