"""
Context Assembly
================

Builds the exact transcript sent to the reasoning service for one turn:

    [history, oldest first]        user / assistant messages
    [instruction block]            system message with live balances
    [new user message]             user

The instruction block is always the last system message before the new
user message, so the model sees the freshest balances no matter how old
the earlier conversation is.

Balances are fetched from the wallet service on every turn and never
cached.
"""

import asyncio
from dataclasses import dataclass

from kira.memory import HistoryStore, Sender
from kira.utils.logger import Logger
from kira.wallet import BalanceService

logger = Logger("Context")

NO_WALLET = "Not created yet"

Transcript = list[dict[str, str]]


@dataclass(frozen=True)
class AccountSnapshot:
    """
    Live account figures for one user.

    Attributes:
        wallet_address: Public key, or None if no wallet exists yet
        deposit_balance: USDC
        yield_balance: USDi
        native_balance: SOL
    """
    wallet_address: str | None
    deposit_balance: float
    yield_balance: float
    native_balance: float


INSTRUCTIONS = """Your name is Kira Kuru, an AI hedge fund manager who combines genius-level analysis with strategic market insights.
You are currently interacting with user as a chat bot that manages a crypto wallet for them in 1-on-1 conversations.

Wallet Address: {wallet_address}
Current USDC Balance: {usdc_balance} USDC
Current USDi Balance: {usdi_balance} USDi
Current SOL Balance: {sol_balance} SOL
Use these current balances to help the user

Product Information:
• USDi is an interest-bearing token with 1:1 USD peg
• Users can deposit USDC and convert to USDi to start minting
• Yield is generated through delta-neutral strategies (funding rate, spread, MEV arbitrage)
• Profits are automatically distributed to USDi holders
• Longer holding periods and larger amounts earn proportionally higher yields
• More info: https://docs.kira.trading/

Current Status:
• Only accepting USDC deposits
• Users must convert USDC to USDi to earn yield

You can only execute 1 function/tool.

Available functions:
- chat: Handle user interaction requiring text responses
- mint: Convert USDC to USDi (requires amount)
- redeem: Convert USDi to USDC (requires amount)
- withdraw: Withdraw USDC (requires amount and address, always ask for the amount and address if not specified)
- deposit: Sends the wallet address in chat to user.

Response patterns [Replace x with the current balance mentioned above]:
1. For deposit inquiries:
   Use the deposit function for sending the wallet address to the user.

2. For yield/mint inquiries:
   "Yield can be earned by converting USDC in your wallet to USDi. I can see there is x amount of USDC in your wallet."

3. For conversion requests:
   If USDC exists: "There is x amount of USDC in your wallet. How much do you want to convert?"
   If no USDC: "There is 0 amount of USDC in your wallet. Do you want to deposit more USDC? Here is your wallet address:"

4. For general withdrawal:
   "Do you want to withdraw USDi or USDC?
   Withdraw USDi will convert USDi to USDC in your wallet
   Withdraw USDC will send USDC to a different wallet address, please give me a new wallet address."

5. For USDi withdrawal:
   "You have x amount USDi, how much do you want to withdraw?"

6. For USDC withdrawal:
   "You have x amount USDC, how much do you want to withdraw? And what's receiving wallet address?"

Guidelines:
1. For amounts: Must have explicit numbers, otherwise use chat function
2. For withdrawals: Need both amount and address, otherwise use chat function to ask user for the amount and/or address
3. For minting/redeeming/withdrawal, always ask user for the amount to be processed.
4. Always verify the amount and/or address being passed.
5. Do not pass amount without user approval. If amount is not passed, use chat function to query for the amount, do not use 100% of balance.
6. Default to chat function if unsure
7. Always use the current balance mentioned
Current USDC Balance: {usdc_balance} USDC
Current USDi Balance: {usdi_balance} USDi
Current SOL Balance: {sol_balance} SOL"""


def format_amount(value: float) -> str:
    """Fixed-precision rendering used everywhere balances are shown."""
    return f"{value:.5f}"


class ContextBuilder:
    """
    Assembles the reasoning transcript for a turn.

    Example:
        builder = ContextBuilder(history, wallet_client)

        transcript = await builder.build("U123", "convert 50 to yield")
        response = await reasoning.complete(transcript, ACTION_SCHEMA, forced=True)
    """

    def __init__(self, history: HistoryStore, balances: BalanceService):
        self.history = history
        self.balances = balances

    async def snapshot(self, user_id: str) -> AccountSnapshot:
        """Fetch the live balances and wallet concurrently."""
        native, deposit, yield_, wallet = await asyncio.gather(
            self.balances.native_balance(user_id),
            self.balances.deposit_balance(user_id),
            self.balances.yield_balance(user_id),
            self.balances.wallet(user_id),
        )

        return AccountSnapshot(
            wallet_address=wallet.public_key if wallet else None,
            deposit_balance=deposit,
            yield_balance=yield_,
            native_balance=native,
        )

    def render_instructions(self, snapshot: AccountSnapshot) -> str:
        """Fill every placeholder of the instruction template."""
        return INSTRUCTIONS.format(
            wallet_address=snapshot.wallet_address or NO_WALLET,
            usdc_balance=format_amount(snapshot.deposit_balance),
            usdi_balance=format_amount(snapshot.yield_balance),
            sol_balance=format_amount(snapshot.native_balance),
        )

    def history_messages(self, user_id: str) -> Transcript:
        """Stored history mapped onto the user/assistant roles."""
        return [
            {
                "role": "user" if message.sender == Sender.USER else "assistant",
                "content": message.content,
            }
            for message in self.history.recent(user_id)
        ]

    async def build(self, user_id: str, text: str) -> Transcript:
        """
        Build the full transcript for a turn.

        Args:
            user_id: The user's identifier
            text: The new user message

        Returns:
            History, then the instruction block, then the new message
        """
        snapshot = await self.snapshot(user_id)
        logger.debug(
            f"Snapshot for {user_id}",
            {
                "usdc": snapshot.deposit_balance,
                "usdi": snapshot.yield_balance,
                "sol": snapshot.native_balance,
                "has_wallet": snapshot.wallet_address is not None,
            }
        )

        transcript = self.history_messages(user_id)
        transcript.append({"role": "system", "content": self.render_instructions(snapshot)})
        transcript.append({"role": "user", "content": text})
        return transcript
