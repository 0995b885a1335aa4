"""
Wallet Service Client
=====================

Async HTTP client for the custodial wallet backend. The backend holds the
keys and performs the on-chain operations; this client only asks.

Endpoints:
    GET  /users/{user_id}/wallet              -> {"publicKey": "..."} (404 = none)
    GET  /users/{user_id}/balances/{token}    -> {"balance": 12.5}
    POST /users/{user_id}/mint                {"amount": 50}
    POST /users/{user_id}/redeem              {"amount": 50}
    POST /users/{user_id}/withdraw            {"amount": 50, "address": "..."}

Write endpoints answer with {"signature": "...", "amount": 50}.

Tokens:
    sol   native token (fees)
    usdc  deposit stablecoin
    usdi  yield-bearing token
"""

from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from kira.errors import WalletServiceError
from kira.utils.logger import Logger

logger = Logger("WalletService")


@dataclass(frozen=True)
class Wallet:
    """A user's custodial wallet."""
    public_key: str


@dataclass(frozen=True)
class Transaction:
    """
    Result of an on-chain operation.

    Attributes:
        signature: Transaction signature from the backend
        amount: Amount the backend actually processed
    """
    signature: str
    amount: float


class BalanceService(Protocol):
    """Read-only account lookups used to build each turn's context."""

    async def native_balance(self, user_id: str) -> float: ...

    async def deposit_balance(self, user_id: str) -> float: ...

    async def yield_balance(self, user_id: str) -> float: ...

    async def wallet(self, user_id: str) -> Wallet | None: ...


class WalletServiceClient:
    """
    Client for the wallet backend.

    Satisfies BalanceService and also exposes the write operations used by
    the action handlers.

    Example:
        client = WalletServiceClient("https://wallet.internal", token="...")

        usdc = await client.deposit_balance("U123")
        tx = await client.mint("U123", 50)
        print(tx.signature)

        await client.aclose()
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None
    ):
        """
        Args:
            base_url: Root URL of the wallet backend
            token: Optional bearer token
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        data: dict | None = None
    ) -> dict[str, Any]:
        """
        Make a request to the wallet backend.

        Raises:
            WalletServiceError: On transport failure or an error status
        """
        try:
            response = await self._client.request(method, endpoint, json=data)
        except httpx.HTTPError as e:
            raise WalletServiceError(f"Wallet service unreachable: {e}") from e

        if response.status_code >= 400:
            logger.warning(
                f"Wallet service error: {response.status_code}",
                {"endpoint": endpoint, "body": response.text[:200]}
            )
            raise WalletServiceError(
                f"Wallet service returned {response.status_code} for {endpoint}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise WalletServiceError(f"Invalid JSON from {endpoint}") from e

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def _balance(self, user_id: str, token: str) -> float:
        result = await self._request("GET", f"/users/{user_id}/balances/{token}")
        return float(result.get("balance", 0))

    async def native_balance(self, user_id: str) -> float:
        """SOL balance."""
        return await self._balance(user_id, "sol")

    async def deposit_balance(self, user_id: str) -> float:
        """USDC balance."""
        return await self._balance(user_id, "usdc")

    async def yield_balance(self, user_id: str) -> float:
        """USDi balance."""
        return await self._balance(user_id, "usdi")

    async def wallet(self, user_id: str) -> Wallet | None:
        """The user's wallet, or None if none has been created yet."""
        try:
            result = await self._request("GET", f"/users/{user_id}/wallet")
        except WalletServiceError as e:
            if e.status_code == 404:
                return None
            raise

        public_key = result.get("publicKey")
        return Wallet(public_key=public_key) if public_key else None

    # ==========================================================================
    # Writes
    # ==========================================================================

    def _transaction(self, result: dict[str, Any], requested: float) -> Transaction:
        return Transaction(
            signature=str(result.get("signature", "")),
            amount=float(result.get("amount", requested)),
        )

    async def mint(self, user_id: str, amount: float) -> Transaction:
        """Convert USDC to USDi."""
        logger.info(f"Mint {amount} for {user_id}")
        result = await self._request("POST", f"/users/{user_id}/mint", {"amount": amount})
        return self._transaction(result, amount)

    async def redeem(self, user_id: str, amount: float) -> Transaction:
        """Convert USDi back to USDC."""
        logger.info(f"Redeem {amount} for {user_id}")
        result = await self._request("POST", f"/users/{user_id}/redeem", {"amount": amount})
        return self._transaction(result, amount)

    async def withdraw(self, user_id: str, amount: float, address: str) -> Transaction:
        """Send USDC to an external address."""
        logger.info(f"Withdraw {amount} for {user_id} to {address}")
        result = await self._request(
            "POST",
            f"/users/{user_id}/withdraw",
            {"amount": amount, "address": address}
        )
        return self._transaction(result, amount)
