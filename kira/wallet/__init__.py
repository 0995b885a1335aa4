"""
Wallet Backend
==============

Client for the custodial wallet service that holds user funds.
"""

from kira.wallet.client import (
    BalanceService,
    Transaction,
    Wallet,
    WalletServiceClient,
)

__all__ = ["BalanceService", "Transaction", "Wallet", "WalletServiceClient"]
