"""
Kira - Custodial Wallet Assistant
=================================

A chat assistant for a custodial yield wallet. Each message a user sends
becomes exactly one action (mint, redeem, withdraw, deposit) or a plain
reply, chosen by an LLM from a fixed action set and validated before
anything touches the wallet.

This package provides:
- Agent pipeline: context building, single-action routing, reply rendering
- Bounded, file-backed conversation history per user
- Wallet service client and action handlers
- Slack transport
"""

__version__ = "1.0.0"
