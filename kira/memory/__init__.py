"""
Memory System
=============

The assistant remembers only the recent conversation of each user,
persisted to a flat JSON file and bounded per user.

Usage:
    from kira.memory import HistoryStore, Sender

    history = HistoryStore("chat_history.json")
    history.append("U123", Sender.USER, "Hello!")
    history.recent("U123")
"""

from kira.memory.history import HistoryStore, Message, Sender, MAX_MESSAGES

__all__ = [
    "HistoryStore",
    "Message",
    "Sender",
    "MAX_MESSAGES",
]
