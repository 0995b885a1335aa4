"""
Conversation History
====================

Persisted, per-user, bounded conversation log.

- Stores the most recent messages of each user's conversation
- Survives restarts: the whole store is mirrored to a JSON file
- Never grows past max_messages per user (oldest messages are evicted)

File format (pretty-printed):

    {
      "U123": {
        "userId": "U123",
        "messages": [
          {"timestamp": 1706700000000, "from": "user", "content": "hi"}
        ]
      }
    }

Every mutation rewrites the entire file. A partial write can only ever
damage the latest snapshot, and with a handful of messages per user the
cost of a full rewrite is small.

Concurrency:
    append() and clear() do not suspend, so within one event loop each
    mutation is atomic with respect to other coroutines. Two turns for the
    same user can still interleave between reading recent() and calling
    append(); the Agent serializes turns per user to prevent that.
"""

import json
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from kira.errors import PersistenceFault
from kira.utils.logger import Logger

logger = Logger("History")

MAX_MESSAGES = 10


class Sender(str, Enum):
    """Who sent a message."""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """
    A single message in a user's conversation.

    Attributes:
        timestamp: Epoch milliseconds when the message was recorded
        sender: Sender.USER or Sender.ASSISTANT
        content: The message text
    """
    timestamp: int
    sender: Sender
    content: str

    def to_dict(self) -> dict:
        """Serialize to the persisted JSON shape."""
        return {
            "timestamp": self.timestamp,
            "from": self.sender.value,
            "content": self.content,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        # Anything that is not the user is treated as the assistant
        sender = Sender.USER if data.get("from") == Sender.USER.value else Sender.ASSISTANT
        return cls(
            timestamp=int(data["timestamp"]),
            sender=sender,
            content=str(data["content"]),
        )


class HistoryStore:
    """
    File-backed conversation history, bounded per user.

    Construct once at startup and pass it to whoever needs it.

    Example:
        history = HistoryStore(Path("chat_history.json"))

        history.append("U123", Sender.USER, "convert 50 to USDi")
        history.append("U123", Sender.ASSISTANT, "Converted 50 USDC to USDi")

        for message in history.recent("U123"):
            print(message.sender, message.content)

        history.clear("U123")
    """

    def __init__(self, path: Path | str, max_messages: int = MAX_MESSAGES):
        """
        Initialize the store and load any persisted history.

        Args:
            path: JSON file backing the store
            max_messages: Maximum messages kept per user
        """
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")

        self.path = Path(path)
        self.max_messages = max_messages
        # user_id -> messages, oldest first
        self._conversations: dict[str, list[Message]] = {}

        self._load()

    # ==========================================================================
    # Public API
    # ==========================================================================

    def append(self, user_id: str, sender: Sender, content: str) -> None:
        """
        Append a message to a user's conversation and persist the store.

        Only the newest max_messages are kept. A failed write is logged
        and does not propagate; the in-memory history stays updated.

        Args:
            user_id: The transport's user identifier
            sender: Who sent the message
            content: The message text
        """
        messages = self._conversations.setdefault(user_id, [])
        messages.append(Message(
            timestamp=int(time.time() * 1000),
            sender=Sender(sender),
            content=content,
        ))

        if len(messages) > self.max_messages:
            self._conversations[user_id] = messages[-self.max_messages:]

        self._flush_quietly()

    def recent(self, user_id: str, limit: int | None = None) -> list[Message]:
        """
        Get the most recent messages for a user, oldest first.

        Args:
            user_id: The transport's user identifier
            limit: Maximum number of messages (defaults to max_messages)

        Returns:
            Up to `limit` of the newest messages; empty for unknown users
        """
        if limit is None:
            limit = self.max_messages
        if limit <= 0:
            return []

        messages = self._conversations.get(user_id)
        if not messages:
            return []
        return list(messages[-limit:])

    def clear(self, user_id: str) -> None:
        """Remove a user's conversation entirely. Clearing twice is harmless."""
        self._conversations.pop(user_id, None)
        self._flush_quietly()

    def user_count(self) -> int:
        """Number of users with stored history."""
        return len(self._conversations)

    def message_count(self, user_id: str) -> int:
        """Number of stored messages for a user."""
        return len(self._conversations.get(user_id, []))

    # ==========================================================================
    # Persistence
    # ==========================================================================

    def _load(self) -> None:
        """Hydrate from disk. Absent or corrupt files give an empty store."""
        if not self.path.exists():
            logger.info(f"No history file at {self.path}, starting empty")
            return

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            self._conversations = self._parse(raw)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(
                "Error loading chat history, starting empty",
                PersistenceFault(str(e)),
                {"path": str(self.path)}
            )
            self._conversations = {}
            return

        logger.info(f"Loaded history for {len(self._conversations)} users")

    def _parse(self, raw: dict) -> dict[str, list[Message]]:
        if not isinstance(raw, dict):
            raise ValueError("History file must contain a JSON object")

        conversations = {}
        for user_id, entry in raw.items():
            messages = [Message.from_dict(m) for m in entry.get("messages", [])]
            # Files written by older builds may hold more than the bound
            conversations[user_id] = messages[-self.max_messages:]
        return conversations

    def _serialize(self) -> dict:
        return {
            user_id: {
                "userId": user_id,
                "messages": [m.to_dict() for m in messages],
            }
            for user_id, messages in self._conversations.items()
        }

    def flush(self) -> None:
        """
        Write the whole store to disk.

        Raises:
            PersistenceFault: If the file cannot be written
        """
        try:
            self.path.write_text(
                json.dumps(self._serialize(), indent=2),
                encoding="utf-8"
            )
        except OSError as e:
            raise PersistenceFault(f"Could not write {self.path}: {e}") from e

    def _flush_quietly(self) -> None:
        try:
            self.flush()
        except PersistenceFault as e:
            logger.error("Error saving chat history", e)
