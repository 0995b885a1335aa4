"""
Agent Core
==========

Runs one turn from user text to a single reply.

Turn Pipeline:
    User Message
         │
         ▼
    Build Transcript (live balances + history + new message)
         │
         ▼
    Reasoning Request (forced selection, timeout)
         │
         ▼
    Decide: dispatch one action / text reply / fallback
         │
         ▼
    Deliver the reply
         │
         ▼
    Record user message and reply in history

Unlike a tool loop, exactly one action runs per turn and its result is
never fed back to the model.

Every fault that reaches the turn boundary becomes the fixed apology, so
the user always gets an answer. Turns from the same user are serialized;
turns from different users run independently.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from kira.actions import ActionRegistry
from kira.agent.context import ContextBuilder
from kira.agent.emitter import ResponseEmitter, TurnContext, ReplyFn
from kira.agent.reasoning import ReasoningService
from kira.agent.router import DEFAULT_TIMEOUT_SECONDS, ToolRouter
from kira.errors import ReasoningServiceFault
from kira.memory import HistoryStore, Sender
from kira.utils.logger import Logger
from kira.wallet import BalanceService

logger = Logger("Agent")


class Agent:
    """
    The wallet assistant.

    Example:
        agent = Agent(
            history=history,
            balances=wallet_client,
            reasoning=OpenAIReasoningService(api_key, model),
            registry=registry,
        )

        async def reply(text: str, escaped: bool) -> None:
            await say(text=text)

        await agent.process("U123", "convert 50 to yield", reply)
    """

    def __init__(
        self,
        history: HistoryStore,
        balances: BalanceService,
        reasoning: ReasoningService,
        registry: ActionRegistry,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        model: str | None = None
    ):
        """
        Args:
            history: Conversation store, shared for the process lifetime
            balances: Source of live account figures
            reasoning: Service that selects the action
            registry: Handlers for side-effecting actions
            timeout: Reasoning request timeout in seconds
            model: Model name, for status display only
        """
        self.history = history
        self.model = model

        self.emitter = ResponseEmitter()
        self.context_builder = ContextBuilder(history, balances)
        self.router = ToolRouter(
            reasoning=reasoning,
            registry=registry,
            emitter=self.emitter,
            timeout=timeout,
        )

        # One lock per user id with turns in flight, and how many turns hold
        # or wait on it; different users never wait on each other
        self._user_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

        logger.info(f"Agent initialized with handlers: {registry.list_names()}")

    async def process(self, user_id: str, text: str, reply: ReplyFn) -> TurnContext:
        """
        Handle one user message.

        Never raises: any failure is logged and answered with the apology.

        Args:
            user_id: Opaque user identifier from the transport
            text: The user's message
            reply: Transport coroutine taking (text, escaped)

        Returns:
            The finished TurnContext (what was replied)
        """
        turn = TurnContext(user_id=user_id, text=text, send=reply)

        async with self._serialized(user_id):
            logger.info(f"Turn from {user_id}: {text[:50]}")

            try:
                await self._run_turn(turn)
            except ReasoningServiceFault as e:
                logger.error("Reasoning service fault", e, {"user_id": user_id})
                await self._apologize(turn)
            except Exception as e:
                logger.error("Error processing message", e, {"user_id": user_id})
                await self._apologize(turn)

            self._remember(turn)

        return turn

    async def _run_turn(self, turn: TurnContext) -> None:
        transcript = await self.context_builder.build(turn.user_id, turn.text)
        decision = await self.router.route(transcript)
        await self.router.dispatch(decision, turn)

        if not turn.replied:
            logger.warning(f"Turn for {turn.user_id} finished without a reply")
            await self.emitter.emit_apology(turn)

    async def _apologize(self, turn: TurnContext) -> None:
        # A handler that already answered keeps its answer
        if turn.replied:
            return
        await self.emitter.emit_apology(turn)

    def _remember(self, turn: TurnContext) -> None:
        """Record both sides of the exchange once the outcome is known."""
        self.history.append(turn.user_id, Sender.USER, turn.text)
        if turn.replied:
            self.history.append(turn.user_id, Sender.ASSISTANT, "\n".join(turn.replies))

    @asynccontextmanager
    async def _serialized(self, user_id: str) -> AsyncIterator[None]:
        """Hold the user's lock; drop it when no one else holds or waits on it."""
        lock = self._user_locks.setdefault(user_id, asyncio.Lock())
        self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[user_id] -= 1
            if self._lock_users[user_id] == 0:
                del self._lock_users[user_id]
                del self._user_locks[user_id]

    async def clear_conversation(self, user_id: str) -> None:
        """
        Forget a user's conversation history.

        Waits for any turn in flight for the user, so its exchange is
        cleared too.
        """
        async with self._serialized(user_id):
            self.history.clear(user_id)
        logger.info(f"Cleared conversation for {user_id}")
