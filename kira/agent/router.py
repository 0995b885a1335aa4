"""
Tool Router
===========

Turns a transcript into exactly one outcome:

    Reasoning request (forced selection, bounded by a timeout)
         │
         ▼
    decide(response)
         │
    ┌────┼──────────────┬─────────────────┐
    │    │              │                 │
    ActionDispatch    TextReply        Fallback
    (validated args)  (chat / text)    (ask / could not process / apology)
         │
         ▼
    dispatch(): one handler call, or one reply

decide() is a total, pure function from the reasoning response to a
Decision. Anything unexpected (unknown action, unparseable or invalid
arguments) becomes a designated safe Fallback instead of a dispatch.

The router never invents amounts. If the model selected an action without
the arguments it needs, the user is asked for them.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Union

from kira.actions import ACTION_SCHEMA, ACTIONS, ActionRegistry, validate_arguments
from kira.agent.emitter import APOLOGY, COULD_NOT_PROCESS, ResponseEmitter, TurnContext
from kira.agent.reasoning import ReasoningResponse, ReasoningService
from kira.errors import ArgumentParseFault, ReasoningServiceFault, UnknownActionFault
from kira.utils.logger import Logger

logger = Logger("Router")

DEFAULT_TIMEOUT_SECONDS = 20.0

# What to ask when the model picked an action without usable arguments
ASK_FOR_ARGUMENTS = {
    "mint": "How much USDC would you like to convert to USDi?",
    "redeem": "How much USDi would you like to convert back to USDC?",
    "withdraw": "How much USDC would you like to withdraw, and what's the receiving wallet address?",
}


@dataclass(frozen=True)
class ActionDispatch:
    """Run one handler with validated arguments."""
    action: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TextReply:
    """Send model-provided text to the user."""
    text: str


@dataclass(frozen=True)
class Fallback:
    """
    Send a fixed or templated message instead of acting.

    Attributes:
        message: Text sent to the user
        reason: Why the turn fell back (for logs and tests)
    """
    message: str
    reason: str


Decision = Union[ActionDispatch, TextReply, Fallback]


class ToolRouter:
    """
    Selects and dispatches the single action of a turn.

    Example:
        router = ToolRouter(reasoning, registry, timeout=20)

        decision = await router.route(transcript)
        await router.dispatch(decision, turn)
    """

    def __init__(
        self,
        reasoning: ReasoningService,
        registry: ActionRegistry,
        emitter: ResponseEmitter | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        schema: list[dict] | None = None
    ):
        """
        Args:
            reasoning: Service that picks the action
            registry: Handlers for the side-effecting actions
            emitter: Renders text and fallback replies
            timeout: Upper bound in seconds on the reasoning request
            schema: Tool definitions (defaults to the fixed action schema)
        """
        self.reasoning = reasoning
        self.registry = registry
        self.emitter = emitter or ResponseEmitter()
        self.timeout = timeout
        self.schema = schema or ACTION_SCHEMA

    async def route(self, transcript: list[dict]) -> Decision:
        """
        Ask the reasoning service and decide the outcome.

        Raises:
            ReasoningServiceFault: On timeout or service failure
        """
        response = await self.request(transcript)
        return self.decide(response)

    async def request(self, transcript: list[dict]) -> ReasoningResponse:
        """
        Make the forced-selection request, bounded by the timeout.

        Raises:
            ReasoningServiceFault: On timeout or service failure
        """
        try:
            return await asyncio.wait_for(
                self.reasoning.complete(transcript, self.schema, True),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ReasoningServiceFault(
                f"Reasoning request timed out after {self.timeout}s"
            ) from e

    def decide(self, response: ReasoningResponse) -> Decision:
        """
        Map a reasoning response to exactly one Decision.

        Order of precedence:
        1. A known selection with parseable, valid arguments is dispatched
           (chat becomes a TextReply)
        2. A known selection with bad arguments falls back
        3. Otherwise, text from the model is the reply
        4. Otherwise, a fixed "could not process" message
        """
        selection = response.selection

        if selection is not None:
            action = ACTIONS.get(selection.name)

            if action is None:
                fault = UnknownActionFault(selection.name)
                logger.warning(f"Schema drift: {fault}")
            else:
                try:
                    arguments = self._parse_arguments(selection.name, selection.raw_arguments)
                except ArgumentParseFault as e:
                    logger.error("Failed to parse tool arguments", e)
                    return Fallback(message=APOLOGY, reason="argument_parse")

                problems = validate_arguments(action, arguments)
                if problems:
                    logger.warning(
                        f"Rejected arguments for {action.name}",
                        {"problems": problems}
                    )
                    return Fallback(
                        message=ASK_FOR_ARGUMENTS.get(action.name, COULD_NOT_PROCESS),
                        reason="invalid_arguments",
                    )

                logger.info(f"Selected action: {action.name}")
                if action.name == "chat":
                    return TextReply(text=arguments["message"])
                return ActionDispatch(action=action.name, arguments=arguments)

        if response.text:
            return TextReply(text=response.text)

        return Fallback(message=COULD_NOT_PROCESS, reason="empty_response")

    def _parse_arguments(self, name: str, raw: str | None) -> dict[str, Any]:
        """
        Parse wire-format arguments. An empty payload means no arguments.

        Raises:
            ArgumentParseFault: If the payload is not a JSON object
        """
        if raw is None or not raw.strip():
            return {}

        try:
            arguments = json.loads(raw)
        except ValueError as e:
            # JSONDecodeError, or an integer past the interpreter's digit limit
            raise ArgumentParseFault(name, raw) from e

        if not isinstance(arguments, dict):
            raise ArgumentParseFault(name, raw)
        return arguments

    async def dispatch(self, decision: Decision, turn: TurnContext) -> None:
        """
        Carry out a decision: exactly one handler call or one reply.

        A dispatch for an action without a registered handler is logged
        and answered with the "could not process" fallback.
        """
        if isinstance(decision, ActionDispatch):
            if self.registry.get(decision.action) is None:
                logger.warning(f"No handler registered for '{decision.action}'")
                await self.emitter.emit_fallback(turn, COULD_NOT_PROCESS)
                return
            await self.registry.execute(decision.action, turn, decision.arguments)

        elif isinstance(decision, TextReply):
            await self.emitter.emit_text(turn, decision.text)

        else:
            logger.info(f"Fallback reply ({decision.reason})")
            await self.emitter.emit_fallback(turn, decision.message)
