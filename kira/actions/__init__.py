"""
Wallet Actions
==============

The closed set of actions the reasoning service may select, one per turn.

    mint      convert USDC to USDi                (amount)
    redeem    convert USDi back to USDC           (amount)
    withdraw  send USDC to another wallet         (amount, address)
    deposit   send the user their wallet address  (no arguments)
    chat      reply with free text                (message)

Every action is declared strict with no additional properties, so the
reasoning service must fill in exactly the declared arguments. The same
declarations are used to validate what comes back before anything is
dispatched.

This module provides:
- WalletAction: one action declaration
- ACTIONS / ACTION_SCHEMA: the fixed action set, in OpenAI tool format
- validate_arguments: check parsed arguments against a declaration
- ActionRegistry: maps action names to handler capabilities
"""

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from kira.utils.logger import Logger

if TYPE_CHECKING:
    from kira.agent.emitter import TurnContext

logger = Logger("Actions")

# A handler receives the turn and the validated arguments, performs the
# side effect and sends its own reply.
ActionHandler = Callable[..., Awaitable[None]]

_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "number": (int, float),
    "string": (str,),
}


@dataclass(frozen=True)
class WalletAction:
    """
    Declaration of one selectable action.

    Attributes:
        name: Identifier the reasoning service selects
        description: What the action does (shown to the model)
        properties: JSON Schema properties of the arguments
        required: Names of required arguments
    """
    name: str
    description: str
    properties: dict[str, dict]
    required: tuple[str, ...] = ()

    @property
    def parameters(self) -> dict:
        """JSON Schema for the arguments."""
        return {
            "type": "object",
            "properties": self.properties,
            "required": list(self.required),
            "additionalProperties": False,
        }

    def to_openai_function(self) -> dict:
        """Convert to OpenAI strict function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
                "strict": True,
            },
        }


MINT = WalletAction(
    name="mint",
    description="Convert USDC to USDi to start minting",
    properties={
        "amount": {"type": "number", "description": "Amount of USDC to convert"},
    },
    required=("amount",),
)

REDEEM = WalletAction(
    name="redeem",
    description="Convert USDi back to USDC",
    properties={
        "amount": {"type": "number", "description": "Amount to redeem"},
    },
    required=("amount",),
)

WITHDRAW = WalletAction(
    name="withdraw",
    description="Withdraw USDC to another wallet",
    properties={
        "amount": {"type": "number", "description": "Amount to withdraw"},
        "address": {"type": "string", "description": "Destination wallet address"},
    },
    required=("amount", "address"),
)

DEPOSIT = WalletAction(
    name="deposit",
    description="Send the wallet address to the user for deposit",
    properties={},
)

CHAT = WalletAction(
    name="chat",
    description="Send a text response to the user",
    properties={
        "message": {"type": "string", "description": "Message to send to user"},
    },
    required=("message",),
)

ACTIONS: dict[str, WalletAction] = {
    action.name: action for action in (MINT, REDEEM, WITHDRAW, DEPOSIT, CHAT)
}

# Tool definitions sent with every reasoning request
ACTION_SCHEMA: list[dict] = [action.to_openai_function() for action in ACTIONS.values()]


def validate_arguments(action: WalletAction, arguments: dict[str, Any]) -> list[str]:
    """
    Check parsed arguments against an action declaration.

    Amounts must be explicit positive numbers; nothing is defaulted.

    Args:
        action: The selected action's declaration
        arguments: Parsed arguments from the reasoning service

    Returns:
        A list of problems; empty when the arguments are valid
    """
    problems = []

    for name in action.required:
        if name not in arguments or arguments[name] is None:
            problems.append(f"missing '{name}'")

    for name, value in arguments.items():
        prop = action.properties.get(name)
        if prop is None:
            problems.append(f"unexpected '{name}'")
            continue
        if value is None:
            continue

        expected = _JSON_TYPES[prop["type"]]
        # bool is an int subclass but never a valid amount
        if isinstance(value, bool) or not isinstance(value, expected):
            problems.append(f"'{name}' must be a {prop['type']}")
        elif prop["type"] == "number" and not (_is_finite(value) and value > 0):
            problems.append(f"'{name}' must be a positive finite number")
        elif prop["type"] == "string" and not value.strip():
            problems.append(f"'{name}' must not be empty")

    return problems


def _is_finite(value: int | float) -> bool:
    # Integers too large for a float cannot be a real amount
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


class ActionRegistry:
    """
    Maps action names to the handlers that carry them out.

    Example:
        registry = ActionRegistry()
        registry.register("mint", wallet_actions.mint)

        handler = registry.get("mint")
        await handler(turn, amount=50)
    """

    def __init__(self):
        self._handlers: dict[str, ActionHandler] = {}

    def register(self, name: str, handler: ActionHandler) -> None:
        """
        Register a handler for a declared action.

        Raises:
            ValueError: If the action is not declared or already has a handler
        """
        if name not in ACTIONS:
            raise ValueError(f"Action '{name}' is not part of the action schema")
        if name in self._handlers:
            raise ValueError(f"Action '{name}' already has a handler")

        self._handlers[name] = handler
        logger.debug(f"Registered handler: {name}")

    def get(self, name: str) -> ActionHandler | None:
        """Get the handler for an action, or None."""
        return self._handlers.get(name)

    def list_names(self) -> list[str]:
        """Names of actions that have handlers."""
        return list(self._handlers.keys())

    async def execute(self, name: str, turn: "TurnContext", arguments: dict[str, Any]) -> None:
        """
        Run the handler for an action.

        Raises:
            KeyError: If no handler is registered for the action
        """
        handler = self._handlers[name]
        logger.info(f"Executing action: {name}")
        await handler(turn, **arguments)


__all__ = [
    "WalletAction",
    "ACTIONS",
    "ACTION_SCHEMA",
    "ActionHandler",
    "ActionRegistry",
    "validate_arguments",
]
