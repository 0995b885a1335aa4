"""
Response Emitter
================

Delivers the single user-visible reply of a turn.

Three kinds of reply reach the user:
1. A handler's own reply (mint, redeem, withdraw, deposit send their own)
2. A plain-text reply (chat action or free text from the model), escaped
   for Slack mrkdwn so that control sequences such as <!channel> or
   <@U123> in model text are shown literally
3. A fixed fallback string, sent as-is

The transport boundary is a single coroutine `reply(text, escaped)`.
TurnContext wraps it for one turn and records what was said, so the
agent can write the reply into history afterwards.
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable

from kira.utils.logger import Logger

logger = Logger("Emitter")

APOLOGY = "Sorry, something went wrong."
COULD_NOT_PROCESS = "I couldn't process that request. Please try again."

ReplyFn = Callable[[str, bool], Awaitable[None]]

# Slack mrkdwn control characters; "&" must be replaced first
_MRKDWN_ENTITIES = (("&", "&amp;"), ("<", "&lt;"), (">", "&gt;"))


def escape_markdown(text: str) -> str:
    """
    Escape the characters Slack treats as markup control.

    Slack mrkdwn has no backslash escaping; only "&", "<" and ">" are
    replaced by their HTML entities. Everything else is sent unchanged.

    Example:
        escape_markdown("Ping <!channel> & go")  # "Ping &lt;!channel&gt; &amp; go"
    """
    for char, entity in _MRKDWN_ENTITIES:
        text = text.replace(char, entity)
    return text


@dataclass
class TurnContext:
    """
    Everything a handler needs to act on and answer one turn.

    Attributes:
        user_id: Opaque user identifier from the transport
        text: The user's message
        replies: Plain text of every reply sent so far this turn
    """
    user_id: str
    text: str
    send: ReplyFn
    replies: list[str] = field(default_factory=list)

    async def reply(self, text: str, escaped: bool = False, record: str | None = None) -> None:
        """
        Send a reply through the transport.

        Args:
            text: Text to deliver
            escaped: Whether the text was markup-escaped
            record: Plain form kept for history (defaults to text)
        """
        await self.send(text, escaped)
        self.replies.append(text if record is None else record)

    @property
    def replied(self) -> bool:
        return bool(self.replies)


class ResponseEmitter:
    """
    Renders plain-text and fallback replies.

    Example:
        emitter = ResponseEmitter()
        await emitter.emit_text(turn, "You have 12.5 USDC.")
        await emitter.emit_fallback(turn, COULD_NOT_PROCESS)
    """

    async def emit_text(self, turn: TurnContext, text: str) -> None:
        """Escape and send a model-provided reply."""
        await turn.reply(escape_markdown(text), escaped=True, record=text)

    async def emit_fallback(self, turn: TurnContext, message: str) -> None:
        """Send a fixed fallback message unescaped."""
        await turn.reply(message, escaped=False)

    async def emit_apology(self, turn: TurnContext) -> None:
        """
        Send the fixed apology.

        This is the last line of defense; a transport failure here is
        logged and nothing more can be done for the turn.
        """
        try:
            await self.emit_fallback(turn, APOLOGY)
        except Exception as e:
            logger.error(f"Could not deliver apology to {turn.user_id}", e)
