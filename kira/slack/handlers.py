"""
Slack Event Handlers
====================

Receives messages from Slack and hands each one to the agent as a turn.

Event Types:
- message.im: Direct messages (the main way to talk to the wallet)
- app_mention: @Kira in a channel; the reply goes to the thread

Commands:
- /kira help    Show help
- /kira status  Show bot status
- /kira clear   Forget your conversation history

The agent replies through a small callable, so the handlers only decide
where a reply goes (DM or thread) and whether Slack should render markup.
"""

import re
from typing import TYPE_CHECKING

from slack_bolt.async_app import AsyncAck, AsyncApp, AsyncSay

from kira.agent.emitter import ReplyFn
from kira.utils.logger import Logger

if TYPE_CHECKING:
    from kira.agent import Agent

logger = Logger("Handlers")

HELP_TEXT = """*Kira* - Your yield wallet assistant

*Commands:*
- `/kira help` - Show this help message
- `/kira status` - Check bot status
- `/kira clear` - Clear your conversation history

*Examples:*
- "What's my balance?"
- "How do I deposit?"
- "Convert 50 USDC to USDi"
- "Withdraw 20 USDC to <address>"
"""

_MENTION = re.compile(r"<@[A-Z0-9]+>")


def make_reply(say: AsyncSay, thread_ts: str | None = None) -> ReplyFn:
    """
    Adapt Bolt's say() to the agent's reply(text, escaped) boundary.

    Escaped text is rendered with markup; everything else is sent verbatim.
    """
    async def reply(text: str, escaped: bool) -> None:
        await say(text=text, thread_ts=thread_ts, mrkdwn=escaped)

    return reply


def register_handlers(app: AsyncApp, agent: "Agent") -> None:
    """
    Register all event handlers with the Slack app.

    Args:
        app: The Bolt app instance
        agent: The agent that processes turns
    """

    async def handle_message(event: dict, say: AsyncSay) -> None:
        """Handle a direct message to the bot."""
        if event.get("channel_type") != "im":
            return
        # Ignore bot messages (including our own) and edits/deletes
        if event.get("bot_id") or event.get("subtype"):
            return

        user_id = event.get("user")
        text = (event.get("text") or "").strip()
        if not user_id or not text:
            return

        logger.info(f"DM from {user_id}: {text[:50]}")
        await agent.process(user_id, text, make_reply(say))

    async def handle_mention(event: dict, say: AsyncSay) -> None:
        """Handle an @mention in a channel; answer in the thread."""
        user_id = event.get("user")
        thread_ts = event.get("thread_ts") or event.get("ts")
        text = _MENTION.sub("", event.get("text") or "").strip()

        if not user_id:
            return
        if not text:
            await say(text="Hi! Ask me about your balance, deposits or yield.", thread_ts=thread_ts)
            return

        logger.info(f"Mention from {user_id}: {text[:50]}")
        await agent.process(user_id, text, make_reply(say, thread_ts))

    async def handle_command(ack: AsyncAck, command: dict, say: AsyncSay) -> None:
        """Handle the /kira slash command."""
        await ack()

        user_id = command.get("user_id")
        text = (command.get("text") or "").strip().lower()

        if text == "help" or not text:
            await say(text=HELP_TEXT)

        elif text == "status":
            await say(text=(
                "*Bot Status*\n"
                "- Status: Online\n"
                f"- Model: {agent.model or 'unknown'}\n"
                f"- Conversations stored: {agent.history.user_count()}"
            ))

        elif text == "clear":
            await agent.clear_conversation(user_id)
            await say(text="Conversation history cleared! Starting fresh.")

        else:
            await say(text=f"Unknown command: `{text}`. Try `/kira help`")

    app.event("message")(handle_message)
    app.event("app_mention")(handle_mention)
    app.command("/kira")(handle_command)

    logger.info("Registered Slack event handlers")
