"""
Agent System
============

The agent turns each user message into exactly one outcome. It:
1. Builds the transcript from live balances and recent history
2. Asks the reasoning service to pick one action
3. Validates the action's arguments
4. Dispatches to one handler, or replies with text or a fallback
5. Records the exchange in history

This module provides:
- Agent: Runs a turn end to end
- ContextBuilder: Builds the reasoning transcript
- ToolRouter: Selects, validates and dispatches the single action
- ResponseEmitter: Renders text and fallback replies
"""

from kira.agent.core import Agent
from kira.agent.context import AccountSnapshot, ContextBuilder
from kira.agent.emitter import ResponseEmitter, TurnContext, escape_markdown
from kira.agent.reasoning import OpenAIReasoningService, ReasoningResponse, ToolSelection
from kira.agent.router import ActionDispatch, Decision, Fallback, TextReply, ToolRouter

__all__ = [
    "Agent",
    "AccountSnapshot",
    "ContextBuilder",
    "ResponseEmitter",
    "TurnContext",
    "escape_markdown",
    "OpenAIReasoningService",
    "ReasoningResponse",
    "ToolSelection",
    "ActionDispatch",
    "Decision",
    "Fallback",
    "TextReply",
    "ToolRouter",
]
