"""
Reasoning Service
=================

Wraps the LLM that decides what to do with a turn. The request is made in
forced-selection mode: the model must answer with a call to one of the
declared actions. Free text alone is still accepted, but only as a
fallback.
"""

from dataclasses import dataclass
from typing import Protocol

from openai import APIError, AsyncOpenAI

from kira.errors import ReasoningServiceFault
from kira.utils.logger import Logger

logger = Logger("Reasoning")


@dataclass(frozen=True)
class ToolSelection:
    """
    The action the model selected, exactly as it came over the wire.

    Attributes:
        name: Selected action identifier
        raw_arguments: JSON-encoded arguments (not yet parsed)
    """
    name: str
    raw_arguments: str | None


@dataclass(frozen=True)
class ReasoningResponse:
    """What the reasoning service returned for one request."""
    selection: ToolSelection | None = None
    text: str | None = None


class ReasoningService(Protocol):
    async def complete(
        self,
        transcript: list[dict],
        schema: list[dict],
        forced: bool = True
    ) -> ReasoningResponse: ...


class OpenAIReasoningService:
    """
    Reasoning service backed by OpenAI chat completions.

    Example:
        reasoning = OpenAIReasoningService(api_key="sk-...", model="gpt-4o-mini")
        response = await reasoning.complete(transcript, ACTION_SCHEMA)
        if response.selection:
            print(response.selection.name)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        timeout: float = 20.0,
        client: AsyncOpenAI | None = None
    ):
        """
        Args:
            api_key: OpenAI API key (ignored when client is given)
            model: Chat completion model
            timeout: Transport-level timeout in seconds
            client: Optional preconfigured client
        """
        self.openai = client or AsyncOpenAI(api_key=api_key, timeout=timeout)
        self.model = model

    async def complete(
        self,
        transcript: list[dict],
        schema: list[dict],
        forced: bool = True
    ) -> ReasoningResponse:
        """
        Ask the model to pick an action for the transcript.

        Raises:
            ReasoningServiceFault: On API errors or a malformed response
        """
        try:
            completion = await self.openai.chat.completions.create(
                model=self.model,
                messages=transcript,
                tools=schema,
                tool_choice="required" if forced else "auto",
                parallel_tool_calls=False,
            )
        except APIError as e:
            raise ReasoningServiceFault(f"Reasoning request failed: {e}") from e

        if not completion.choices:
            raise ReasoningServiceFault("Reasoning response has no choices")

        message = completion.choices[0].message
        tool_calls = message.tool_calls or []

        if len(tool_calls) > 1:
            # Only one action may run per turn
            logger.warning(
                f"Model returned {len(tool_calls)} tool calls, using the first",
                {"names": [tc.function.name for tc in tool_calls]}
            )

        selection = None
        if tool_calls:
            function = tool_calls[0].function
            selection = ToolSelection(name=function.name, raw_arguments=function.arguments)

        logger.debug(
            "Reasoning response",
            {"selection": selection.name if selection else None, "text": message.content}
        )
        return ReasoningResponse(selection=selection, text=message.content)
