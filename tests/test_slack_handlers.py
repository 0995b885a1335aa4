import json

import pytest

from fakes import FakeBalances, FakeReasoning, RecordingHandlers, selection
from kira.agent import Agent
from kira.memory import HistoryStore
from kira.slack.handlers import make_reply


class FakeSay:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    async def __call__(self, **kwargs) -> None:
        self.calls.append(kwargs)


@pytest.mark.asyncio
async def test_reply_goes_to_thread_with_markup_flag() -> None:
    say = FakeSay()

    await make_reply(say, thread_ts="123.45")("1 &lt; 2", True)

    assert say.calls == [{"text": "1 &lt; 2", "thread_ts": "123.45", "mrkdwn": True}]


@pytest.mark.asyncio
async def test_plain_reply_in_dm() -> None:
    say = FakeSay()

    await make_reply(say)("Sorry, something went wrong.", False)

    assert say.calls == [{"text": "Sorry, something went wrong.", "thread_ts": None, "mrkdwn": False}]


@pytest.mark.asyncio
async def test_chat_reply_reaches_slack_with_control_characters_escaped(history: HistoryStore) -> None:
    message = "You have 12.5 USDC. Ping <!channel> & go!"
    agent = Agent(
        history=history,
        balances=FakeBalances(deposit=12.5),
        reasoning=FakeReasoning(selection("chat", json.dumps({"message": message}))),
        registry=RecordingHandlers().registry(),
    )
    say = FakeSay()

    await agent.process("U1", "balance?", make_reply(say))

    assert say.calls == [{
        "text": "You have 12.5 USDC. Ping &lt;!channel&gt; &amp; go!",
        "thread_ts": None,
        "mrkdwn": True,
    }]
    assert history.recent("U1")[-1].content == message
