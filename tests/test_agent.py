import asyncio
import json

import pytest

from fakes import FakeBalances, FakeReasoning, RecordingHandlers, ReplySink, selection
from kira.actions import ActionRegistry
from kira.agent import Agent
from kira.agent.emitter import APOLOGY
from kira.agent.reasoning import ReasoningResponse
from kira.memory import HistoryStore, Sender


def _agent(
    history: HistoryStore,
    response: ReasoningResponse,
    balances: FakeBalances | None = None,
    handlers: RecordingHandlers | None = None,
    delay: float = 0.0,
    **kwargs,
) -> Agent:
    return Agent(
        history=history,
        balances=balances or FakeBalances(),
        reasoning=FakeReasoning(response, delay=delay),
        registry=(handlers or RecordingHandlers()).registry(),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_balance_question_gets_chat_reply(history: HistoryStore, sink: ReplySink) -> None:
    handlers = RecordingHandlers()
    agent = _agent(
        history,
        selection("chat", json.dumps({"message": "You have 100.00000 USDC."})),
        balances=FakeBalances(deposit=100),
        handlers=handlers,
    )

    await agent.process("U1", "what's my balance", sink)

    assert handlers.calls == []
    assert sink.sent == [("You have 100.00000 USDC.", True)]


@pytest.mark.asyncio
async def test_convert_dispatches_mint_with_exact_amount(history: HistoryStore, sink: ReplySink) -> None:
    handlers = RecordingHandlers()
    agent = _agent(
        history,
        selection("mint", json.dumps({"amount": 50})),
        balances=FakeBalances(deposit=100),
        handlers=handlers,
    )

    await agent.process("U1", "convert 50 to yield", sink)

    assert handlers.calls == [("mint", {"amount": 50})]
    assert sink.sent == [("mint done", False)]


@pytest.mark.asyncio
async def test_withdraw_missing_address_never_reaches_handler(history: HistoryStore, sink: ReplySink) -> None:
    handlers = RecordingHandlers()
    agent = _agent(history, selection("withdraw", json.dumps({"amount": 10})), handlers=handlers)

    await agent.process("U1", "withdraw 10", sink)

    assert handlers.calls == []
    assert len(sink.sent) == 1
    assert "address" in sink.sent[0][0]


@pytest.mark.asyncio
async def test_reasoning_timeout_apologizes(history: HistoryStore, sink: ReplySink) -> None:
    handlers = RecordingHandlers()
    agent = _agent(
        history,
        selection("mint", json.dumps({"amount": 50})),
        handlers=handlers,
        delay=1.0,
        timeout=0.01,
    )

    await agent.process("U1", "convert 50", sink)

    assert handlers.calls == []
    assert sink.sent == [(APOLOGY, False)]


@pytest.mark.asyncio
async def test_balance_service_failure_apologizes(history: HistoryStore, sink: ReplySink) -> None:
    class BrokenBalances(FakeBalances):
        async def deposit_balance(self, user_id: str) -> float:
            raise RuntimeError("backend down")

    agent = _agent(history, ReasoningResponse(text="never used"), balances=BrokenBalances())

    await agent.process("U1", "hi", sink)

    assert sink.sent == [(APOLOGY, False)]


@pytest.mark.asyncio
async def test_handler_failure_after_reply_is_not_doubled(history: HistoryStore, sink: ReplySink) -> None:
    async def flaky_deposit(turn) -> None:
        await turn.reply("Send USDC to ABC")
        raise RuntimeError("after reply")

    registry = ActionRegistry()
    registry.register("deposit", flaky_deposit)
    agent = Agent(
        history=history,
        balances=FakeBalances(),
        reasoning=FakeReasoning(selection("deposit", "{}")),
        registry=registry,
    )

    await agent.process("U1", "how do I deposit", sink)

    assert sink.sent == [("Send USDC to ABC", False)]


@pytest.mark.asyncio
async def test_exchange_is_recorded_in_history(history: HistoryStore, sink: ReplySink) -> None:
    agent = _agent(history, selection("chat", json.dumps({"message": "Hi (there)!"})))

    await agent.process("U1", "hello", sink)

    messages = history.recent("U1")
    assert [(m.sender, m.content) for m in messages] == [
        (Sender.USER, "hello"),
        (Sender.ASSISTANT, "Hi (there)!"),
    ]


@pytest.mark.asyncio
async def test_history_feeds_the_next_turn(history: HistoryStore, sink: ReplySink) -> None:
    reasoning = FakeReasoning(ReasoningResponse(text="ok"))
    agent = Agent(
        history=history,
        balances=FakeBalances(),
        reasoning=reasoning,
        registry=RecordingHandlers().registry(),
    )

    await agent.process("U1", "first", sink)
    await agent.process("U1", "second", sink)

    transcript = reasoning.calls[1]["transcript"]
    assert [m["content"] for m in transcript if m["role"] != "system"] == ["first", "ok", "second"]


@pytest.mark.asyncio
async def test_same_user_turns_are_serialized(history: HistoryStore, sink: ReplySink) -> None:
    agent = _agent(history, ReasoningResponse(text="ok"), delay=0.01)

    await asyncio.gather(
        agent.process("U1", "one", sink),
        agent.process("U1", "two", sink),
    )

    contents = [m.content for m in history.recent("U1")]
    assert sorted(contents) == ["ok", "ok", "one", "two"]
    assert contents[0] in ("one", "two") and contents[1] == "ok"


@pytest.mark.asyncio
async def test_clear_conversation(history: HistoryStore, sink: ReplySink) -> None:
    agent = _agent(history, ReasoningResponse(text="ok"))
    await agent.process("U1", "hello", sink)

    await agent.clear_conversation("U1")

    assert history.recent("U1") == []


@pytest.mark.asyncio
async def test_clear_waits_for_turn_in_flight(history: HistoryStore, sink: ReplySink) -> None:
    agent = _agent(history, ReasoningResponse(text="ok"), delay=0.05)

    async def clear_soon() -> None:
        await asyncio.sleep(0.01)
        await agent.clear_conversation("U1")

    await asyncio.gather(agent.process("U1", "hello", sink), clear_soon())

    assert sink.sent == [("ok", True)]
    assert history.recent("U1") == []


@pytest.mark.asyncio
async def test_user_locks_are_released_after_turns(history: HistoryStore, sink: ReplySink) -> None:
    agent = _agent(history, ReasoningResponse(text="ok"), delay=0.01)

    await asyncio.gather(
        agent.process("U1", "one", sink),
        agent.process("U1", "two", sink),
        agent.process("U2", "three", sink),
    )
    await agent.clear_conversation("U2")

    assert agent._user_locks == {}
    assert agent._lock_users == {}
