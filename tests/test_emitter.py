import pytest

from fakes import ReplySink
from kira.agent.emitter import APOLOGY, ResponseEmitter, TurnContext, escape_markdown


@pytest.mark.parametrize(
    "text, expected",
    [
        ("plain text", "plain text"),
        ("1.5 USDi (approx)", "1.5 USDi (approx)"),
        ("[link](url) *bold* _it_ ~strike~", "[link](url) *bold* _it_ ~strike~"),
        ("a < b & c > d", "a &lt; b &amp; c &gt; d"),
        ("<!channel>", "&lt;!channel&gt;"),
        ("<@U123|someone>", "&lt;@U123|someone&gt;"),
        ("already &amp; escaped", "already &amp;amp; escaped"),
        ("back\\slash.", "back\\slash."),
    ],
)
def test_escape_markdown(text: str, expected: str) -> None:
    assert escape_markdown(text) == expected


@pytest.mark.asyncio
async def test_fallback_is_sent_unescaped() -> None:
    sink = ReplySink()
    turn = TurnContext(user_id="U1", text="x", send=sink)

    await ResponseEmitter().emit_fallback(turn, "Try again.")

    assert sink.sent == [("Try again.", False)]
    assert turn.replied


@pytest.mark.asyncio
async def test_apology_survives_transport_failure() -> None:
    async def broken(text: str, escaped: bool) -> None:
        raise ConnectionError("gone")

    turn = TurnContext(user_id="U1", text="x", send=broken)

    await ResponseEmitter().emit_apology(turn)

    assert not turn.replied


@pytest.mark.asyncio
async def test_apology_text() -> None:
    sink = ReplySink()
    turn = TurnContext(user_id="U1", text="x", send=sink)

    await ResponseEmitter().emit_apology(turn)

    assert sink.sent == [(APOLOGY, False)]
