import asyncio
from collections.abc import Sequence

import pytest

from miniclaw.core.agent import ChatMessage, user_message
from miniclaw.core.conversation import ConversationService
from miniclaw.core.llm import LLMResponse
from miniclaw.core.tool_registry import build_default_registry
from miniclaw.session import SessionStore


class EchoLLM:
    """Echoes the latest user message after an optional pause."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.active = 0
        self.max_active = 0

    async def chat(self, history: Sequence[ChatMessage]) -> LLMResponse:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            last_user = [message.content for message in history if message.role == "user"][-1]
            return LLMResponse(text=f"echo: {last_user}")
        finally:
            self.active -= 1


def test_get_creates_and_reuses_history() -> None:
    store = SessionStore()

    history = store.get("console")
    history.append(user_message("hi"))

    assert store.get("console") is history
    assert "console" in store
    assert len(store) == 1


def test_identities_are_isolated() -> None:
    store = SessionStore()
    store.get("telegram:1").append(user_message("one"))

    assert store.get("telegram:2") == []
    assert sorted(store.identities()) == ["telegram:1", "telegram:2"]


def test_reset_forgets_history() -> None:
    store = SessionStore()
    store.get("console").append(user_message("hi"))

    store.reset("console")

    assert "console" not in store
    assert store.get("console") == []


def test_invalid_limit_rejected() -> None:
    with pytest.raises(ValueError):
        SessionStore(max_sessions=0)


def test_limit_evicts_least_recently_used() -> None:
    store = SessionStore(max_sessions=2)
    store.get("a")
    store.get("b")
    store.get("a")
    store.get("c")

    assert list(store) == ["a", "c"]


@pytest.mark.asyncio
async def test_limit_skips_conversations_with_a_turn_in_flight() -> None:
    store = SessionStore(max_sessions=1)

    async with store.turn("busy") as history:
        history.append(user_message("working"))
        other = store.get("other")
        assert "busy" in store
        assert "other" in store
        assert store.get("other") is other

    assert list(store) == ["busy"]
    assert store.get("busy")[0].content == "working"


@pytest.mark.asyncio
async def test_limit_keeps_conversations_with_queued_turns() -> None:
    store = SessionStore(max_sessions=1)
    active = 0
    peak = 0
    histories: list[list[ChatMessage]] = []

    async def take_turn(text: str) -> None:
        nonlocal active, peak
        async with store.turn("x") as history:
            active += 1
            peak = max(peak, active)
            histories.append(history)
            await asyncio.sleep(0.01)
            history.append(user_message(text))
            active -= 1

    async def first_then_touch_other() -> asyncio.Task[None]:
        await take_turn("a")
        # The lock is released but the queued turn has not resumed yet.
        store.get("y")
        return asyncio.create_task(take_turn("c"))

    first = asyncio.create_task(first_then_touch_other())
    await asyncio.sleep(0)
    second = asyncio.create_task(take_turn("b"))
    third = await first
    await asyncio.gather(second, third)

    assert peak == 1
    assert all(history is histories[0] for history in histories)
    assert [message.content for message in store.get("x")] == ["a", "b", "c"]
    assert not store.is_busy("x")


@pytest.mark.asyncio
async def test_different_identities_run_concurrently() -> None:
    llm = EchoLLM(delay=0.05)
    service = ConversationService(llm, build_default_registry())

    results = await asyncio.gather(
        service.respond("telegram:1", "alpha"),
        service.respond("telegram:2", "beta"),
    )

    assert [result.text for result in results] == ["echo: alpha", "echo: beta"]
    assert llm.max_active == 2
    assert [message.content for message in service.sessions.get("telegram:1")] == ["alpha", "echo: alpha"]
    assert [message.content for message in service.sessions.get("telegram:2")] == ["beta", "echo: beta"]


@pytest.mark.asyncio
async def test_same_identity_turns_are_serialised() -> None:
    llm = EchoLLM(delay=0.05)
    service = ConversationService(llm, build_default_registry())

    await asyncio.gather(
        service.respond("console", "first"),
        service.respond("console", "second"),
    )

    assert llm.max_active == 1
    assert [message.content for message in service.sessions.get("console")] == [
        "first",
        "echo: first",
        "second",
        "echo: second",
    ]
