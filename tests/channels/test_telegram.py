import json
from collections.abc import Sequence

import httpx
import pytest

from miniclaw.channels.telegram import (
    START_GREETING,
    TELEGRAM_MAX_LENGTH,
    TelegramChannel,
    TelegramError,
    split_message,
)
from miniclaw.core.agent import ChatMessage
from miniclaw.core.conversation import ConversationService
from miniclaw.core.llm import LLMError, LLMResponse
from miniclaw.core.tool_registry import build_default_registry


class ReplyLLM:
    def __init__(self, text: str = "pong") -> None:
        self.text = text
        self.histories: list[list[ChatMessage]] = []

    async def chat(self, history: Sequence[ChatMessage]) -> LLMResponse:
        self.histories.append(list(history))
        return LLMResponse(text=self.text)


class BrokenLLM:
    async def chat(self, history: Sequence[ChatMessage]) -> LLMResponse:
        raise LLMError("Model endpoint unreachable: connection refused")


class BotAPI:
    """Minimal in-memory Bot API: records calls and serves queued updates."""

    def __init__(self, updates: list[dict] | None = None) -> None:
        self.updates = updates or []
        self.requests: list[tuple[str, dict]] = []

    def sent(self) -> list[dict]:
        return [payload for method, payload in self.requests if method == "sendMessage"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit("/", 1)[-1]
        payload = json.loads(request.content.decode() or "{}")
        self.requests.append((method, payload))
        if method == "getUpdates":
            result, self.updates = self.updates, []
            return httpx.Response(200, json={"ok": True, "result": result})
        if method == "getMe":
            return httpx.Response(200, json={"ok": True, "result": {"username": "mini_bot"}})
        if method == "sendMessage":
            return httpx.Response(200, json={"ok": True, "result": {"message_id": len(self.requests)}})
        return httpx.Response(404, json={"ok": False, "description": "Not Found"})


def _channel(api: BotAPI, llm) -> tuple[TelegramChannel, ConversationService]:
    service = ConversationService(llm, build_default_registry())
    client = httpx.AsyncClient(transport=httpx.MockTransport(api))
    return TelegramChannel("123:abc", service, client=client, poll_timeout=0), service


def _update(update_id: int, chat_id: int, text: str) -> dict:
    return {"update_id": update_id, "message": {"chat": {"id": chat_id}, "text": text}}


def test_split_message_short_text_is_single_piece() -> None:
    assert split_message("hello") == ["hello"]


def test_split_message_long_text() -> None:
    text = "".join(str(i % 10) for i in range(9000))

    pieces = split_message(text)

    assert [len(piece) for piece in pieces] == [4096, 4096, 808]
    assert "".join(pieces) == text
    assert all(len(piece) <= TELEGRAM_MAX_LENGTH for piece in pieces)


def test_split_message_rejects_bad_limit() -> None:
    with pytest.raises(ValueError):
        split_message("text", limit=0)


@pytest.mark.asyncio
async def test_message_runs_a_turn_and_replies() -> None:
    api = BotAPI()
    llm = ReplyLLM("pong")
    channel, service = _channel(api, llm)

    await channel.handle_update(_update(1, 42, "ping"))

    assert api.sent() == [{"chat_id": 42, "text": "pong"}]
    assert [message.content for message in service.sessions.get("telegram:42")] == ["ping", "pong"]


@pytest.mark.asyncio
async def test_chats_keep_separate_histories() -> None:
    api = BotAPI()
    llm = ReplyLLM()
    channel, service = _channel(api, llm)

    await channel.handle_update(_update(1, 1, "from one"))
    await channel.handle_update(_update(2, 2, "from two"))

    assert [message.content for message in llm.histories[1]] == ["from two"]
    assert set(service.sessions.identities()) == {"telegram:1", "telegram:2"}


@pytest.mark.asyncio
async def test_start_command_sends_greeting_without_a_turn() -> None:
    api = BotAPI()
    llm = ReplyLLM()
    channel, service = _channel(api, llm)

    await channel.handle_update(_update(1, 7, "/start"))

    assert api.sent() == [{"chat_id": 7, "text": START_GREETING}]
    assert llm.histories == []
    assert "telegram:7" not in service.sessions


@pytest.mark.asyncio
async def test_long_reply_is_split() -> None:
    api = BotAPI()
    channel, _service = _channel(api, ReplyLLM("x" * 9000))

    await channel.handle_update(_update(1, 9, "write a lot"))

    texts = [payload["text"] for payload in api.sent()]
    assert [len(text) for text in texts] == [4096, 4096, 808]


@pytest.mark.asyncio
async def test_failed_turn_replies_with_error() -> None:
    api = BotAPI()
    channel, _service = _channel(api, BrokenLLM())

    await channel.handle_update(_update(1, 5, "hello"))

    assert api.sent() == [{"chat_id": 5, "text": "Error: Model endpoint unreachable: connection refused"}]


@pytest.mark.asyncio
async def test_updates_without_text_are_ignored() -> None:
    api = BotAPI()
    channel, _service = _channel(api, ReplyLLM())

    await channel.handle_update({"update_id": 1, "message": {"chat": {"id": 3}, "sticker": {}}})
    await channel.handle_update({"update_id": 2, "edited_message": {}})

    assert api.sent() == []


@pytest.mark.asyncio
async def test_get_updates_advances_offset() -> None:
    api = BotAPI([_update(10, 1, "a"), _update(11, 1, "b")])
    channel, _service = _channel(api, ReplyLLM())

    updates = await channel.get_updates()
    await channel.get_updates()

    assert [update["update_id"] for update in updates] == [10, 11]
    first, second = [payload for method, payload in api.requests if method == "getUpdates"]
    assert "offset" not in first
    assert second["offset"] == 12


@pytest.mark.asyncio
async def test_api_failure_raises_telegram_error() -> None:
    api = BotAPI()
    channel, _service = _channel(api, ReplyLLM())

    with pytest.raises(TelegramError, match="Not Found"):
        await channel._call("deleteEverything")
