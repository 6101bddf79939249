"""Telegram Bot API channel (long polling)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from miniclaw.core.conversation import ConversationService

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
TELEGRAM_MAX_LENGTH = 4096
START_GREETING = "Hi! I'm a mini coding assistant powered by Ollama. Send me a message."
EMPTY_REPLY = "(no response)"


class TelegramError(RuntimeError):
    """Raised when the Bot API rejects a request."""


def split_message(text: str, limit: int = TELEGRAM_MAX_LENGTH) -> list[str]:
    """Split ``text`` into consecutive pieces no longer than ``limit``."""
    if limit < 1:
        raise ValueError("limit must be positive")
    if len(text) <= limit:
        return [text]
    return [text[start : start + limit] for start in range(0, len(text), limit)]


def conversation_identity(chat_id: int | str) -> str:
    return f"telegram:{chat_id}"


class TelegramChannel:
    """Feeds Telegram chats into the conversation service, one history per chat."""

    def __init__(
        self,
        token: str,
        service: ConversationService,
        *,
        client: httpx.AsyncClient | None = None,
        poll_timeout: int = 30,
        local_address: str | None = None,
        retry_delay: float = 3.0,
    ) -> None:
        self._token = token
        self._service = service
        self._poll_timeout = poll_timeout
        self._retry_delay = retry_delay
        self._owns_client = client is None
        if client is None:
            transport = httpx.AsyncHTTPTransport(local_address=local_address) if local_address else None
            client = httpx.AsyncClient(transport=transport, timeout=httpx.Timeout(poll_timeout + 10.0))
            if local_address:
                logger.info("Binding Telegram traffic to %s", local_address)
        self._client = client
        self._offset: int | None = None
        self._pending: set[asyncio.Task[None]] = set()

    async def _call(self, method: str, payload: dict[str, Any] | None = None) -> Any:
        url = f"{TELEGRAM_API_BASE}/bot{self._token}/{method}"
        response = await self._client.post(url, json=payload or {})
        try:
            data = response.json()
        except ValueError as exc:
            raise TelegramError(f"{method} returned status {response.status_code}") from exc
        if not isinstance(data, dict) or not data.get("ok"):
            description = data.get("description") if isinstance(data, dict) else None
            raise TelegramError(f"{method} failed: {description or response.status_code}")
        return data.get("result")

    async def get_me(self) -> dict[str, Any]:
        return await self._call("getMe")

    async def get_updates(self) -> list[dict[str, Any]]:
        payload: dict[str, Any] = {"timeout": self._poll_timeout, "allowed_updates": ["message"]}
        if self._offset is not None:
            payload["offset"] = self._offset
        updates = await self._call("getUpdates", payload) or []
        for update in updates:
            update_id = update.get("update_id")
            if isinstance(update_id, int):
                self._offset = max(self._offset or 0, update_id + 1)
        return updates

    async def send_message(self, chat_id: int | str, text: str) -> None:
        await self._call("sendMessage", {"chat_id": chat_id, "text": text})

    async def reply(self, chat_id: int | str, text: str) -> None:
        for chunk in split_message(text or EMPTY_REPLY):
            await self.send_message(chat_id, chunk)

    async def handle_update(self, update: dict[str, Any]) -> None:
        message = update.get("message")
        if not isinstance(message, dict):
            return
        text = message.get("text")
        chat_id = (message.get("chat") or {}).get("id")
        if not isinstance(text, str) or chat_id is None:
            return

        if text.strip().split("@", 1)[0] == "/start":
            await self.reply(chat_id, START_GREETING)
            return

        try:
            result = await self._service.respond(conversation_identity(chat_id), text)
            response_text = result.text
        except Exception as exc:  # noqa: BLE001
            logger.warning("Turn failed for chat %s: %s", chat_id, exc)
            logger.debug("Turn failure details", exc_info=True)
            response_text = f"Error: {exc}"
        await self.reply(chat_id, response_text)

    async def run(self) -> None:
        """Long-poll for updates until cancelled."""
        try:
            me = await self.get_me()
            logger.info("Bot @%s is live", me.get("username"))
            while True:
                try:
                    updates = await self.get_updates()
                except (httpx.TransportError, TelegramError) as exc:
                    logger.warning("Telegram polling failed (%s); retrying in %.1fs", exc, self._retry_delay)
                    await asyncio.sleep(self._retry_delay)
                    continue
                for update in updates:
                    self._spawn(update)
        finally:
            for task in list(self._pending):
                task.cancel()
            await self.aclose()

    def _spawn(self, update: dict[str, Any]) -> None:
        task = asyncio.create_task(self._handle_safely(update))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _handle_safely(self, update: dict[str, Any]) -> None:
        try:
            await self.handle_update(update)
        except (httpx.HTTPError, TelegramError) as exc:
            logger.error("Unable to deliver Telegram reply: %s", exc)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = [
    "EMPTY_REPLY",
    "START_GREETING",
    "TELEGRAM_MAX_LENGTH",
    "TelegramChannel",
    "TelegramError",
    "conversation_identity",
    "split_message",
]
