"""Concrete LLM client implementation for Ollama-compatible chat endpoints."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import httpx

from miniclaw.core.agent import ChatMessage

from .errors import LLMError
from .transport import (
    build_endpoint,
    build_headers,
    build_payload,
    consume_stream,
    normalize_messages,
    parse_message,
    resolve_tool_calls,
)
from .types import ChunkCallback, LLMResponse, LLMSettings

if TYPE_CHECKING:  # pragma: no cover
    from miniclaw.core.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)


class LLMClient:
    """Async chat client with aggregate and incremental response modes.

    Both modes send the same request (system prompt, full history, tool
    catalog) and return an :class:`LLMResponse`. When the endpoint does not
    populate ``tool_calls`` but the reply text contains call-shaped JSON, the
    calls are recovered from the text so that either convention behaves the
    same to the caller.
    """

    def __init__(
        self,
        settings: LLMSettings,
        tool_registry: ToolRegistry,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._tool_registry = tool_registry
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(settings.timeout_seconds))

    @property
    def settings(self) -> LLMSettings:
        return self._settings

    async def chat(self, history: Sequence[ChatMessage]) -> LLMResponse:
        """Send the conversation with buffering on and return the whole reply."""

        url, payload = self._prepare(history, stream=False)
        logger.debug(">>> request (aggregate) model=%s messages=%d", self._settings.model, len(history))
        start_time = time.perf_counter()
        try:
            response = await self._client.post(url, headers=build_headers(), json=payload)
        except httpx.TransportError as exc:
            raise LLMError(f"Model endpoint unreachable: {exc}") from exc
        except httpx.HTTPError as exc:
            raise LLMError(f"Model endpoint request failed: {exc}") from exc
        if response.is_error:
            self._raise_status_error(response.status_code, response.text)

        try:
            data: Any = response.json()
        except ValueError as exc:
            raise LLMError(f"Model endpoint returned invalid JSON: {exc}") from exc
        if isinstance(data, dict) and data.get("error"):
            raise LLMError(f"Model endpoint error: {data['error']}")

        text, structured = parse_message(data)
        tool_calls, source = resolve_tool_calls(text, structured, self._tool_registry.names())
        latency = time.perf_counter() - start_time
        logger.debug("<<< response content: %s", text[:200])
        logger.debug(
            "<<< tool_calls: %d (source=%s, latency=%.2fs)",
            len(tool_calls),
            source.value if source else "none",
            latency,
        )
        return LLMResponse(
            text=text,
            tool_calls=tool_calls,
            source=source,
            latency_seconds=latency,
            done=bool(data.get("done", True)) if isinstance(data, dict) else True,
        )

    async def stream_chat(
        self,
        history: Sequence[ChatMessage],
        *,
        on_chunk: ChunkCallback | None = None,
    ) -> LLMResponse:
        """Send the conversation with incremental delivery, forwarding text as it arrives."""

        url, payload = self._prepare(history, stream=True)
        logger.debug(">>> request (incremental) model=%s messages=%d", self._settings.model, len(history))
        start_time = time.perf_counter()
        try:
            async with self._client.stream("POST", url, headers=build_headers(), json=payload) as response:
                if response.is_error:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    self._raise_status_error(response.status_code, body)
                text, structured, done = await consume_stream(response.aiter_lines(), on_chunk)
        except httpx.TransportError as exc:
            raise LLMError(f"Model endpoint unreachable: {exc}") from exc
        except httpx.HTTPError as exc:
            raise LLMError(f"Model endpoint request failed: {exc}") from exc

        tool_calls, source = resolve_tool_calls(text, structured, self._tool_registry.names())
        latency = time.perf_counter() - start_time
        if tool_calls:
            logger.debug("<<< streamed response had tool_calls: %d", len(tool_calls))
        return LLMResponse(
            text=text,
            tool_calls=tool_calls,
            source=source,
            latency_seconds=latency,
            done=done,
        )

    async def aclose(self) -> None:
        """Dispose the underlying HTTP client if owned by this instance."""

        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> LLMClient:
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.aclose()

    def update_settings(self, *, model: str | None = None, base_url: str | None = None) -> None:
        """Update mutable LLM settings at runtime."""

        if model:
            logger.debug("Updating LLM model from %s to %s", self._settings.model, model)
            self._settings.model = model
        if base_url:
            logger.debug("Updating LLM base URL from %s to %s", self._settings.base_url, base_url)
            self._settings.base_url = base_url

    def _prepare(self, history: Sequence[ChatMessage], *, stream: bool) -> tuple[str, dict[str, object]]:
        messages = normalize_messages(self._settings.system_prompt, history)
        payload = build_payload(self._settings, messages, self._tool_registry.catalog(), stream=stream)
        return build_endpoint(self._settings), payload

    @staticmethod
    def _raise_status_error(status_code: int, body: str) -> None:
        logger.error("Model endpoint request failed with status %s", status_code)
        raise LLMError(f"Model endpoint error {status_code}: {body}", status_code=status_code, body=body)


__all__ = ["LLMClient"]
