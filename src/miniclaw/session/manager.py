"""In-memory conversation histories keyed by conversation identity."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager

from miniclaw.core.agent import ChatMessage

logger = logging.getLogger(__name__)

History = list[ChatMessage]


class SessionStore:
    """Holds one message history per conversation identity.

    Histories live for the lifetime of the process. Turns for the same
    identity are serialised through :meth:`turn`; different identities never
    share state. When ``max_sessions`` is set the least recently used idle
    conversation is dropped once the limit is exceeded. Conversations with a
    turn running or queued are never dropped, so the store may sit above the
    limit until those turns finish.
    """

    def __init__(self, *, max_sessions: int | None = None) -> None:
        if max_sessions is not None and max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        self._histories: OrderedDict[str, History] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}
        # Turns holding or waiting for each identity's lock.
        self._pending_turns: dict[str, int] = {}

    def get(self, identity: str) -> History:
        history = self._histories.get(identity)
        if history is None:
            history = []
            self._histories[identity] = history
            logger.debug("Created conversation for %s", identity)
            self._enforce_limit(keep=identity)
        else:
            self._histories.move_to_end(identity)
        return history

    def put(self, identity: str, history: History) -> None:
        self._histories[identity] = history
        self._histories.move_to_end(identity)
        self._enforce_limit(keep=identity)

    def reset(self, identity: str) -> None:
        self._histories.pop(identity, None)

    def lock_for(self, identity: str) -> asyncio.Lock:
        lock = self._locks.get(identity)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[identity] = lock
        return lock

    def is_busy(self, identity: str) -> bool:
        """Whether a turn for ``identity`` is running or queued."""
        return self._pending_turns.get(identity, 0) > 0

    @asynccontextmanager
    async def turn(self, identity: str) -> AsyncIterator[History]:
        """Yield the identity's history while holding its turn lock."""
        lock = self.lock_for(identity)
        self._pending_turns[identity] = self._pending_turns.get(identity, 0) + 1
        try:
            if lock.locked():
                logger.debug("Waiting for in-flight turn of %s", identity)
            async with lock:
                history = self.get(identity)
                try:
                    yield history
                finally:
                    self.put(identity, history)
        finally:
            remaining = self._pending_turns[identity] - 1
            if remaining:
                self._pending_turns[identity] = remaining
            else:
                del self._pending_turns[identity]
                self._enforce_limit()

    def identities(self) -> list[str]:
        return list(self._histories)

    def __contains__(self, identity: object) -> bool:
        return identity in self._histories

    def __len__(self) -> int:
        return len(self._histories)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._histories))

    def _enforce_limit(self, keep: str | None = None) -> None:
        if self.max_sessions is None:
            return
        for identity in list(self._histories):
            if len(self._histories) <= self.max_sessions:
                break
            if identity == keep or self.is_busy(identity):
                continue
            self._histories.pop(identity, None)
            logger.debug("Evicted idle conversation %s", identity)


__all__ = ["History", "SessionStore"]
