"""Interactive terminal REPL for MiniClaw."""

from __future__ import annotations

import logging
from pathlib import Path

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory, InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console
from rich.text import Text

from miniclaw.cli.branding import create_chat_panel, themed_console
from miniclaw.core.conversation import ConversationService
from miniclaw.core.llm import LLMError

logger = logging.getLogger(__name__)

CONSOLE_IDENTITY = "console"
QUIT_COMMAND = "quit"
ENDPOINT_HINT = "Is Ollama running? Try: ollama serve"


class ChatREPL:
    """Line-based chat loop over the ``console`` conversation."""

    def __init__(
        self,
        service: ConversationService,
        *,
        console: Console | None = None,
        history_path: Path | None = None,
        identity: str = CONSOLE_IDENTITY,
        session: PromptSession | None = None,
    ) -> None:
        self.service = service
        self.console = console or themed_console()
        self.identity = identity
        self.history_path = history_path
        self.session = session

    def _prompt_session(self) -> PromptSession:
        if self.session is None:
            if self.history_path is not None:
                self.history_path.parent.mkdir(parents=True, exist_ok=True)
                prompt_history = FileHistory(str(self.history_path))
            else:
                prompt_history = InMemoryHistory()
            self.session = PromptSession(history=prompt_history)
        return self.session

    def render_message(self, role: str, message: str) -> None:
        if role == "tool":
            self.console.print(Text(message, style="miniclaw.tool.text"))
        elif role == "error":
            self.console.print(Text(message, style="miniclaw.error.text"))
        else:
            self.console.print(create_chat_panel(role, message, use_markdown=role == "agent"))

    async def handle_line(self, raw_line: str) -> bool:
        """Process one line of input; returns ``False`` when the REPL should stop."""
        line = raw_line.strip()
        if line.lower() == QUIT_COMMAND:
            self.console.print("Goodbye!")
            return False
        if not line:
            return True

        try:
            with self.console.status(Text("Thinking…", style="miniclaw.status.text"), spinner="dots"):
                result = await self.service.respond(
                    self.identity,
                    raw_line,
                    render_message=self.render_message,
                )
        except LLMError as exc:
            logger.debug("Turn failed", exc_info=True)
            self.render_message("error", f"Error: {exc}")
            self.render_message("error", ENDPOINT_HINT)
            return True
        except Exception as exc:  # noqa: BLE001
            logger.warning("Turn failed: %s", exc)
            logger.debug("Turn failure details", exc_info=True)
            self.render_message("error", f"Error: {exc}")
            return True

        self.render_message("agent", result.text)
        return True

    async def run(self) -> None:
        model = getattr(getattr(self.service.llm, "settings", None), "model", "unknown")
        self.console.print(Text(f"MiniClaw Agent Loop (Ollama: {model})", style="miniclaw.banner"))
        self.console.print(Text('Type a message to chat, "quit" to exit.\n', style="miniclaw.text.dim"))
        session = self._prompt_session()
        with patch_stdout(raw=True):
            while True:
                try:
                    user_input = await session.prompt_async("you> ")
                except (EOFError, KeyboardInterrupt):
                    self.console.print("Goodbye!")
                    break
                if not await self.handle_line(user_input):
                    break


__all__ = ["CONSOLE_IDENTITY", "ChatREPL", "ENDPOINT_HINT"]
