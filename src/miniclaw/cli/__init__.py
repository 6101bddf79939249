"""CLI package for MiniClaw."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from importlib import metadata
from pathlib import Path

import typer

from miniclaw.channels.telegram import TelegramChannel
from miniclaw.core import (
    DEFAULT_CONFIG_DIR,
    ConfigManager,
    ConfigurationError,
    MiniClawConfig,
    build_default_registry,
    user_message,
)
from miniclaw.core.conversation import ConversationService
from miniclaw.core.llm import LLMClient, LLMError
from miniclaw.session import SessionStore

from .app import ChatREPL
from .branding import themed_console

logger = logging.getLogger(__name__)

app = typer.Typer(help="MiniClaw agent loop", no_args_is_help=False)

CLI_CONSOLE = themed_console()
DRY_RUN_PROMPT = "Say hello from MiniClaw in one sentence."


def styled_echo(message: str = "", *, nl: bool = True) -> None:
    """Print using the MiniClaw themed console."""
    CLI_CONSOLE.print(message, end="" if not nl else "\n")


def _configure_logging(verbose: bool, log_dir: Path | None) -> None:
    root_logger = logging.getLogger()
    if verbose:
        if not root_logger.handlers:
            logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        root_logger.setLevel(logging.DEBUG)
        # Keep wire-level noise out of the debug log.
        logging.getLogger("httpcore").setLevel(logging.INFO)
    else:
        if root_logger.handlers:
            root_logger.setLevel(logging.WARNING)
        else:
            logging.basicConfig(level=logging.WARNING, format="%(message)s")
    if verbose and log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_dir / "miniclaw.log", encoding="utf-8")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logging.getLogger().addHandler(handler)


def _load_config(config_file: Path | None, **overrides: object) -> MiniClawConfig:
    override_path: Path | None = None
    if config_file is not None:
        override_path = config_file.expanduser()
        if not override_path.exists():
            styled_echo(f"Config file '{override_path}' not found.")
            raise typer.Exit(code=1)
    try:
        return ConfigManager(override_config_path=override_path).load(**overrides)
    except ConfigurationError as exc:
        styled_echo(f"{exc}")
        raise typer.Exit(code=1) from exc


async def _run_llm_dry_run(llm_client: LLMClient) -> None:
    def _on_chunk(chunk: str) -> None:
        styled_echo(chunk, nl=False)

    try:
        result = await llm_client.stream_chat([user_message(DRY_RUN_PROMPT)], on_chunk=_on_chunk)
    except LLMError as exc:
        styled_echo(f"LLM error: {exc}")
        raise typer.Exit(code=1) from exc
    finally:
        await llm_client.aclose()

    styled_echo()
    styled_echo(
        f"LLM dry run completed in {result.latency_seconds:.2f}s using {llm_client.settings.model}"
    )


def _log_task_failure(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("%s channel stopped: %s", task.get_name(), exc)


async def _serve(config: MiniClawConfig, *, repl_enabled: bool) -> None:
    registry = build_default_registry()
    llm_client = LLMClient(config.llm_settings(), registry)
    service = ConversationService(
        llm_client,
        registry,
        SessionStore(max_sessions=config.max_sessions),
        max_iterations=config.max_iterations,
    )

    telegram_task: asyncio.Task[None] | None = None
    if config.telegram_bot_token:
        channel = TelegramChannel(
            config.telegram_bot_token,
            service,
            poll_timeout=config.telegram_poll_timeout,
            local_address=config.telegram_local_address,
        )
        styled_echo(f"Mini Telegram bot (Ollama: {config.llm_model}) starting long polling...")
        telegram_task = asyncio.create_task(channel.run(), name="telegram")
        telegram_task.add_done_callback(_log_task_failure)

    try:
        if repl_enabled:
            await ChatREPL(service, history_path=DEFAULT_CONFIG_DIR / "history").run()
        elif telegram_task is not None:
            await telegram_task
        else:
            styled_echo("Nothing to run: enable the REPL or set TELEGRAM_BOT_TOKEN.")
    finally:
        if telegram_task is not None and not telegram_task.done():
            telegram_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await telegram_task
        await llm_client.aclose()


@app.command()
def run(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),  # noqa: B008
    config: Path | None = typer.Option(None, "--config", help="Read settings from this TOML file"),  # noqa: B008
    host: str | None = typer.Option(None, "--host", help="Override the Ollama base URL"),  # noqa: B008
    model: str | None = typer.Option(None, "--model", help="Override the model name"),  # noqa: B008
    telegram_token: str | None = typer.Option(None, "--telegram-token", help="Run the Telegram bot with this token"),  # noqa: B008
    no_repl: bool = typer.Option(False, "--no-repl", help="Do not start the terminal REPL"),  # noqa: B008
    dry_run_llm: bool = typer.Option(False, "--dry-run-llm", help="Stream a single LLM request and exit"),  # noqa: B008
) -> None:
    """Start the agent (terminal REPL, plus Telegram when a token is configured)."""
    settings = _load_config(
        config,
        llm_base_url=host,
        llm_model=model,
        telegram_bot_token=telegram_token,
    )
    _configure_logging(verbose or settings.debug, log_dir=DEFAULT_CONFIG_DIR / "logs")
    styled_echo(f"Debug: {'ON' if verbose or settings.debug else 'off (set DEBUG=1 to enable)'}")

    if dry_run_llm:
        llm_client = LLMClient(settings.llm_settings(), build_default_registry())
        asyncio.run(_run_llm_dry_run(llm_client))
        return

    try:
        asyncio.run(_serve(settings, repl_enabled=not no_repl))
    except KeyboardInterrupt:
        styled_echo("Goodbye!")


@app.command("init-config")
def init_config(
    config: Path | None = typer.Option(None, "--config", help="Write to this path instead of the default"),  # noqa: B008
) -> None:
    """Write the effective configuration to a TOML file."""
    manager = ConfigManager(override_config_path=config.expanduser() if config else None)
    try:
        settings = manager.load()
    except ConfigurationError as exc:
        styled_echo(f"{exc}")
        raise typer.Exit(code=1) from exc
    path = manager.save(settings)
    styled_echo(f"Configuration written to {path}")


@app.command()
def version() -> None:
    """Show CLI version."""
    try:
        pkg_version = metadata.version("miniclaw")
    except metadata.PackageNotFoundError:
        pkg_version = "0.0.0"
    styled_echo(f"MiniClaw version {pkg_version}")


def main() -> None:
    """Console script entrypoint; bare invocation or leading options mean ``run``."""
    args = sys.argv[1:]
    if not args or (args[0].startswith("-") and args[0] not in {"--help", "-h"}):
        app(args=["run", *args])
        return
    app(args=args)


__all__ = ["ChatREPL", "app", "main"]
