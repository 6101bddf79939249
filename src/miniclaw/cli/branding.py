"""Console styling helpers."""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme

MINICLAW_THEME = Theme(
    {
        "miniclaw.banner": "bold #38BDF8",
        "miniclaw.prompt": "bold #A855F7",
        "miniclaw.agent.border": "#14F195",
        "miniclaw.agent.header": "bold #14F195",
        "miniclaw.agent.text": "#E6FFFA",
        "miniclaw.tool.text": "#94A3B8",
        "miniclaw.system.border": "#F472B6",
        "miniclaw.system.header": "bold #F472B6",
        "miniclaw.system.text": "#FDE68A",
        "miniclaw.error.text": "#FB7185",
        "miniclaw.status.spinner": "#14F195",
        "miniclaw.status.text": "#94A3B8",
        "miniclaw.text.dim": "dim #64748B",
    }
)


def themed_console(**kwargs: object) -> Console:
    """Return a Console configured with the MiniClaw theme."""
    return Console(theme=MINICLAW_THEME, **kwargs)


def create_chat_panel(role: str, message: str, *, use_markdown: bool = False) -> Panel:
    """Create a panel for agent or system messages."""
    if role == "agent":
        header = "MiniClaw"
        border_style = "miniclaw.agent.border"
        title_style = "miniclaw.agent.header"
        text_style = "miniclaw.agent.text"
    else:
        header = role.title()
        border_style = "miniclaw.system.border"
        title_style = "miniclaw.system.header"
        text_style = "miniclaw.system.text"

    if use_markdown and role == "agent":
        content: Markdown | Text = Markdown(message, code_theme="monokai")
    else:
        content = Text(message, style=text_style)

    return Panel(
        content,
        title=f"[{title_style}]{header}[/]",
        title_align="left",
        border_style=border_style,
        box=box.ROUNDED,
        padding=(0, 1),
        expand=False,
    )


__all__ = ["MINICLAW_THEME", "create_chat_panel", "themed_console"]
