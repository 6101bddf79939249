"""Session management utilities for MiniClaw."""

from .manager import History, SessionStore

__all__ = ["History", "SessionStore"]
