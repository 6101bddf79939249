"""Chat channel adapters."""

from .telegram import TELEGRAM_MAX_LENGTH, TelegramChannel, TelegramError, split_message

__all__ = ["TELEGRAM_MAX_LENGTH", "TelegramChannel", "TelegramError", "split_message"]
