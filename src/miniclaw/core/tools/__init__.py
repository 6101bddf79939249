"""Toolkit descriptors for MiniClaw tools."""

from .clock import clock_toolkit
from .command import command_toolkit
from .files import files_toolkit

DEFAULT_TOOLKIT_FACTORIES = [
    files_toolkit,
    command_toolkit,
    clock_toolkit,
]

__all__ = ["DEFAULT_TOOLKIT_FACTORIES"]
