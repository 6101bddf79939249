"""MiniClaw: a small agent loop between an Ollama model and local tools."""

__all__ = ["__version__"]

__version__ = "0.1.0"
