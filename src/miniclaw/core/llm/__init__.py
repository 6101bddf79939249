"""LLM client package.

This namespace hosts the async `LLMClient` along with supporting types
(`types.py`) and transport helpers (`transport.py`). Importing from this
module keeps the public surface stable while the wire details stay in
their own modules for testing.
"""

from .client import LLMClient
from .errors import LLMError
from .types import LLMResponse, LLMSettings

__all__ = ["LLMClient", "LLMError", "LLMResponse", "LLMSettings"]
