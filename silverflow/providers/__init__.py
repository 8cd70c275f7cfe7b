"""
Provider management module.

Provides registry, chat client, and types for driving agent CLIs.
"""

from .types import (
    ProviderTemplate,
    ProviderInvocation,
    InputMode,
)
from .registry import ProviderRegistry
from .executor import ChatClient, ProviderChatClient


__all__ = [
    "ProviderTemplate",
    "ProviderInvocation",
    "InputMode",
    "ProviderRegistry",
    "ChatClient",
    "ProviderChatClient",
]
