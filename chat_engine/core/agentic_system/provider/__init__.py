"""AI provider access for the conversation loop."""

from chat_engine.core.agentic_system.provider.chat_provider import (
    AIProvider,
    LangChainChatProvider,
    ProviderResponse,
    to_langchain_messages,
)

__all__ = [
    "AIProvider",
    "LangChainChatProvider",
    "ProviderResponse",
    "to_langchain_messages",
]
