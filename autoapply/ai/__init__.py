"""Answer generation for custom application questions."""

from autoapply.ai.completion import (
    AnthropicCompletionClient,
    ChatMessage,
    CompletionClient,
    OpenRouterCompletionClient,
    get_completion_client,
)
from autoapply.ai.responder import AIResponder
from autoapply.ai.tracing import flush_langfuse, get_langfuse

__all__ = [
    "AIResponder",
    "AnthropicCompletionClient",
    "ChatMessage",
    "CompletionClient",
    "OpenRouterCompletionClient",
    "flush_langfuse",
    "get_completion_client",
    "get_langfuse",
]
