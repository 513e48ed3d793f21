from netden.brain.completion_client import BaseCompletionClient, OpenRouterCompletionClient
from netden.brain.types import (
    ChatMessage,
    CompletionConfig,
    CompletionMessage,
    Role,
    ToolCall,
    parse_tool_arguments,
)

__all__ = [
    "BaseCompletionClient",
    "OpenRouterCompletionClient",
    "ChatMessage",
    "CompletionConfig",
    "CompletionMessage",
    "Role",
    "ToolCall",
    "parse_tool_arguments",
]
