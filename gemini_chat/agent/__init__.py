"""Gemini model access for the chat.

Responsibilities:
    - Client initialization from an ambient API key
    - Stateless streaming generation with text and inline image parts
    - Stateful chat sessions primed with replayed history
    - Configuration loading from the environment

Keeps the Google GenAI SDK out of the conversation layer.
"""

from gemini_chat.agent.chat_agent import (
    ChatSession,
    GeminiService,
    ModelService,
    Turn,
    get_model_service,
)
from gemini_chat.agent.config import ChatConfig, ModelServiceConfig, get_chat_config, get_model_config

__all__ = [
    "ChatConfig",
    "ChatSession",
    "GeminiService",
    "ModelService",
    "ModelServiceConfig",
    "Turn",
    "get_chat_config",
    "get_model_config",
    "get_model_service",
]
