"""Pydantic models for conversation state and API payloads.

Provides type safety, validation, and automatic OpenAPI documentation.

Models:
    - Message: Individual message in the conversation, with lifecycle flags
    - LoadedDataset: The CSV dataset grounding the conversation
    - ChatRequest: Incoming chat request payload
    - StreamChunk: One server-sent event of a streamed reply
    - CsvUploadResponse: CSV upload result
"""

from gemini_chat.models.schemas import (
    ChatRequest,
    ConversationState,
    CsvUploadResponse,
    Fragment,
    ImageAttachment,
    ImagePayload,
    LoadedDataset,
    Message,
    MessageView,
    ModelSelection,
    ModelTier,
    Role,
    StreamChunk,
    StreamStatus,
)

__all__ = [
    "ChatRequest",
    "ConversationState",
    "CsvUploadResponse",
    "Fragment",
    "ImageAttachment",
    "ImagePayload",
    "LoadedDataset",
    "Message",
    "MessageView",
    "ModelSelection",
    "ModelTier",
    "Role",
    "StreamChunk",
    "StreamStatus",
]
