"""Conversation orchestration between the UI and the model service.

Responsibilities:
    - Ordered message history with pending/errored lifecycle flags
    - Choosing how each user turn is answered (dataset load, image question,
      dataset-grounded question, persistent chat)
    - Appending streamed fragments to the in-flight reply
    - Turning collaborator failures into user-visible messages

The coordinator lives in ``gemini_chat.conversation.coordinator`` and is
imported from there; it depends on the parsing and agent packages.
"""

from gemini_chat.conversation.accumulator import StreamAccumulator
from gemini_chat.conversation.dispatcher import Strategy, decide, is_csv_url
from gemini_chat.conversation.errors import CsvIngestError, ErrorKind, ModelServiceError, Outcome
from gemini_chat.conversation.store import ConversationStore

__all__ = [
    "ConversationStore",
    "CsvIngestError",
    "ErrorKind",
    "ModelServiceError",
    "Outcome",
    "Strategy",
    "StreamAccumulator",
    "decide",
    "is_csv_url",
]
