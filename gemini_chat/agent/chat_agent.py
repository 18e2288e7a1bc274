"""Gemini model service with streaming support.

Wraps the Google GenAI SDK behind the two operation shapes the chat needs:

1. **Stateless streaming generation** - a model id, a list of turns whose
   parts are text or inline images, and an optional system instruction and
   temperature. Used for image questions and dataset-grounded questions,
   where the full context is resent on every call.

2. **Stateful sessions** - a chat object created from a model id and a
   replayed history. The service keeps the context; each turn sends only the
   new user text.

Both return an async iterator of ``Fragment`` objects carrying incremental
text. Errors are not caught here; the stream accumulator owns that.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from typing import Literal

from google import genai
from google.genai import types
from google.genai.chats import AsyncChat
from pydantic import BaseModel, ConfigDict, ValidationError

from gemini_chat.agent.config import ModelServiceConfig, get_model_config
from gemini_chat.conversation.errors import ModelServiceError, describe_error
from gemini_chat.models.schemas import Fragment, ImageAttachment, Message, Role

logger = logging.getLogger(__name__)


class Turn(BaseModel):
    """One conversational turn in the service's role vocabulary."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "model"]
    parts: list[str | ImageAttachment]


def to_turns(messages: Sequence[Message]) -> list[Turn]:
    """Map user/assistant messages onto service turns (assistant becomes model)."""
    return [
        Turn(role="user" if message.role == Role.USER else "model", parts=[message.content])
        for message in messages
        if message.role in (Role.USER, Role.ASSISTANT)
    ]


class ChatSession(ABC):
    """Stateful conversation held by the model service."""

    @abstractmethod
    async def send_message_stream(self, text: str) -> AsyncIterator[Fragment]:
        """Send a user message and stream the reply."""


class ModelService(ABC):
    """Hosted generation endpoint."""

    @abstractmethod
    async def stream_generate(
        self,
        model: str,
        contents: Sequence[Turn],
        system_instruction: str | None = None,
        temperature: float | None = None,
    ) -> AsyncIterator[Fragment]:
        """Stream a one-shot generation."""

    @abstractmethod
    def create_session(self, model: str, history: Sequence[Turn]) -> ChatSession:
        """Open a session primed with prior turns."""


def _to_part(part: str | ImageAttachment) -> types.Part:
    if isinstance(part, ImageAttachment):
        return types.Part.from_bytes(data=part.data, mime_type=part.mime_type)
    return types.Part.from_text(text=part)


def _to_content(turn: Turn) -> types.Content:
    return types.Content(role=turn.role, parts=[_to_part(part) for part in turn.parts])


async def _fragments(stream: AsyncIterator[types.GenerateContentResponse]) -> AsyncIterator[Fragment]:
    async for chunk in stream:
        yield Fragment(text=chunk.text)


class GeminiChatSession(ChatSession):
    """Session backed by a Google GenAI async chat."""

    def __init__(self, chat: AsyncChat) -> None:
        self._chat = chat

    async def send_message_stream(self, text: str) -> AsyncIterator[Fragment]:
        stream = await self._chat.send_message_stream(message=text)
        return _fragments(stream)


class GeminiService(ModelService):
    """Model service backed by the Google GenAI SDK.

    Construction fails when no API key is configured, so a missing credential
    surfaces on the first request that needs the model.
    """

    def __init__(self, config: ModelServiceConfig | None = None) -> None:
        """Initialize the Gemini client.

        Args:
            config: Optional model configuration.
                    Loads from environment if not provided.

        Raises:
            ModelServiceError: If no API key is available.
        """
        try:
            self._config = config or get_model_config()
        except ValidationError as e:
            raise ModelServiceError(describe_error(e)) from e
        self._client = genai.Client(api_key=self._config.api_key)

    async def stream_generate(
        self,
        model: str,
        contents: Sequence[Turn],
        system_instruction: str | None = None,
        temperature: float | None = None,
    ) -> AsyncIterator[Fragment]:
        """Stream a stateless generation.

        Args:
            model: Model identifier.
            contents: Turns to send, the last one being the new user turn.
            system_instruction: Optional system-level directive.
            temperature: Optional sampling temperature.

        Returns:
            Async iterator of response fragments.
        """
        config = None
        if system_instruction is not None or temperature is not None:
            config = types.GenerateContentConfig(
                system_instruction=system_instruction,
                temperature=temperature,
            )

        logger.debug(f"Streaming one-shot generation from {model} with {len(contents)} turns")
        stream = await self._client.aio.models.generate_content_stream(
            model=model,
            contents=[_to_content(turn) for turn in contents],
            config=config,
        )
        return _fragments(stream)

    def create_session(self, model: str, history: Sequence[Turn]) -> ChatSession:
        """Create a chat session replaying prior turns.

        Args:
            model: Model identifier.
            history: Prior turns, oldest first.

        Returns:
            Session handle exposing ``send_message_stream``.
        """
        logger.info(f"Creating chat session on {model} with {len(history)} history turns")
        chat = self._client.aio.chats.create(
            model=model,
            history=[_to_content(turn) for turn in history],
        )
        return GeminiChatSession(chat)


# Module-level singleton instance
_model_service: GeminiService | None = None


def get_model_service() -> GeminiService:
    """Get or create the global model service.

    A failed construction is not cached, so a key added later is picked up.

    Returns:
        The GeminiService instance.

    Raises:
        ModelServiceError: If no API key is configured.
    """
    global _model_service
    if _model_service is None:
        _model_service = GeminiService()
    return _model_service
