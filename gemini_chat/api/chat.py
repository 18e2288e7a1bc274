"""Chat endpoints: streamed turns, history, model selection and reset.

Replies stream as Server-Sent Events, one ``StreamChunk`` per event, in the
order the fragments arrive from the model.
"""

import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from gemini_chat.conversation.coordinator import ChatCoordinator, get_chat_coordinator
from gemini_chat.conversation.errors import CoordinatorBusyError
from gemini_chat.models.schemas import (
    ChatRequest,
    ConversationState,
    MessageView,
    ModelSelection,
    StreamChunk,
    StreamStatus,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


def _sse_event(chunk: StreamChunk) -> str:
    return f"data: {chunk.model_dump_json()}\n\n"


def _ensure_idle(coordinator: ChatCoordinator) -> None:
    if coordinator.busy:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Another request is still in progress",
        )


@router.post("/stream")
async def chat_stream(
    request: ChatRequest,
    coordinator: ChatCoordinator = Depends(get_chat_coordinator),
) -> StreamingResponse:
    """Stream the answer to a user turn.

    Args:
        request: Message text and optional base64 image.

    Returns:
        ``text/event-stream`` response of StreamChunk events. The final event
        has ``done=true`` and carries ``error`` if the turn failed.

    Raises:
        409: A turn is already in flight.
        422: Neither text nor image provided.
    """
    _ensure_idle(coordinator)
    image = request.image.to_attachment() if request.image else None

    async def event_stream() -> AsyncGenerator[str]:
        try:
            async for chunk in coordinator.send_message(request.message, image):
                yield _sse_event(chunk)
        except CoordinatorBusyError as e:
            logger.warning(f"Rejected overlapping chat turn: {e.message}")
            yield _sse_event(
                StreamChunk(content="", done=True, status=StreamStatus.ERROR, error=e.message)
            )

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/messages", response_model=list[MessageView])
async def list_messages(
    coordinator: ChatCoordinator = Depends(get_chat_coordinator),
) -> list[MessageView]:
    """Return the conversation in display order."""
    return [MessageView.from_message(message) for message in coordinator.messages]


@router.get("/state", response_model=ConversationState)
async def conversation_state(
    coordinator: ChatCoordinator = Depends(get_chat_coordinator),
) -> ConversationState:
    """Return the selected model, loaded dataset and busy flag."""
    return coordinator.state()


@router.put("/model", response_model=ConversationState)
async def select_model(
    selection: ModelSelection,
    coordinator: ChatCoordinator = Depends(get_chat_coordinator),
) -> ConversationState:
    """Switch the model tier. The open chat session is dropped."""
    _ensure_idle(coordinator)
    coordinator.select_model(selection.model)
    return coordinator.state()


@router.post("/new", response_model=ConversationState)
async def new_conversation(
    coordinator: ChatCoordinator = Depends(get_chat_coordinator),
) -> ConversationState:
    """Start a new conversation, dropping history, session and dataset."""
    _ensure_idle(coordinator)
    coordinator.new_conversation()
    return coordinator.state()
