"""Streaming of model fragments into the pending assistant message."""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing

from gemini_chat.conversation.errors import Outcome, classify_error, describe_error
from gemini_chat.conversation.store import ConversationStore
from gemini_chat.models.schemas import Fragment

logger = logging.getLogger(__name__)

ERROR_NOTICE = "Sorry, I encountered an error: {message}"

StreamOpener = Callable[[], Awaitable[AsyncIterator[Fragment]]]


class StreamAccumulator:
    """Appends a fragment stream to a pending message, in arrival order.

    Iterating the accumulator opens the stream, appends every non-empty
    fragment to the message and yields it on. The message stops loading at
    the first fragment and stops pending when the stream is exhausted.

    Any error while opening or consuming the stream replaces the message
    content with an error notice. Nothing is retried. After iteration the
    tagged result is available as ``outcome``.

    Usage:
        accumulator = StreamAccumulator(store, message.id, open_stream)
        async for text in accumulator:
            relay(text)
        accumulator.outcome  # Outcome(ok=True, ...)
    """

    def __init__(self, store: ConversationStore, message_id: str, open_stream: StreamOpener) -> None:
        self._store = store
        self._message_id = message_id
        self._open_stream = open_stream
        self._outcome: Outcome | None = None

    @property
    def outcome(self) -> Outcome | None:
        """Result of the stream, set once iteration ends."""
        return self._outcome

    def __aiter__(self) -> AsyncIterator[str]:
        return self._accumulate()

    async def _accumulate(self) -> AsyncIterator[str]:
        try:
            fragments = await self._open_stream()
            async with aclosing(fragments):
                async for fragment in fragments:
                    if not fragment.text:
                        continue
                    self._store.append(self._message_id, fragment.text)
                    yield fragment.text
        except Exception as e:
            logger.error(f"Error generating response: {e}", exc_info=True)
            notice = ERROR_NOTICE.format(message=describe_error(e))
            self._store.fail(self._message_id, notice)
            self._outcome = Outcome.failure(classify_error(e), notice)
            return

        self._store.finish(self._message_id)
        self._outcome = Outcome.success()
