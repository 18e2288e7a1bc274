"""Unit tests for StreamAccumulator.

Covers fragment ordering, the loading and pending flags, and the error
notice that replaces a failed reply.
"""

from collections.abc import AsyncIterator

import pytest
import pytest_check as check

from gemini_chat.conversation.accumulator import StreamAccumulator
from gemini_chat.conversation.errors import ErrorKind, ModelServiceError
from gemini_chat.conversation.store import ConversationStore
from gemini_chat.models.schemas import Fragment, Message
from tests.conftest import fragments


@pytest.fixture
def store() -> ConversationStore:
    return ConversationStore()


@pytest.fixture
def placeholder(store: ConversationStore) -> Message:
    return store.add_placeholder()


def opener(stream: AsyncIterator[Fragment]):
    async def open_stream() -> AsyncIterator[Fragment]:
        return stream

    return open_stream


def failing_opener(error: Exception):
    async def open_stream() -> AsyncIterator[Fragment]:
        raise error

    return open_stream


class TestSuccessfulStream:
    """Tests for streams that run to completion."""

    async def test_content_is_concatenation_of_fragments(
        self, store: ConversationStore, placeholder: Message
    ) -> None:
        accumulator = StreamAccumulator(store, placeholder.id, opener(fragments("The ", "answer", " is 4.")))

        relayed = [text async for text in accumulator]

        check.equal(relayed, ["The ", "answer", " is 4."])
        check.equal(placeholder.content, "The answer is 4.")
        check.is_false(placeholder.pending)
        check.is_false(placeholder.errored)
        check.is_true(accumulator.outcome.ok)

    async def test_loading_clears_at_first_fragment(
        self, store: ConversationStore, placeholder: Message
    ) -> None:
        """The placeholder stops loading at the first fragment but stays pending."""
        accumulator = StreamAccumulator(store, placeholder.id, opener(fragments("a", "b")))
        seen: list[tuple[bool, bool]] = []

        check.is_true(placeholder.loading)
        async for _ in accumulator:
            seen.append((placeholder.loading, placeholder.pending))

        check.equal(seen, [(False, True), (False, True)])

    async def test_empty_fragments_are_skipped(
        self, store: ConversationStore, placeholder: Message
    ) -> None:
        """Fragments without text neither append nor clear loading."""
        accumulator = StreamAccumulator(store, placeholder.id, opener(fragments(None, "", "ok")))

        relayed = [text async for text in accumulator]

        check.equal(relayed, ["ok"])
        check.equal(placeholder.content, "ok")

    async def test_empty_stream_finishes_with_empty_content(
        self, store: ConversationStore, placeholder: Message
    ) -> None:
        accumulator = StreamAccumulator(store, placeholder.id, opener(fragments()))

        relayed = [text async for text in accumulator]

        check.equal(relayed, [])
        check.equal(placeholder.content, "")
        check.is_false(placeholder.pending)
        check.is_true(accumulator.outcome.ok)

    async def test_outcome_unset_before_iteration(
        self, store: ConversationStore, placeholder: Message
    ) -> None:
        accumulator = StreamAccumulator(store, placeholder.id, opener(fragments("x")))

        assert accumulator.outcome is None


class TestFailedStream:
    """Tests for streams that raise."""

    async def test_error_before_first_fragment(
        self, store: ConversationStore, placeholder: Message
    ) -> None:
        """A stream that cannot be opened leaves only the error notice."""
        accumulator = StreamAccumulator(
            store, placeholder.id, failing_opener(ModelServiceError("API key required"))
        )

        relayed = [text async for text in accumulator]

        check.equal(relayed, [])
        check.equal(placeholder.content, "Sorry, I encountered an error: API key required")
        check.is_true(placeholder.errored)
        check.is_false(placeholder.pending)
        check.is_false(placeholder.loading)
        check.is_false(accumulator.outcome.ok)
        check.equal(accumulator.outcome.kind, ErrorKind.MODEL_SERVICE)

    async def test_error_mid_stream_replaces_partial_content(
        self, store: ConversationStore, placeholder: Message
    ) -> None:
        """Fragments already relayed are discarded from the stored message."""
        stream = fragments("partial ", "answer", error=ConnectionError("stream reset"))
        accumulator = StreamAccumulator(store, placeholder.id, opener(stream))

        relayed = [text async for text in accumulator]

        check.equal(relayed, ["partial ", "answer"])
        check.equal(placeholder.content, "Sorry, I encountered an error: stream reset")
        check.is_true(placeholder.errored)
        check.equal(accumulator.outcome.message, placeholder.content)

    async def test_unknown_error_without_message(
        self, store: ConversationStore, placeholder: Message
    ) -> None:
        accumulator = StreamAccumulator(store, placeholder.id, failing_opener(RuntimeError()))

        async for _ in accumulator:
            pass

        assert placeholder.content == "Sorry, I encountered an error: An unknown error occurred."


class TestAbandonedStream:
    """Tests for consumers that stop before the stream ends."""

    async def test_closing_early_closes_model_stream(
        self, store: ConversationStore, placeholder: Message
    ) -> None:
        """Closing the accumulator closes the fragment stream right away."""
        closed: list[bool] = []

        async def tracked() -> AsyncIterator[Fragment]:
            try:
                yield Fragment(text="partial")
                yield Fragment(text=" never sent")
            finally:
                closed.append(True)

        accumulator = StreamAccumulator(store, placeholder.id, opener(tracked()))
        texts = aiter(accumulator)

        check.equal(await anext(texts), "partial")
        await texts.aclose()

        check.equal(closed, [True])
        check.equal(placeholder.content, "partial")
        check.is_false(placeholder.errored)
        check.is_none(accumulator.outcome)
