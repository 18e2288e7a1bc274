"""Coordinating context for a conversation.

Owns the state every strategy reads: the message store, the single loaded
dataset, the single chat session, the selected model and the busy flag.
Invalidation replaces the dataset and session slots instead of mutating
them. One turn runs at a time; the busy flag gates new submissions and is
cleared in a ``finally`` block whatever the outcome.
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from dataclasses import dataclass

import httpx

from gemini_chat.agent.chat_agent import ChatSession, ModelService, Turn, get_model_service, to_turns
from gemini_chat.agent.config import ChatConfig, get_chat_config
from gemini_chat.conversation.accumulator import StreamAccumulator, StreamOpener
from gemini_chat.conversation.dispatcher import DEFAULT_IMAGE_PROMPT, Strategy, decide
from gemini_chat.conversation.errors import (
    CoordinatorBusyError,
    ErrorKind,
    Outcome,
    classify_error,
    describe_error,
)
from gemini_chat.conversation.grounding import GROUNDED_TEMPERATURE, build_grounding_instruction
from gemini_chat.conversation.store import ConversationStore
from gemini_chat.models.schemas import (
    ConversationState,
    ImageAttachment,
    LoadedDataset,
    Message,
    ModelTier,
    Role,
    StreamChunk,
    StreamStatus,
)
from gemini_chat.parsing.csv_parser import parse_csv

logger = logging.getLogger(__name__)

# Image questions always go to the fast tier.
IMAGE_MODEL = ModelTier.FLASH


@dataclass(frozen=True)
class UploadedCsv:
    """A CSV file picked by the user."""

    name: str
    content: bytes


class ChatCoordinator:
    """Dispatches user turns and owns the conversation's ambient state."""

    def __init__(
        self,
        service_factory: Callable[[], ModelService] = get_model_service,
        config: ChatConfig | None = None,
        store: ConversationStore | None = None,
        csv_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            service_factory: Builds the model service. Called inside the
                    guarded stream region so construction failures become
                    the reply's error notice.
            config: Optional chat configuration. Loads from environment if not provided.
            store: Optional message store.
            csv_client: Optional HTTP client for fetching CSV URLs.
        """
        self._config = config or get_chat_config()
        self._service_factory = service_factory
        self._store = store or ConversationStore()
        self._csv_client = csv_client
        self._dataset: LoadedDataset | None = None
        self._session: ChatSession | None = None
        self._model = self._config.default_model
        self._busy = False

    @property
    def store(self) -> ConversationStore:
        return self._store

    @property
    def messages(self) -> list[Message]:
        return self._store.messages

    @property
    def dataset(self) -> LoadedDataset | None:
        return self._dataset

    @property
    def session(self) -> ChatSession | None:
        return self._session

    @property
    def model(self) -> ModelTier:
        return self._model

    @property
    def busy(self) -> bool:
        return self._busy

    def state(self) -> ConversationState:
        return ConversationState(
            model=self._model,
            dataset=self._dataset.identifier if self._dataset else None,
            columns=self._dataset.columns if self._dataset else [],
            busy=self._busy,
            has_session=self._session is not None,
        )

    def select_model(self, model: ModelTier) -> None:
        """Switch the model tier; the open session is always dropped."""
        if self._busy:
            raise CoordinatorBusyError()
        logger.info(f"Model selection changed to {model.value}")
        self._model = model
        self._session = None

    def new_conversation(self) -> None:
        """Start over: greeting only, no session, no dataset."""
        if self._busy:
            raise CoordinatorBusyError()
        logger.info("Starting a new conversation")
        self._store.reset()
        self._session = None
        self._dataset = None

    async def load_dataset(self, source: str | UploadedCsv) -> Outcome:
        """Load a CSV from a URL or an uploaded file.

        Progress and the result are recorded as system messages. On success
        the dataset replaces any previous one and the session is dropped; on
        failure no dataset stays loaded.

        Raises:
            CoordinatorBusyError: If another request is in flight.
        """
        if self._busy:
            raise CoordinatorBusyError()
        self._busy = True

        if isinstance(source, str):
            name = source.split("/")[-1] or "file.csv"
            self._store.add(Role.SYSTEM, f"Loading and parsing CSV data from URL: {source}...")
            payload: str | bytes = source
        else:
            name = source.name
            self._store.add(Role.SYSTEM, f"Loading and parsing CSV data from file: {name}...")
            payload = source.content

        try:
            content = await parse_csv(payload, config=self._config, client=self._csv_client)
        except Exception as e:
            message = describe_error(e)
            logger.error(f"Error loading CSV {name}: {message}")
            self._dataset = None
            self._store.add(Role.SYSTEM, f"Failed to load CSV: {message}", errored=True)
            return Outcome.failure(classify_error(e, default=ErrorKind.INPUT_VALIDATION), message)
        finally:
            self._busy = False

        self._dataset = LoadedDataset(
            identifier=name,
            records=content.records,
            raw_text=content.raw_text,
        )
        self._session = None
        logger.info(f"Loaded CSV {name}: {len(content.records)} rows, columns {content.columns}")
        self._store.add(
            Role.SYSTEM,
            f'Successfully loaded "{name}". The AI now has full context of the file. '
            "You can ask questions about its content.",
        )
        return Outcome.success(name)

    async def send_message(
        self,
        text: str,
        image: ImageAttachment | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Answer a user turn, streaming progress as chunks.

        A bare CSV link loads a dataset instead of calling the model. Any
        other turn adds the user message and a pending assistant reply, then
        streams the selected strategy's fragments into that reply. The last
        chunk has ``done`` set and carries the error notice on failure.

        Args:
            text: The user's input.
            image: Optional attached image.

        Yields:
            StreamChunk events in arrival order.

        Raises:
            CoordinatorBusyError: If another request is in flight.
        """
        if self._busy:
            raise CoordinatorBusyError()

        text = text.strip()
        strategy = decide(text, image, self._dataset)
        logger.info(f"Dispatching turn via {strategy.value}")

        if strategy is Strategy.DATASET_LOAD:
            yield StreamChunk(content="", done=False, status=StreamStatus.LOADING_DATASET)
            outcome = await self.load_dataset(text)
            yield self._final_chunk(outcome)
            return

        self._busy = True
        user_message = self._store.add(Role.USER, text, attachment=image)
        placeholder = self._store.add_placeholder()
        try:
            yield StreamChunk(content="", done=False, status=StreamStatus.RECEIVED)

            open_stream = self._opener(strategy, text, image, exclude=(user_message.id, placeholder.id))
            accumulator = StreamAccumulator(self._store, placeholder.id, open_stream)
            async with aclosing(aiter(accumulator)) as fragments:
                async for fragment in fragments:
                    yield StreamChunk(content=fragment, done=False, status=StreamStatus.GENERATING)

            yield self._final_chunk(accumulator.outcome or Outcome.success())
        finally:
            self._busy = False
            placeholder.pending = False
            placeholder.loading = False

    @staticmethod
    def _final_chunk(outcome: Outcome) -> StreamChunk:
        if outcome.ok:
            return StreamChunk(content="", done=True, status=StreamStatus.COMPLETE)
        return StreamChunk(content="", done=True, status=StreamStatus.ERROR, error=outcome.message)

    def _opener(
        self,
        strategy: Strategy,
        text: str,
        image: ImageAttachment | None,
        exclude: tuple[str, ...],
    ) -> StreamOpener:
        if strategy is Strategy.IMAGE_ONE_SHOT and image is not None:
            return self._image_opener(text, image)
        if strategy is Strategy.DATASET_ONE_SHOT and self._dataset is not None:
            return self._dataset_opener(text, self._dataset, exclude)
        return self._chat_opener(text, exclude)

    def _image_opener(self, text: str, image: ImageAttachment) -> StreamOpener:
        contents = [Turn(role="user", parts=[image, text or DEFAULT_IMAGE_PROMPT])]

        async def open_stream() -> AsyncIterator:
            service = self._service_factory()
            return await service.stream_generate(IMAGE_MODEL.value, contents)

        return open_stream

    def _dataset_opener(
        self,
        text: str,
        dataset: LoadedDataset,
        exclude: tuple[str, ...],
    ) -> StreamOpener:
        model = self._model.value
        instruction = build_grounding_instruction(dataset)
        contents = [*to_turns(self._store.turns(exclude=exclude)), Turn(role="user", parts=[text])]

        async def open_stream() -> AsyncIterator:
            service = self._service_factory()
            return await service.stream_generate(
                model,
                contents,
                system_instruction=instruction,
                temperature=GROUNDED_TEMPERATURE,
            )

        return open_stream

    def _chat_opener(self, text: str, exclude: tuple[str, ...]) -> StreamOpener:
        async def open_stream() -> AsyncIterator:
            if self._session is None:
                service = self._service_factory()
                history = to_turns(self._store.history(exclude=exclude))
                self._session = service.create_session(self._model.value, history)
            return await self._session.send_message_stream(text)

        return open_stream


# Module-level singleton instance
_chat_coordinator: ChatCoordinator | None = None


def get_chat_coordinator() -> ChatCoordinator:
    """Get or create the global chat coordinator.

    Returns:
        The ChatCoordinator instance.
    """
    global _chat_coordinator
    if _chat_coordinator is None:
        _chat_coordinator = ChatCoordinator()
    return _chat_coordinator
