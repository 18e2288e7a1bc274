"""Pytest fixtures and shared test configuration.

Fixtures:
    - test_data_dir: Path to sample files directory
    - fake_service: In-memory model service recording every call
    - chat_config: Configuration pointing the CSV relay at a test host
    - coordinator: ChatCoordinator wired to the fake service
    - async_client: HTTPX client for API testing, bound to ``coordinator``

The fakes stand in for the Gemini client only; everything above the
ModelService boundary runs for real.
"""

from collections.abc import AsyncGenerator, AsyncIterator, Sequence
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from gemini_chat.agent.chat_agent import ChatSession, ModelService, Turn
from gemini_chat.agent.config import ChatConfig
from gemini_chat.api import app
from gemini_chat.conversation.coordinator import ChatCoordinator, get_chat_coordinator
from gemini_chat.models.schemas import Fragment, ModelTier

RELAY_URL = "https://relay.test/raw"


async def fragments(*texts: str | None, error: Exception | None = None) -> AsyncIterator[Fragment]:
    """Yield one fragment per text, then raise ``error`` if given."""
    for text in texts:
        yield Fragment(text=text)
    if error is not None:
        raise error


class FakeSession(ChatSession):
    """Chat session that records the texts it is sent."""

    def __init__(self, service: "FakeModelService", model: str, history: Sequence[Turn]) -> None:
        self.service = service
        self.model = model
        self.history = list(history)
        self.sent: list[str] = []

    async def send_message_stream(self, text: str) -> AsyncIterator[Fragment]:
        self.sent.append(text)
        return self.service.next_stream()


class FakeModelService(ModelService):
    """Model service returning canned replies.

    Attributes:
        replies: Fragments streamed for every call.
        error: Raised by every call when set, before any fragment.
        generate_calls: Keyword arguments of each ``stream_generate`` call.
        sessions: Sessions handed out by ``create_session``.
    """

    def __init__(self, replies: Sequence[str] = ("Hello", " there!")) -> None:
        self.replies = list(replies)
        self.error: Exception | None = None
        self.generate_calls: list[dict] = []
        self.sessions: list[FakeSession] = []

    def next_stream(self) -> AsyncIterator[Fragment]:
        if self.error is not None:
            raise self.error
        return fragments(*self.replies)

    async def stream_generate(
        self,
        model: str,
        contents: Sequence[Turn],
        system_instruction: str | None = None,
        temperature: float | None = None,
    ) -> AsyncIterator[Fragment]:
        self.generate_calls.append({
            "model": model,
            "contents": list(contents),
            "system_instruction": system_instruction,
            "temperature": temperature,
        })
        return self.next_stream()

    def create_session(self, model: str, history: Sequence[Turn]) -> ChatSession:
        session = FakeSession(self, model, history)
        self.sessions.append(session)
        return session


@pytest.fixture
def test_data_dir() -> Path:
    """Return path to test data directory.

    Returns:
        Absolute path to tests/data/ directory.
    """
    return Path(__file__).parent / "data"


@pytest.fixture
def fake_service() -> FakeModelService:
    return FakeModelService()


@pytest.fixture
def chat_config() -> ChatConfig:
    return ChatConfig(
        default_model=ModelTier.FLASH,
        proxy_url=RELAY_URL,
        max_chars=1_000_000,
        fetch_timeout=5,
    )


@pytest.fixture
def coordinator(fake_service: FakeModelService, chat_config: ChatConfig) -> ChatCoordinator:
    """Coordinator whose model calls go to ``fake_service``."""
    return ChatCoordinator(service_factory=lambda: fake_service, config=chat_config)


@pytest.fixture
async def async_client(coordinator: ChatCoordinator) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for API testing.

    Yields:
        Configured AsyncClient for making test requests.
    """
    app.dependency_overrides[get_chat_coordinator] = lambda: coordinator
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
