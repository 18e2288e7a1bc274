"""Integration tests for the CSV upload endpoint.

Uploads real files from tests/data/ and checks that the dataset grounds
the turns that follow.
"""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest_check as check
from httpx import AsyncClient

from gemini_chat.conversation.coordinator import ChatCoordinator
from gemini_chat.conversation.errors import CoordinatorBusyError
from gemini_chat.models.schemas import CsvUploadResponse, StreamChunk, StreamStatus
from tests.conftest import FakeModelService


async def upload(client: AsyncClient, path: Path, filename: str | None = None):
    return await client.post(
        "/upload/csv",
        files={"file": (filename or path.name, path.read_bytes(), "text/csv")},
    )


class TestCsvUpload:
    """Integration tests for POST /upload/csv."""

    async def test_upload_csv_success(self, async_client: AsyncClient, test_data_dir: Path) -> None:
        response = await upload(async_client, test_data_dir / "people.csv")

        check.equal(response.status_code, 200)
        data = CsvUploadResponse.model_validate(response.json())
        check.is_true(data.success)
        check.equal(data.filename, "people.csv")
        check.equal(data.rows, 3)
        check.equal(data.columns, ["name", "city", "age"])
        check.is_none(data.error)

    async def test_upload_is_recorded_in_conversation(
        self, async_client: AsyncClient, test_data_dir: Path
    ) -> None:
        await upload(async_client, test_data_dir / "people.csv")

        messages = (await async_client.get("/chat/messages")).json()
        state = (await async_client.get("/chat/state")).json()

        check.equal(
            [m["content"] for m in messages[1:]],
            [
                "Loading and parsing CSV data from file: people.csv...",
                'Successfully loaded "people.csv". The AI now has full context of the file. '
                "You can ask questions about its content.",
            ],
        )
        check.equal(state["dataset"], "people.csv")
        check.equal(state["columns"], ["name", "city", "age"])

    async def test_follow_up_question_is_grounded(
        self,
        async_client: AsyncClient,
        fake_service: FakeModelService,
        test_data_dir: Path,
    ) -> None:
        await upload(async_client, test_data_dir / "people.csv")

        async with async_client.stream(
            "POST", "/chat/stream", json={"message": "Who lives in Paris?"}
        ) as response:
            lines = [line async for line in response.aiter_lines() if line.startswith("data: ")]

        final = StreamChunk.model_validate_json(lines[-1].removeprefix("data: "))
        call = fake_service.generate_calls[0]
        check.equal(final.status, StreamStatus.COMPLETE)
        check.equal(call["temperature"], 0)
        check.is_in("Zoe,Paris,31", call["system_instruction"])
        check.equal(fake_service.sessions, [])

    async def test_reject_non_csv_extension(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/upload/csv",
            files={"file": ("notes.txt", b"a,b\n1,2\n", "text/plain")},
        )

        check.equal(response.status_code, 400)
        check.equal(response.json()["detail"], "Only CSV files are accepted")

    async def test_reject_header_only_file(
        self, async_client: AsyncClient, test_data_dir: Path
    ) -> None:
        response = await upload(async_client, test_data_dir / "header_only.csv")

        check.equal(response.status_code, 400)
        check.equal(response.json()["detail"], "CSV file is empty or could not be parsed.")

    async def test_reject_malformed_file(
        self, async_client: AsyncClient, test_data_dir: Path
    ) -> None:
        response = await upload(async_client, test_data_dir / "malformed.csv")
        messages = (await async_client.get("/chat/messages")).json()

        check.equal(response.status_code, 400)
        check.is_true(response.json()["detail"].startswith("CSV parsing failed"))
        check.is_true(messages[-1]["errored"])
        check.is_true(messages[-1]["content"].startswith("Failed to load CSV: CSV parsing failed"))

    async def test_failed_upload_unloads_previous_dataset(
        self, async_client: AsyncClient, test_data_dir: Path
    ) -> None:
        await upload(async_client, test_data_dir / "people.csv")

        await upload(async_client, test_data_dir / "header_only.csv")
        state = (await async_client.get("/chat/state")).json()

        assert state["dataset"] is None

    async def test_upload_while_busy_returns_409(
        self,
        async_client: AsyncClient,
        coordinator: ChatCoordinator,
        test_data_dir: Path,
    ) -> None:
        turn = coordinator.send_message("Hold on")
        await turn.__anext__()

        response = await upload(async_client, test_data_dir / "people.csv")
        await turn.aclose()

        check.equal(response.status_code, 409)
        check.is_none(coordinator.dataset)

    async def test_upload_racing_another_request_returns_409(
        self,
        async_client: AsyncClient,
        coordinator: ChatCoordinator,
        test_data_dir: Path,
    ) -> None:
        """A turn that starts while the file is being read still yields a conflict."""
        racing = AsyncMock(side_effect=CoordinatorBusyError())
        with patch.object(coordinator, "load_dataset", racing):
            response = await upload(async_client, test_data_dir / "people.csv")

        check.equal(response.status_code, 409)
        check.equal(response.json()["detail"], "Another request is still in progress")
        check.equal(racing.await_count, 1)

    async def test_new_conversation_unloads_dataset(
        self, async_client: AsyncClient, test_data_dir: Path
    ) -> None:
        await upload(async_client, test_data_dir / "people.csv")

        state = (await async_client.post("/chat/new")).json()

        check.is_none(state["dataset"])
        check.equal(state["columns"], [])
