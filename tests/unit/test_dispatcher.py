"""Unit tests for strategy selection."""

import pytest

from gemini_chat.conversation.dispatcher import Strategy, decide, is_csv_url
from gemini_chat.models.schemas import ImageAttachment, LoadedDataset

IMAGE = ImageAttachment(name="cat.png", data=b"\x89PNG")
DATASET = LoadedDataset(
    identifier="people.csv",
    records=[{"name": "Zoe", "city": "Paris"}],
    raw_text="name,city\nZoe,Paris",
)


class TestIsCsvUrl:
    """Tests for bare CSV link detection."""

    @pytest.mark.parametrize(
        "text",
        [
            "https://example.com/data.csv",
            "http://example.com/path/to/file.csv",
            "HTTPS://EXAMPLE.COM/DATA.CSV",
            "  https://example.com/data.csv  ",
        ],
    )
    def test_matches_bare_links(self, text: str) -> None:
        assert is_csv_url(text)

    @pytest.mark.parametrize(
        "text",
        [
            "load https://example.com/data.csv",
            "https://example.com/data.csv please",
            "https://example.com/data.csv?raw=1",
            "https://example.com/my data.csv",
            "ftp://example.com/data.csv",
            "https://example.com/data.json",
            "data.csv",
            "",
        ],
    )
    def test_rejects_anything_else(self, text: str) -> None:
        assert not is_csv_url(text)


class TestDecide:
    """Tests for rule precedence."""

    def test_csv_link_loads_dataset(self) -> None:
        """A bare CSV link loads a dataset, even when one is already loaded."""
        assert decide("https://example.com/a.csv") is Strategy.DATASET_LOAD
        assert decide("https://example.com/a.csv", dataset=DATASET) is Strategy.DATASET_LOAD

    def test_image_overrides_csv_link(self) -> None:
        """With an image attached the link is just the image prompt."""
        assert decide("https://example.com/a.csv", image=IMAGE) is Strategy.IMAGE_ONE_SHOT

    def test_image_wins_over_dataset(self) -> None:
        """An attached image is answered without the dataset."""
        assert decide("What is this?", image=IMAGE, dataset=DATASET) is Strategy.IMAGE_ONE_SHOT

    def test_image_without_text(self) -> None:
        assert decide("", image=IMAGE) is Strategy.IMAGE_ONE_SHOT

    def test_dataset_grounds_plain_questions(self) -> None:
        assert decide("Who lives in Paris?", dataset=DATASET) is Strategy.DATASET_ONE_SHOT

    def test_plain_text_goes_to_chat(self) -> None:
        assert decide("Tell me a joke") is Strategy.FREE_CHAT
