"""Selection of the response strategy for a user turn."""

import re
from enum import Enum

from gemini_chat.models.schemas import ImageAttachment, LoadedDataset

CSV_URL_PATTERN = re.compile(r"^(https?://[^\s$.?#].[^\s]*\.csv)$", re.IGNORECASE)

DEFAULT_IMAGE_PROMPT = "Describe this image."


class Strategy(str, Enum):
    """How a user turn is answered."""

    DATASET_LOAD = "dataset_load"
    IMAGE_ONE_SHOT = "image_one_shot"
    DATASET_ONE_SHOT = "dataset_one_shot"
    FREE_CHAT = "free_chat"


def is_csv_url(text: str) -> bool:
    """Whether the text is nothing but a link to a CSV file."""
    return CSV_URL_PATTERN.match(text.strip()) is not None


def decide(
    input_text: str,
    image: ImageAttachment | None = None,
    dataset: LoadedDataset | None = None,
) -> Strategy:
    """Pick the strategy for a turn.

    Rules apply in order: a bare CSV link without an image loads a dataset,
    an attached image wins over a loaded dataset, a loaded dataset grounds
    the answer, and anything else goes to the persistent chat session.
    """
    if image is None and is_csv_url(input_text):
        return Strategy.DATASET_LOAD
    if image is not None:
        return Strategy.IMAGE_ONE_SHOT
    if dataset is not None:
        return Strategy.DATASET_ONE_SHOT
    return Strategy.FREE_CHAT
