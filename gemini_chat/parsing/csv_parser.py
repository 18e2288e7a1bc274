"""CSV ingestion module: csv tokenizing with pandas number parsing.

Fetches CSV text from an upload or a remote URL, enforces the size ceiling,
and decodes it into records while keeping the raw text for grounding.
"""

import csv
import io
import logging
import math
from typing import Any

import httpx
import pandas as pd
from pydantic import BaseModel, Field

from gemini_chat.agent.config import ChatConfig, get_chat_config
from gemini_chat.conversation.errors import CsvIngestError, ErrorKind

logger = logging.getLogger(__name__)

UPLOAD_HINT = "As an alternative, you can download the CSV and upload it directly."
EMPTY_MESSAGE = "CSV file is empty or could not be parsed."

_STATUS_MESSAGES = {
    403: (
        "The request was forbidden. This can happen if the proxy or the target "
        "server has security restrictions."
    ),
    404: "The file was not found at the provided URL. Please check the link.",
    429: "Too many requests. The proxy service may be rate-limiting. Please try again later.",
}


class CsvContent(BaseModel):
    """Decoded content of a CSV file.

    Attributes:
        records: Rows as column-to-value mappings, header order preserved.
        raw_text: The original CSV text, verbatim.
    """

    records: list[dict[str, Any]] = Field(min_length=1)
    raw_text: str = Field(repr=False)

    @property
    def columns(self) -> list[str]:
        return list(self.records[0].keys())


def status_message(status_code: int) -> str:
    """Build the user-facing message for a failed relay response."""
    message = _STATUS_MESSAGES.get(
        status_code, f"Failed to fetch from URL (Status: {status_code})."
    )
    return f"{message} {UPLOAD_HINT}"


async def fetch_csv_text(
    url: str,
    config: ChatConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Fetch CSV text from a URL through the CORS relay.

    Args:
        url: Target CSV URL.
        config: Optional configuration. Loads from environment if not provided.
        client: Optional HTTP client to reuse.

    Returns:
        Response body as text.

    Raises:
        CsvIngestError: On network failure or a non-success relay status.
    """
    config = config or get_chat_config()
    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=config.fetch_timeout, follow_redirects=True)

    try:
        response = await client.get(config.proxy_url, params={"url": url})
    except httpx.RequestError as e:
        logger.error(f"Network error fetching CSV from {url}: {e}")
        raise CsvIngestError(
            "Network error: Could not fetch the CSV from the URL. Please check your "
            "internet connection and the URL. If the issue persists, the remote server "
            "may be blocking requests.",
            kind=ErrorKind.TRANSPORT,
        ) from e
    finally:
        if owns_client:
            await client.aclose()

    if not response.is_success:
        logger.error(f"Proxy fetch error: {response.status_code} {response.text[:500]}")
        raise CsvIngestError(
            status_message(response.status_code),
            kind=ErrorKind.TRANSPORT,
            status_code=response.status_code,
        )

    return response.text


def decode_upload(content: bytes) -> str:
    """Decode uploaded CSV bytes as UTF-8, dropping a byte-order mark."""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise CsvIngestError("Could not decode the file as UTF-8 text.") from e


def _validate_size(raw_text: str, max_chars: int) -> None:
    if len(raw_text) > max_chars:
        raise CsvIngestError("CSV file is too large (over 1MB). Please use a smaller file.")


def _summarize(messages: list[str]) -> str:
    unique = list(dict.fromkeys(messages))
    if len(unique) > 3:
        return f"{'; '.join(unique[:3])}... and {len(unique) - 3} more similar errors."
    return "; ".join(unique)


def _is_blank(row: list[str]) -> bool:
    return not row or (len(row) == 1 and not row[0].strip())


def _unique_columns(header: list[str]) -> list[str]:
    """Suffix repeated header names with ``.1``, ``.2`` and so on."""
    seen: dict[str, int] = {}
    columns = []
    for name in header:
        count = seen.get(name, 0)
        seen[name] = count + 1
        columns.append(f"{name}.{count}" if count else name)
    return columns


def _read_rows(raw_text: str) -> list[tuple[int, list[str]]]:
    reader = csv.reader(io.StringIO(raw_text), strict=True)
    try:
        return [(reader.line_num, row) for row in reader if not _is_blank(row)]
    except csv.Error as e:
        raise CsvIngestError(
            f"CSV parsing failed: line {reader.line_num}: {e}. "
            "The file may be malformed or not a valid CSV."
        ) from e


def infer_value(cell: str) -> Any:
    """Type a single cell: empty is None, finite numbers become int or float."""
    if cell == "":
        return None
    try:
        number = pd.to_numeric(cell)
    except (ValueError, TypeError):
        return cell
    number = number.item() if hasattr(number, "item") else number
    if isinstance(number, float) and not math.isfinite(number):
        return cell
    return number


def decode_records(raw_text: str) -> list[dict[str, Any]]:
    """Decode CSV text into records.

    The first row is the header and blank lines are skipped. Every row is
    fitted to the header width: short rows are padded with None, extra cells
    are dropped with a warning. Each cell is typed on its own, so a column may
    mix numbers and text and "NA" or "null" stay strings.

    Raises:
        CsvIngestError: If the text is empty or structurally malformed.
    """
    rows = _read_rows(raw_text)
    if not rows:
        raise CsvIngestError(EMPTY_MESSAGE)

    (_, header), body = rows[0], rows[1:]
    columns = _unique_columns(header)
    width = len(columns)

    dropped = [
        f"Expected {width} fields in line {line}, saw {len(row)}"
        for line, row in body
        if len(row) > width
    ]
    if dropped:
        logger.warning(f"CSV parsing generated some warnings: {_summarize(dropped)}")

    records = []
    for _, row in body:
        cells = row[:width] + [""] * (width - len(row))
        records.append(dict(zip(columns, map(infer_value, cells))))
    return records


def parse_csv_text(raw_text: str, max_chars: int) -> CsvContent:
    """Validate and decode CSV text.

    Args:
        raw_text: The CSV text.
        max_chars: Maximum accepted length in characters.

    Returns:
        CsvContent with records and the untouched raw text.

    Raises:
        CsvIngestError: If the text is too large, empty, or malformed.
    """
    _validate_size(raw_text, max_chars)

    records = decode_records(raw_text)
    if not records:
        raise CsvIngestError(EMPTY_MESSAGE)

    return CsvContent(records=records, raw_text=raw_text)


async def parse_csv(
    source: str | bytes,
    config: ChatConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> CsvContent:
    """Parse a CSV from a URL or uploaded file content.

    Args:
        source: A URL string, or the raw bytes of an uploaded file.
        config: Optional configuration. Loads from environment if not provided.
        client: Optional HTTP client used for URL sources.

    Returns:
        CsvContent with decoded records and raw text.

    Raises:
        CsvIngestError: If fetching, validation or decoding fails.
    """
    config = config or get_chat_config()

    if isinstance(source, str):
        raw_text = await fetch_csv_text(source, config=config, client=client)
    else:
        raw_text = decode_upload(source)

    return parse_csv_text(raw_text, config.max_chars)
