import base64
import binascii
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Role(str, Enum):
    """Speaker of a message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ModelTier(str, Enum):
    """Hosted model selectable from the UI."""

    FLASH = "gemini-2.5-flash"
    PRO = "gemini-2.5-pro"


class StreamStatus(str, Enum):
    """Status values for streaming updates."""

    RECEIVED = "received"
    LOADING_DATASET = "loading_dataset"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"


class ImageAttachment(BaseModel):
    """An image attached to a user turn.

    Attributes:
        name: Original file name.
        mime_type: MIME type sent along with the inline bytes.
        data: Raw image bytes.
    """

    kind: Literal["image"] = "image"
    name: str
    mime_type: str = "image/png"
    data: bytes = Field(repr=False)


class Message(BaseModel):
    """A single message in the conversation.

    Attributes:
        id: Opaque identifier.
        role: The speaker (user, assistant, or system).
        content: Message text. Append-only while pending.
        created_at: Creation timestamp.
        attachment: Optional image sent with a user turn.
        pending: True for the in-flight assistant reply until its stream ends.
        loading: True until the first fragment of a pending reply arrives.
        errored: True when the message carries an error notice.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Role
    content: str = ""
    created_at: datetime = Field(default_factory=datetime.now)
    attachment: ImageAttachment | None = None
    pending: bool = False
    loading: bool = False
    errored: bool = False


class LoadedDataset(BaseModel):
    """The CSV dataset currently grounding the conversation.

    Attributes:
        identifier: File name the dataset was loaded from.
        records: Decoded rows as column-to-value mappings.
        raw_text: The original CSV text, verbatim.
    """

    identifier: str
    records: list[dict[str, Any]]
    raw_text: str = Field(repr=False)

    @property
    def columns(self) -> list[str]:
        """Column names taken from the first record."""
        if not self.records:
            return []
        return list(self.records[0].keys())


class ImagePayload(BaseModel):
    """Base64-encoded image carried in a chat request."""

    name: str = Field(..., min_length=1)
    mime_type: str = Field("image/png", pattern=r"^image/")
    data: str = Field(..., min_length=1, description="Base64-encoded image bytes")

    @field_validator("data")
    @classmethod
    def validate_base64(cls, v: str) -> str:
        """Reject image data that is not valid base64."""
        try:
            base64.b64decode(v, validate=True)
        except binascii.Error as e:
            raise ValueError("Image data must be base64-encoded") from e
        return v

    def to_attachment(self) -> ImageAttachment:
        return ImageAttachment(
            name=self.name,
            mime_type=self.mime_type,
            data=base64.b64decode(self.data),
        )


class ChatRequest(BaseModel):
    """Request payload for the streaming chat endpoint.

    Attributes:
        message: User's question or prompt. May be empty when an image is attached.
        image: Optional image attachment.
    """

    message: str = ""
    image: ImagePayload | None = None

    @field_validator("message", mode="before")
    @classmethod
    def strip_message(cls, v: str) -> str:
        """Strip whitespace from message before validation."""
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode="after")
    def require_text_or_image(self) -> "ChatRequest":
        if not self.message and self.image is None:
            raise ValueError("A message or an image is required")
        return self


class Fragment(BaseModel):
    """One incremental unit of a streamed generation."""

    model_config = ConfigDict(frozen=True)

    text: str | None = None


class StreamChunk(BaseModel):
    """A chunk of streamed response data.

    Attributes:
        content: The text content of this chunk.
        done: Whether this is the final chunk.
        status: Current processing status.
        error: User-facing error message if the turn failed.
    """

    content: str
    done: bool
    status: StreamStatus | None = None
    error: str | None = None


class MessageView(BaseModel):
    """A message as exposed over the API (attachment bytes omitted)."""

    id: str
    role: Role
    content: str
    created_at: datetime
    attachment_name: str | None = None
    pending: bool
    loading: bool
    errored: bool

    @classmethod
    def from_message(cls, message: Message) -> "MessageView":
        return cls(
            id=message.id,
            role=message.role,
            content=message.content,
            created_at=message.created_at,
            attachment_name=message.attachment.name if message.attachment else None,
            pending=message.pending,
            loading=message.loading,
            errored=message.errored,
        )


class ModelSelection(BaseModel):
    """Request payload for switching the model tier."""

    model: ModelTier


class ConversationState(BaseModel):
    """Ambient state of the conversation shown next to the input box."""

    model: ModelTier
    dataset: str | None = None
    columns: list[str] = Field(default_factory=list)
    busy: bool
    has_session: bool


class CsvUploadResponse(BaseModel):
    """Response after CSV upload processing.

    Attributes:
        filename: Name of the uploaded file.
        rows: Number of decoded records.
        columns: Column names of the dataset.
        success: Whether the dataset was loaded.
        error: Error message if loading failed.
    """

    filename: str
    rows: int
    columns: list[str]
    success: bool
    error: str | None = None
