"""Error taxonomy shared by the ingestion, model and dispatch layers.

Collaborator failures are raised as ``GeminiChatError`` subclasses and
converted to an ``Outcome`` at the coordinator boundary, so every failure
reaches the user as a message instead of propagating.
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError


class ErrorKind(str, Enum):
    """Failure classes surfaced to the user."""

    INPUT_VALIDATION = "input_validation"
    TRANSPORT = "transport"
    MODEL_SERVICE = "model_service"


class GeminiChatError(Exception):
    """Base class for errors carrying a user-facing message."""

    kind: ErrorKind = ErrorKind.MODEL_SERVICE

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class CsvIngestError(GeminiChatError):
    """Raised when a CSV cannot be fetched, decoded or accepted."""

    kind = ErrorKind.INPUT_VALIDATION

    def __init__(
        self,
        message: str,
        kind: ErrorKind | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, kind)
        self.status_code = status_code


class ModelServiceError(GeminiChatError):
    """Raised when the hosted model cannot be reached or configured."""

    kind = ErrorKind.MODEL_SERVICE


class CoordinatorBusyError(GeminiChatError):
    """Raised when a turn is submitted while another is in flight."""

    def __init__(self) -> None:
        super().__init__("Another request is still in progress")


@dataclass(frozen=True)
class Outcome:
    """Tagged result of a collaborator call."""

    ok: bool
    kind: ErrorKind | None = None
    message: str = ""

    @classmethod
    def success(cls, message: str = "") -> "Outcome":
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "Outcome":
        return cls(ok=False, kind=kind, message=message)


def describe_error(error: BaseException) -> str:
    """Reduce an exception to a single user-facing sentence."""
    if isinstance(error, GeminiChatError):
        return error.message
    if isinstance(error, ValidationError):
        errors = error.errors()
        if errors:
            return str(errors[0]["msg"]).removeprefix("Value error, ")
    return str(error) or "An unknown error occurred."


def classify_error(
    error: BaseException, default: ErrorKind = ErrorKind.MODEL_SERVICE
) -> ErrorKind:
    """Map an exception onto the error taxonomy."""
    if isinstance(error, GeminiChatError):
        return error.kind
    return default
