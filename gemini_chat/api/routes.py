"""CSV upload endpoint for dataset-grounded chat.

Handles file upload, validation, and loading the dataset into the conversation.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status

from gemini_chat.conversation.coordinator import ChatCoordinator, UploadedCsv, get_chat_coordinator
from gemini_chat.conversation.errors import CoordinatorBusyError
from gemini_chat.models.schemas import CsvUploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["upload"])


def _validate_file_extension(filename: str | None) -> str:
    """Validate that file has .csv extension.

    Args:
        filename: The uploaded filename.

    Returns:
        The validated filename.

    Raises:
        HTTPException: 400 if extension is invalid.
    """
    if not filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Filename is required",
        )

    if not filename.lower().endswith(".csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are accepted",
        )

    return filename


@router.post("/csv", response_model=CsvUploadResponse)
async def upload_csv(
    file: UploadFile,
    coordinator: ChatCoordinator = Depends(get_chat_coordinator),
) -> CsvUploadResponse:
    """Upload a CSV file and make it the conversation's dataset.

    The progress and result also appear in the conversation as system messages.

    Args:
        file: The uploaded CSV file (multipart/form-data).

    Returns:
        CsvUploadResponse with filename, row count and columns.

    Raises:
        400: Invalid file (not CSV, empty, too large, malformed).
        409: A request is already in flight.
    """
    filename = _validate_file_extension(file.filename)

    if coordinator.busy:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Another request is still in progress",
        )

    content = await file.read()
    try:
        outcome = await coordinator.load_dataset(UploadedCsv(name=filename, content=content))
    except CoordinatorBusyError as e:
        logger.warning(f"Rejected CSV upload {filename}: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=e.message,
        ) from e

    if not outcome.ok or coordinator.dataset is None:
        logger.warning(f"CSV upload rejected for {filename}: {outcome.message}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=outcome.message,
        )

    logger.info(f"Successfully loaded CSV upload: {filename} ({len(coordinator.dataset.records)} rows)")
    return CsvUploadResponse(
        filename=filename,
        rows=len(coordinator.dataset.records),
        columns=coordinator.dataset.columns,
        success=True,
    )
