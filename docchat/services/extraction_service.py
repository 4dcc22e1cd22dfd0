"""
Extraction pipeline: download a stored file, extract its text, persist the outcome.

One invocation handles one document and writes exactly one row update on every
terminal path except input validation and ownership failures. Nothing is
retried here; running it again with the same arguments overwrites the previous
outcome.
"""
import asyncio
import logging
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docchat.config import settings
from docchat.database import async_session_maker
from docchat.errors import (
    DocchatError,
    ExtractionTimeoutError,
    InfrastructureError,
    InvalidInputError,
    NotFoundError,
    UnprocessableError,
    UpstreamError,
)
from docchat.models import EXTRACTION_COMPLETE, EXTRACTION_FAILED
from docchat.services.content_extractor import extract_content
from docchat.services.document_service import get_document, save_extraction
from docchat.services.storage_service import get_file as storage_get_file
from docchat.services.text_cleaning import normalize_storage_path

logger = logging.getLogger(__name__)

DOWNLOAD_FAILED = "Failed to download file"
NOT_FOUND_FOR_USER = "Document not found for this user"
SAVE_FAILED = "Failed to save extracted content"


def parse_document_id(raw: object) -> UUID:
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidInputError("Missing 'documentId' (string)")
    try:
        return UUID(raw.strip())
    except ValueError:
        raise InvalidInputError("Invalid 'documentId'") from None


def parse_file_path(raw: object) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidInputError("Missing 'filePath' (string)")
    path = normalize_storage_path(raw.strip())
    if not path:
        raise InvalidInputError("Missing 'filePath' (string)")
    return path


async def _mark_failed(db: AsyncSession, user_id: UUID, document_id: UUID, reason: str) -> None:
    try:
        saved = await save_extraction(db, user_id, document_id, None, EXTRACTION_FAILED, reason)
    except SQLAlchemyError as e:
        logger.exception("Status update failed: document=%s", document_id)
        await db.rollback()
        raise InfrastructureError(SAVE_FAILED) from e
    if not saved:
        raise NotFoundError(NOT_FOUND_FOR_USER)


async def _extract_with_timeout(data: bytes, file_path: str, timeout: float) -> str:
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(extract_content, data, file_path, settings.max_output_chars),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        # The worker thread is not cancellable and finishes on its own
        raise ExtractionTimeoutError(timeout)


async def run_extraction(
    db: AsyncSession,
    document_id: object,
    file_path: object,
    user_id: UUID,
    timeout: float | None = None,
) -> str:
    """
    Runs the pipeline for one document owned by user_id and returns the content.
    file_path must be the storage key recorded on that document.

    Raises a DocchatError on every failure path; unexpected exceptions are
    converted, logged with document id and path.
    """
    doc_id = parse_document_id(document_id)
    path = parse_file_path(file_path)
    timeout = settings.extraction_timeout_seconds if timeout is None else timeout
    document = await get_document(db, user_id, doc_id)
    if document is None:
        raise NotFoundError(NOT_FOUND_FOR_USER)
    if normalize_storage_path(document.file_path) != path:
        logger.warning("Path does not match document: document=%s path=%s", doc_id, path)
        raise NotFoundError(NOT_FOUND_FOR_USER)
    logger.info("Extraction started: document=%s path=%s", doc_id, path)

    try:
        data = await asyncio.to_thread(storage_get_file, path)
    except Exception as e:
        logger.error("Download failed: document=%s path=%s error=%s", doc_id, path, e)
        await _mark_failed(db, user_id, doc_id, DOWNLOAD_FAILED)
        raise UpstreamError(DOWNLOAD_FAILED, {"path": path})

    try:
        content = await _extract_with_timeout(data, path, timeout)
    except UnprocessableError as e:
        error = e
    except Exception as e:
        logger.exception("Unexpected extraction error: document=%s path=%s", doc_id, path)
        error = UnprocessableError(str(e) or type(e).__name__)
    else:
        error = None

    if error is not None:
        logger.warning("Extraction failed: document=%s path=%s reason=%s", doc_id, path, error.message)
        await _mark_failed(db, user_id, doc_id, error.message)
        raise error

    try:
        saved = await save_extraction(db, user_id, doc_id, content, EXTRACTION_COMPLETE)
    except SQLAlchemyError as e:
        logger.exception("Update failed: document=%s", doc_id)
        await db.rollback()
        raise InfrastructureError(SAVE_FAILED) from e
    if not saved:
        raise NotFoundError(NOT_FOUND_FOR_USER)
    logger.info("Extraction complete: document=%s chars=%s", doc_id, len(content))
    return content


async def run_extraction_job(document_id: UUID, file_path: str, user_id: UUID) -> None:
    """Background body of the upload hand-off. Outcomes are only logged."""
    async with async_session_maker() as db:
        try:
            await run_extraction(db, str(document_id), file_path, user_id)
        except DocchatError as e:
            logger.warning("Background extraction ended with error: document=%s error=%s", document_id, e)


def trigger_extraction(
    background_tasks: BackgroundTasks,
    document_id: UUID,
    file_path: str,
    user_id: UUID,
) -> None:
    """One-way notification: schedules extraction after the response is sent."""
    background_tasks.add_task(run_extraction_job, document_id, file_path, user_id)
