"""Documents: rows in the database, blobs in MinIO."""
import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docchat.models import (
    EXTRACTION_COMPLETE,
    EXTRACTION_FAILED,
    EXTRACTION_PENDING,
    FAILURE_REASON_MAX_CHARS,
    Document,
)
from docchat.services.storage_service import delete_file as storage_delete, upload_file as storage_upload

logger = logging.getLogger(__name__)


async def list_documents(db: AsyncSession, user_id: UUID) -> list[Document]:
    result = await db.execute(
        select(Document)
        .where(Document.user_id == user_id)
        .order_by(Document.upload_date.desc())
    )
    return list(result.scalars().all())


async def get_document(db: AsyncSession, user_id: UUID, document_id: UUID) -> Document | None:
    result = await db.execute(
        select(Document).where(
            Document.id == document_id,
            Document.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def get_documents_by_ids(db: AsyncSession, user_id: UUID, document_ids: list[UUID]) -> list[Document]:
    if not document_ids:
        return []
    result = await db.execute(
        select(Document)
        .where(Document.user_id == user_id, Document.id.in_(document_ids))
        .order_by(Document.upload_date.desc())
    )
    return list(result.scalars().all())


async def create_document(
    db: AsyncSession,
    user_id: UUID,
    filename: str,
    content_type: str,
    data: bytes,
) -> Document:
    """Stores the blob and inserts a pending row."""
    file_path = storage_upload(str(user_id), filename, content_type, data)
    doc = Document(
        user_id=user_id,
        name=filename[:512],
        file_path=file_path,
        file_type=content_type,
        file_size=len(data),
        content=None,
        extraction_status=EXTRACTION_PENDING,
        failure_reason=None,
    )
    db.add(doc)
    await db.flush()
    return doc


async def delete_document(db: AsyncSession, user_id: UUID, document_id: UUID) -> bool:
    doc = await get_document(db, user_id, document_id)
    if not doc:
        return False
    storage_delete(doc.file_path)
    await db.delete(doc)
    await db.flush()
    return True


async def save_extraction(
    db: AsyncSession,
    user_id: UUID,
    document_id: UUID,
    content: str | None,
    status: str,
    failure_reason: str | None = None,
) -> bool:
    """
    Writes the extraction outcome in one UPDATE scoped by (id, user_id) and commits.
    Returns False when no row matched (missing or owned by another user).
    """
    if status == EXTRACTION_COMPLETE:
        values = {"extraction_status": status, "content": content, "failure_reason": None}
    else:
        values = {
            "extraction_status": EXTRACTION_FAILED,
            "content": None,
            "failure_reason": (failure_reason or "")[:FAILURE_REASON_MAX_CHARS] or None,
        }
    result = await db.execute(
        update(Document)
        .where(Document.id == document_id, Document.user_id == user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount > 0
