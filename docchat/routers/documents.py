"""Documents: upload (then extraction in background), list, get, download URL, delete."""
import logging
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from docchat.config import settings
from docchat.database import get_db
from docchat.errors import UpstreamError
from docchat.schemas import DocumentListItem, DocumentResponse, DownloadUrlResponse
from docchat.services.auth_service import get_current_user_id
from docchat.services.document_service import create_document, delete_document, get_document, list_documents
from docchat.services.extraction_service import trigger_extraction
from docchat.services.storage_service import get_file_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/documents", tags=["documents"])


@router.post("", response_model=DocumentResponse, status_code=201)
async def upload_document(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="File is empty")
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File is too large. Maximum {settings.max_upload_bytes // (1024 * 1024)} MB.",
        )
    filename = (file.filename or "document").strip() or "document"
    content_type = file.content_type or "application/octet-stream"
    try:
        doc = await create_document(db, user_id, filename, content_type, data)
    except Exception as e:
        logger.warning("Upload failed: user=%s file=%s error=%s", user_id, filename, e)
        raise UpstreamError("Failed to store file") from e
    # Row must be visible to the background session
    await db.commit()
    trigger_extraction(background_tasks, doc.id, doc.file_path, user_id)
    logger.info("Uploaded document=%s path=%s size=%s", doc.id, doc.file_path, doc.file_size)
    return DocumentResponse.model_validate(doc)


@router.get("", response_model=list[DocumentListItem])
async def get_documents(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    docs = await list_documents(db, user_id)
    return [DocumentListItem.model_validate(d) for d in docs]


@router.get("/{document_id:uuid}", response_model=DocumentResponse)
async def get_document_detail(
    document_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    doc = await get_document(db, user_id, document_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")
    return DocumentResponse.model_validate(doc)


@router.get("/{document_id:uuid}/download", response_model=DownloadUrlResponse)
async def get_download_url(
    document_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    doc = await get_document(db, user_id, document_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")
    return DownloadUrlResponse(url=get_file_url(doc.file_path))


@router.delete("/{document_id:uuid}", status_code=204)
async def remove_document(
    document_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    if not await delete_document(db, user_id, document_id):
        raise HTTPException(status_code=404, detail="Document not found")
    return Response(status_code=204)
