"""Content extraction endpoint: POST {documentId, filePath} with a bearer token."""
import json
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from docchat.database import get_db
from docchat.errors import InvalidInputError
from docchat.schemas import ExtractResponse
from docchat.services.auth_service import get_current_user_id
from docchat.services.extraction_service import run_extraction

router = APIRouter(prefix="/api/v1", tags=["extraction"])


@router.post("/extract-content", response_model=ExtractResponse)
async def extract_document_content(
    request: Request,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    # Body is parsed by hand so malformed input answers 400, not 422
    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidInputError("Invalid JSON body") from None
    if not isinstance(body, dict):
        raise InvalidInputError("Invalid JSON body")
    content = await run_extraction(db, body.get("documentId"), body.get("filePath"), user_id)
    return ExtractResponse(content=content)
