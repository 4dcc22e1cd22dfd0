"""Chat over the user's documents: POST message -> LLM answer. Sessions and history."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from docchat.database import get_db
from docchat.llm_client import chat_once
from docchat.schemas import ChatMessageItem, ChatRequest, ChatResponse, ChatSessionItem
from docchat.services.auth_service import get_current_user_id
from docchat.services.chat_service import (
    build_document_context,
    create_session,
    get_context_documents,
    get_session,
    get_session_messages,
    get_session_messages_for_llm,
    list_sessions,
    phrase_question,
    save_message,
)
from docchat.services.prompt_loader import load_prompt


router = APIRouter(prefix="/api/v1/chat", tags=["chat"])


def _get_prompt() -> str:
    return load_prompt()


@router.post("", response_model=ChatResponse)
async def post_message(
    request: ChatRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    message_text = (request.message or "").strip()
    if not message_text:
        raise HTTPException(status_code=400, detail="message must not be empty")
    if request.session_id:
        session = await get_session(db, user_id, request.session_id)
        if not session:
            raise HTTPException(status_code=404, detail="Chat session not found")
    else:
        session = await create_session(db, user_id, message_text)

    history = await get_session_messages_for_llm(db, session.id, user_id)
    await save_message(db, user_id, session.id, "user", message_text)

    documents = await get_context_documents(db, user_id, request.document_ids)
    context, has_content = build_document_context(documents)
    system_prompt = _get_prompt() + context
    history.append({"role": "user", "content": phrase_question(message_text, has_content)})

    answer = await chat_once(system_prompt, history)
    await save_message(db, user_id, session.id, "assistant", answer)
    return ChatResponse(message=answer, session_id=session.id)


@router.get("/sessions", response_model=list[ChatSessionItem])
async def get_sessions(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    sessions = await list_sessions(db, user_id)
    return [ChatSessionItem.model_validate(s) for s in sessions]


@router.get("/sessions/{session_id:uuid}/messages", response_model=list[ChatMessageItem])
async def get_messages(
    session_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    session = await get_session(db, user_id, session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Chat session not found")
    messages = await get_session_messages(db, session.id, user_id)
    return [ChatMessageItem.model_validate(m) for m in messages]
