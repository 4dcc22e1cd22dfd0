"""Chat: sessions, messages, document context for the LLM."""
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from docchat.models import EXTRACTION_COMPLETE, ChatMessage, ChatSession, Document

TITLE_MAX_CHARS = 50


def make_title(message: str) -> str:
    title = message[:TITLE_MAX_CHARS]
    if len(message) > TITLE_MAX_CHARS:
        title += "..."
    return title


async def get_session(db: AsyncSession, user_id: UUID, session_id: UUID) -> ChatSession | None:
    result = await db.execute(
        select(ChatSession).where(
            ChatSession.id == session_id,
            ChatSession.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def create_session(db: AsyncSession, user_id: UUID, first_message: str) -> ChatSession:
    session = ChatSession(user_id=user_id, title=make_title(first_message))
    db.add(session)
    await db.flush()
    return session


async def list_sessions(db: AsyncSession, user_id: UUID) -> list[ChatSession]:
    result = await db.execute(
        select(ChatSession)
        .where(ChatSession.user_id == user_id)
        .order_by(ChatSession.created_at.desc())
    )
    return list(result.scalars().all())


async def save_message(
    db: AsyncSession,
    user_id: UUID,
    session_id: UUID,
    role: str,
    content: str,
) -> ChatMessage:
    last_seq = (
        await db.execute(select(func.max(ChatMessage.seq)).where(ChatMessage.session_id == session_id))
    ).scalar()
    msg = ChatMessage(
        session_id=session_id,
        user_id=user_id,
        seq=(last_seq or 0) + 1,
        role=role,
        content=content,
    )
    db.add(msg)
    await db.flush()
    return msg


async def get_session_messages(db: AsyncSession, session_id: UUID, user_id: UUID) -> list[ChatMessage]:
    result = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.session_id == session_id, ChatMessage.user_id == user_id)
        .order_by(ChatMessage.seq)
    )
    return list(result.scalars().all())


async def get_session_messages_for_llm(db: AsyncSession, session_id: UUID, user_id: UUID) -> list[dict[str, str]]:
    rows = await get_session_messages(db, session_id, user_id)
    return [{"role": m.role, "content": m.content} for m in rows]


async def get_context_documents(
    db: AsyncSession,
    user_id: UUID,
    document_ids: list[UUID] | None,
) -> list[Document]:
    """Selected documents, or all of the user's documents when nothing is selected."""
    q = select(Document).where(Document.user_id == user_id)
    if document_ids:
        q = q.where(Document.id.in_(document_ids))
    result = await db.execute(q.order_by(Document.upload_date.desc()))
    return list(result.scalars().all())


def build_document_context(documents: list[Document]) -> tuple[str, bool]:
    """Returns (context text, whether any document has extracted content)."""
    if not documents:
        return "", False
    with_content = [
        d for d in documents
        if d.extraction_status == EXTRACTION_COMPLETE and d.content and d.content.strip()
    ]
    if with_content:
        parts = [f"Document: {d.name}\nContent: {d.content}" for d in with_content]
        return "\n\nHere are the uploaded documents:\n" + "\n\n".join(parts), True
    names = ", ".join(d.name for d in documents)
    return (
        f"\n\nDocuments uploaded: {names}, but content extraction is still in progress or failed.",
        False,
    )


def phrase_question(message: str, has_content: bool) -> str:
    if has_content:
        return f"Here is my question about the documents: {message}"
    return message
