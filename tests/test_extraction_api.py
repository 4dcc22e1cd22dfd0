"""Tests for POST /api/v1/extract-content (storage mocked)."""
import time
from unittest.mock import patch

import pytest
from fastapi import BackgroundTasks
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docchat.config import settings
from docchat.services.auth_service import create_jwt
from docchat.services.content_extractor import UNSUPPORTED_TYPE_MESSAGE
from docchat.services.extraction_service import run_extraction_job, trigger_extraction
from docchat.services.pdf_extractor import OCR_SUGGESTION
from pdf_samples import build_encrypted_pdf, build_pdf

URL = "/api/v1/extract-content"
GET_FILE = "docchat.services.extraction_service.storage_get_file"


@pytest.mark.asyncio
async def test_missing_auth_header_401_without_store_calls(async_client, user, make_document):
    doc = await make_document(user, f"{user.id}/a.txt")
    with patch(GET_FILE) as get_file:
        r = await async_client.post(URL, json={"documentId": str(doc.id), "filePath": doc.file_path})
    assert r.status_code == 401
    assert r.json() == {"error": "No authorization header"}
    get_file.assert_not_called()


@pytest.mark.asyncio
async def test_invalid_token_401(async_client):
    with patch(GET_FILE) as get_file:
        r = await async_client.post(
            URL,
            json={"documentId": "x", "filePath": "y"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
    assert r.status_code == 401
    get_file.assert_not_called()


@pytest.mark.asyncio
async def test_expired_token_401(async_client, user):
    token = create_jwt(str(user.id), expire_minutes=-1)
    r = await async_client.post(
        URL, json={"documentId": "x", "filePath": "y"}, headers={"Authorization": f"Bearer {token}"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b"[1, 2]",
        b'{"filePath": "a.txt"}',
        b'{"documentId": "", "filePath": "a.txt"}',
        b'{"documentId": "not-a-uuid", "filePath": "a.txt"}',
        b'{"documentId": "3f0e1c7e-2d7a-4c55-9f7b-1d2a3b4c5d6e"}',
        b'{"documentId": "3f0e1c7e-2d7a-4c55-9f7b-1d2a3b4c5d6e", "filePath": "///"}',
    ],
)
async def test_invalid_input_400(async_client, auth_headers, body):
    with patch(GET_FILE) as get_file:
        r = await async_client.post(
            URL, content=body, headers={**auth_headers, "Content-Type": "application/json"}
        )
    assert r.status_code == 400
    assert "error" in r.json()
    get_file.assert_not_called()


@pytest.mark.asyncio
async def test_text_document_complete(async_client, db_session, user, auth_headers, make_document):
    doc = await make_document(user, f"{user.id}/notes.txt")
    with patch(GET_FILE, return_value=b"hello\x00world\n\n\n\nbye") as get_file:
        r = await async_client.post(
            URL, json={"documentId": str(doc.id), "filePath": "/" + doc.file_path}, headers=auth_headers
        )
    assert r.status_code == 200
    assert r.json() == {"success": True, "content": "helloworld\n\nbye"}
    get_file.assert_called_once_with(doc.file_path)
    await db_session.refresh(doc)
    assert doc.extraction_status == "complete"
    assert doc.content == "helloworld\n\nbye"
    assert doc.failure_reason is None


@pytest.mark.asyncio
async def test_unsupported_type_is_success(async_client, db_session, user, auth_headers, make_document):
    doc = await make_document(user, f"{user.id}/thing.xyz")
    with patch(GET_FILE, return_value=b"\x00\x01"):
        r = await async_client.post(
            URL, json={"documentId": str(doc.id), "filePath": doc.file_path}, headers=auth_headers
        )
    assert r.status_code == 200
    assert r.json() == {"success": True, "content": UNSUPPORTED_TYPE_MESSAGE}
    await db_session.refresh(doc)
    assert doc.extraction_status == "complete"


@pytest.mark.asyncio
async def test_other_users_document_404_and_untouched(
    async_client, db_session, user, other_user, auth_headers, make_document
):
    doc = await make_document(other_user, f"{other_user.id}/private.txt")
    with patch(GET_FILE, return_value=b"secret"):
        r = await async_client.post(
            URL, json={"documentId": str(doc.id), "filePath": doc.file_path}, headers=auth_headers
        )
    assert r.status_code == 404
    assert r.json() == {"error": "Document not found for this user"}
    await db_session.refresh(doc)
    assert doc.extraction_status == "pending"
    assert doc.content is None


@pytest.mark.asyncio
async def test_foreign_file_path_on_own_document_404_without_download(
    async_client, db_session, user, other_user, auth_headers, make_document
):
    doc = await make_document(user, f"{user.id}/mine.txt")
    foreign = await make_document(other_user, f"{other_user.id}/private.txt")
    with patch(GET_FILE, return_value=b"bob's secret") as get_file:
        r = await async_client.post(
            URL, json={"documentId": str(doc.id), "filePath": foreign.file_path}, headers=auth_headers
        )
    assert r.status_code == 404
    assert r.json() == {"error": "Document not found for this user"}
    get_file.assert_not_called()
    await db_session.refresh(doc)
    assert doc.extraction_status == "pending"
    assert doc.content is None


@pytest.mark.asyncio
async def test_download_failure_502_and_row_failed(async_client, db_session, user, auth_headers, make_document):
    doc = await make_document(user, f"{user.id}/gone.pdf")
    with patch(GET_FILE, side_effect=RuntimeError("NoSuchKey")):
        r = await async_client.post(
            URL, json={"documentId": str(doc.id), "filePath": doc.file_path}, headers=auth_headers
        )
    assert r.status_code == 502
    assert r.json() == {"error": "Failed to download file"}
    await db_session.refresh(doc)
    assert doc.extraction_status == "failed"
    assert doc.failure_reason == "Failed to download file"
    assert doc.content is None


@pytest.mark.asyncio
async def test_encrypted_pdf_422(async_client, db_session, user, auth_headers, make_document):
    doc = await make_document(user, f"{user.id}/locked.pdf")
    with patch(GET_FILE, return_value=build_encrypted_pdf()):
        r = await async_client.post(
            URL, json={"documentId": str(doc.id), "filePath": doc.file_path}, headers=auth_headers
        )
    assert r.status_code == 422
    assert "password" in r.json()["error"].lower()
    await db_session.refresh(doc)
    assert doc.extraction_status == "failed"
    assert "encrypted" in doc.failure_reason.lower()
    assert doc.content is None


@pytest.mark.asyncio
async def test_oversized_pdf_422(async_client, db_session, user, auth_headers, make_document):
    doc = await make_document(user, f"{user.id}/huge.pdf")
    pdf = build_pdf([[((72, 72), "p")]] * 4)
    with patch(GET_FILE, return_value=pdf), patch.object(settings, "max_pdf_pages", 3):
        r = await async_client.post(
            URL, json={"documentId": str(doc.id), "filePath": doc.file_path}, headers=auth_headers
        )
    assert r.status_code == 422
    assert r.json() == {"error": "PDF has 4 pages (limit 3)."}
    await db_session.refresh(doc)
    assert doc.extraction_status == "failed"
    assert doc.failure_reason == "PDF has 4 pages (limit 3)."


@pytest.mark.asyncio
async def test_image_only_pdf_complete_with_ocr_message(
    async_client, db_session, user, auth_headers, make_document
):
    doc = await make_document(user, f"{user.id}/scan.pdf")
    with patch(GET_FILE, return_value=build_pdf([[], []])):
        r = await async_client.post(
            URL, json={"documentId": str(doc.id), "filePath": doc.file_path}, headers=auth_headers
        )
    assert r.status_code == 200
    assert r.json()["content"] == OCR_SUGGESTION
    await db_session.refresh(doc)
    assert doc.extraction_status == "complete"
    assert doc.content == OCR_SUGGESTION


@pytest.mark.asyncio
async def test_timeout_marks_failed(async_client, db_session, user, auth_headers, make_document):
    doc = await make_document(user, f"{user.id}/slow.txt")

    def slow_extract(*args, **kwargs):
        time.sleep(0.5)
        return "late"

    with patch(GET_FILE, return_value=b"data"), \
            patch("docchat.services.extraction_service.extract_content", side_effect=slow_extract), \
            patch.object(settings, "extraction_timeout_seconds", 0.05):
        r = await async_client.post(
            URL, json={"documentId": str(doc.id), "filePath": doc.file_path}, headers=auth_headers
        )
    assert r.status_code == 422
    assert "timed out" in r.json()["error"]
    await db_session.refresh(doc)
    assert doc.extraction_status == "failed"
    assert "timed out" in doc.failure_reason


@pytest.mark.asyncio
async def test_rerun_overwrites_previous_outcome(async_client, db_session, user, auth_headers, make_document):
    doc = await make_document(user, f"{user.id}/again.txt", extraction_status="failed", failure_reason="old")
    with patch(GET_FILE, return_value=b"fresh text"):
        r = await async_client.post(
            URL, json={"documentId": str(doc.id), "filePath": doc.file_path}, headers=auth_headers
        )
    assert r.status_code == 200
    await db_session.refresh(doc)
    assert (doc.extraction_status, doc.content, doc.failure_reason) == ("complete", "fresh text", None)


@pytest.mark.asyncio
async def test_cors_preflight(async_client):
    r = await async_client.options(
        URL,
        headers={
            "Origin": "https://client.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, content-type",
        },
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"
    assert "authorization" in r.headers["access-control-allow-headers"].lower()


@pytest.mark.asyncio
async def test_get_not_allowed(async_client):
    r = await async_client.get(URL)
    assert r.status_code == 405


def test_trigger_extraction_schedules_background_job():
    tasks = BackgroundTasks()
    trigger_extraction(tasks, "doc-id", "u/a.txt", "user-id")
    assert len(tasks.tasks) == 1
    assert tasks.tasks[0].func is run_extraction_job
    assert tasks.tasks[0].args == ("doc-id", "u/a.txt", "user-id")


@pytest.mark.asyncio
async def test_background_job_logs_failures_without_raising(engine, db_session, user, make_document):
    doc = await make_document(user, f"{user.id}/missing.txt")
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    with patch("docchat.services.extraction_service.async_session_maker", session_maker), \
            patch(GET_FILE, side_effect=RuntimeError("boom")):
        await run_extraction_job(doc.id, doc.file_path, user.id)
    await db_session.refresh(doc)
    assert doc.extraction_status == "failed"


@pytest.mark.asyncio
async def test_background_job_completes_document(engine, db_session, user, make_document):
    doc = await make_document(user, f"{user.id}/ok.md")
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    with patch("docchat.services.extraction_service.async_session_maker", session_maker), \
            patch(GET_FILE, return_value=b"# Notes\n\n\n\nbody"):
        await run_extraction_job(doc.id, doc.file_path, user.id)
    await db_session.refresh(doc)
    assert doc.extraction_status == "complete"
    assert doc.content == "# Notes\n\nbody"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "get_file_kwargs",
    [
        {"side_effect": RuntimeError("NoSuchKey")},
        {"return_value": build_encrypted_pdf()},
    ],
)
async def test_failed_status_write_500(async_client, user, auth_headers, make_document, get_file_kwargs):
    doc = await make_document(user, f"{user.id}/report.pdf")
    with patch(GET_FILE, **get_file_kwargs), \
            patch(
                "docchat.services.extraction_service.save_extraction",
                side_effect=SQLAlchemyError("connection lost"),
            ):
        r = await async_client.post(
            URL, json={"documentId": str(doc.id), "filePath": doc.file_path}, headers=auth_headers
        )
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to save extracted content"}
