"""Pydantic schemas for API."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# Auth
class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class RegisterResponse(BaseModel):
    user_id: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str


# Extraction (wire names follow the client contract)
class ExtractResponse(BaseModel):
    success: bool = True
    content: str


# Documents
class DocumentListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    file_path: str
    file_type: str | None
    file_size: int
    upload_date: datetime
    extraction_status: str
    failure_reason: str | None = None


class DocumentResponse(DocumentListItem):
    content: str | None = None


class DownloadUrlResponse(BaseModel):
    url: str


# Chat
class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    session_id: UUID | None = None
    document_ids: list[UUID] | None = None


class ChatResponse(BaseModel):
    message: str
    session_id: UUID


class ChatSessionItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    created_at: datetime


class ChatMessageItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role: str
    content: str
    created_at: datetime
