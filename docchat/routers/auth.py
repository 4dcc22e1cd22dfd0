"""Registration and login, JWT."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from docchat.database import get_db
from docchat.schemas import LoginRequest, LoginResponse, RegisterRequest, RegisterResponse
from docchat.services.auth_service import create_jwt, login_user, register_user

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    try:
        user = await register_user(db, body.email, body.password)
    except ValueError as e:
        if str(e) == "email_already_registered":
            raise HTTPException(status_code=400, detail="Email already registered")
        raise HTTPException(status_code=400, detail=str(e))
    return RegisterResponse(user_id=str(user.id))


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await login_user(db, body.email, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return LoginResponse(access_token=create_jwt(str(user.id)), user_id=str(user.id))
