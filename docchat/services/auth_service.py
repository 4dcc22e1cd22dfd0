"""Registration, login, JWT bearer tokens."""
from datetime import datetime, timezone, timedelta
from uuid import UUID

import bcrypt
import jwt
from fastapi import Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docchat.config import settings
from docchat.errors import UnauthenticatedError
from docchat.models import User

BCRYPT_MAX_PASSWORD_BYTES = 72


def _password_bytes(password: str) -> bytes:
    """Bcrypt accepts at most 72 bytes; truncate to avoid error."""
    return password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]


def hash_password(password: str) -> str:
    raw = _password_bytes(password)
    return bcrypt.hashpw(raw, bcrypt.gensalt()).decode("ascii")


def verify_password(plain: str, hashed: str) -> bool:
    raw = _password_bytes(plain)
    return bcrypt.checkpw(raw, hashed.encode("ascii"))


def create_jwt(user_id: str, expire_minutes: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    minutes = expire_minutes if expire_minutes is not None else settings.jwt_expire_minutes
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(
        payload,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def decode_jwt(token: str) -> dict | None:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.PyJWTError:
        return None


def get_current_user_id(authorization: str | None = Header(None)) -> UUID:
    """Resolves the bearer token to a user id. Runs before any store access."""
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthenticatedError("No authorization header")
    token = authorization[len("Bearer "):].strip()
    payload = decode_jwt(token) if token else None
    if not payload or not payload.get("sub"):
        raise UnauthenticatedError("Unauthorized")
    try:
        return UUID(str(payload["sub"]))
    except ValueError:
        raise UnauthenticatedError("Unauthorized") from None


async def register_user(db: AsyncSession, email: str, password: str) -> User:
    email_norm = email.lower().strip()
    existing = (
        await db.execute(select(User).where(User.email == email_norm))
    ).scalar_one_or_none()
    if existing:
        raise ValueError("email_already_registered")
    user = User(email=email_norm, password_hash=hash_password(password))
    db.add(user)
    await db.flush()
    return user


async def login_user(db: AsyncSession, email: str, password: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower().strip()))
    user = result.scalar_one_or_none()
    if not user or not verify_password(password, user.password_hash):
        return None
    return user
