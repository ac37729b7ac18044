# auth.py — Authentication for Sprintboard
# Features:
# - JWT access tokens with JTI for revocation
# - Rotating refresh secrets, stored only as SHA-256 hashes
# - Two roles (PM, MEMBER); authorization lives in policy.py

import os
import uuid
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple

import bcrypt
from jose import jwt, JWTError, ExpiredSignatureError
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db_session
from exceptions import AuthenticationError, ValidationError
from models import User, UserRole, RevokedToken, enum_value

logger = logging.getLogger("sprintboard.auth")

# ============================================================
# CONFIGURATION
# ============================================================

SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
if not SECRET_KEY or SECRET_KEY == "change-this-to-a-secure-random-key-in-production":
    SECRET_KEY = secrets.token_urlsafe(64)
    logger.warning(
        "JWT_SECRET_KEY not set or insecure. Generated ephemeral key. "
        "Set JWT_SECRET_KEY in production!"
    )

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
MIN_PASSWORD_LENGTH = 6
# bcrypt rejects longer inputs
MAX_PASSWORD_BYTES = 72

# auto_error=False so a missing header is a 401 like any other bad token
security = HTTPBearer(auto_error=False)


# ============================================================
# PYDANTIC SCHEMAS
# ============================================================

class UserRegister(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    title: Optional[str] = Field(default=None, max_length=255)
    email: EmailStr
    password: str
    role: UserRole = UserRole.MEMBER

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must not be greater than {MAX_PASSWORD_BYTES} bytes")
        return v


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    user: Optional[Dict[str, Any]] = None


class CurrentUser(BaseModel):
    id: str
    email: str
    full_name: str
    title: Optional[str] = None
    role: str
    is_active: bool


# ============================================================
# AUTH SERVICE
# ============================================================

class AuthService:
    """Credential checks and token issuance"""

    @staticmethod
    def hash_password(password: str) -> str:
        salt = bcrypt.gensalt(rounds=12)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))

    @staticmethod
    def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        now = datetime.now(timezone.utc)
        to_encode.update({
            "exp": now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)),
            "iat": now,
            "type": "access",
            "jti": str(uuid.uuid4()),
        })
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise AuthenticationError("Token expired")
        except JWTError:
            raise AuthenticationError("Invalid token")

    @staticmethod
    def hash_refresh_token(raw_token: str) -> str:
        return hashlib.sha256(raw_token.encode()).hexdigest()

    @staticmethod
    def generate_refresh_token() -> Tuple[str, str]:
        """Returns (raw_token, token_hash); only the hash is persisted."""
        raw_token = secrets.token_urlsafe(48)
        return raw_token, AuthService.hash_refresh_token(raw_token)

    @staticmethod
    def token_claims(user: User) -> Dict[str, Any]:
        return {"sub": user.id, "email": user.email, "role": enum_value(user.role)}

    @staticmethod
    def issue_tokens(user: User) -> Tuple[str, str]:
        """Create an access token and a fresh refresh secret for ``user``.

        Sets ``user.refresh_token_hash``; the caller commits.
        """
        access_token = AuthService.create_access_token(AuthService.token_claims(user))
        refresh_token, refresh_hash = AuthService.generate_refresh_token()
        user.refresh_token_hash = refresh_hash
        return access_token, refresh_token

    @staticmethod
    async def register_user(user_data: UserRegister, db: AsyncSession) -> User:
        stmt = select(User).where(User.email == user_data.email)
        result = await db.execute(stmt)
        if result.scalar_one_or_none():
            raise ValidationError("The email has already been taken.")

        new_user = User(
            full_name=user_data.full_name,
            title=user_data.title,
            email=user_data.email,
            password_hash=AuthService.hash_password(user_data.password),
            role=user_data.role,
            is_active=True,
        )
        db.add(new_user)
        await db.flush()
        logger.info(f"Registered user {new_user.id} ({enum_value(new_user.role)})")
        return new_user

    @staticmethod
    async def authenticate_user(email: str, password: str, db: AsyncSession) -> User:
        stmt = select(User).where(User.email == email)
        result = await db.execute(stmt)
        user = result.scalar_one_or_none()

        if not user or not AuthService.verify_password(password, user.password_hash):
            raise AuthenticationError("The provided credentials are incorrect.")
        if not user.is_active:
            raise AuthenticationError("Your account has been deactivated.")
        return user

    @staticmethod
    async def user_for_refresh_token(raw_token: str, db: AsyncSession) -> User:
        token_hash = AuthService.hash_refresh_token(raw_token)
        stmt = select(User).where(User.refresh_token_hash == token_hash)
        result = await db.execute(stmt)
        user = result.scalar_one_or_none()
        if not user or not user.is_active:
            raise AuthenticationError("Invalid refresh token.")
        return user

    @staticmethod
    async def is_token_revoked(jti: str, db: AsyncSession) -> bool:
        stmt = select(RevokedToken).where(RevokedToken.jti == jti)
        result = await db.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    def revoke_token(jti: str, user_id: str, expires_at: datetime, db: AsyncSession) -> None:
        db.add(RevokedToken(jti=jti, user_id=user_id, expires_at=expires_at))


# ============================================================
# FASTAPI DEPENDENCIES
# ============================================================

async def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    if credentials is None:
        raise AuthenticationError("Unauthenticated.")

    payload = AuthService.verify_token(credentials.credentials)
    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    jti = payload.get("jti")
    if jti and await AuthService.is_token_revoked(jti, db):
        raise AuthenticationError("Token has been revoked")
    return payload


async def get_current_user(
    payload: Dict[str, Any] = Depends(get_token_payload),
    db: AsyncSession = Depends(get_db_session),
) -> CurrentUser:
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token")

    stmt = select(User).where(User.id == user_id)
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    return CurrentUser(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        title=user.title,
        role=enum_value(user.role),
        is_active=user.is_active,
    )
