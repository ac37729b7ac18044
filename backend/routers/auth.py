# routers/auth.py — Registration, login, token rotation and logout
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import (
    AuthService, UserRegister, UserLogin, TokenResponse, RefreshRequest,
    ACCESS_TOKEN_EXPIRE_MINUTES, get_current_user, get_token_payload, CurrentUser,
)
from database import get_db_session
from models import User
from schemas import user_out

logger = logging.getLogger("sprintboard.auth")

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _build_token_response(user_obj: User) -> TokenResponse:
    """Issue a fresh token pair for ``user_obj``; the caller commits."""
    access_token, refresh_token = AuthService.issue_tokens(user_obj)
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=user_out(user_obj).model_dump(),
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db_session),
):
    """Register a new user account"""
    user = await AuthService.register_user(user_data, db)
    response = _build_token_response(user)
    await db.commit()
    return response


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db_session),
):
    """Authenticate and receive tokens"""
    user = await AuthService.authenticate_user(credentials.email, credentials.password, db)
    response = _build_token_response(user)
    await db.commit()
    logger.info(f"User {user.id} logged in")
    return response


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    refresh_req: RefreshRequest,
    db: AsyncSession = Depends(get_db_session),
):
    """Exchange a refresh secret for a new pair; the old secret stops working"""
    user = await AuthService.user_for_refresh_token(refresh_req.refresh_token, db)
    response = _build_token_response(user)
    await db.commit()
    return response


@router.post("/logout")
async def logout(
    payload: dict = Depends(get_token_payload),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Revoke the presented access token and drop the refresh secret"""
    expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    AuthService.revoke_token(payload["jti"], user.id, expires_at, db)

    db_user = await db.get(User, user.id)
    db_user.refresh_token_hash = None
    await db.commit()

    logger.info(f"User {user.id} logged out")
    return {"message": "Logged out successfully"}


@router.get("/me")
async def get_current_user_info(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Get current authenticated user information"""
    db_user = await db.get(User, user.id)
    return {"user": user_out(db_user).model_dump()}
