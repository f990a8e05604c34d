# auth router - signup, login, token refresh and current user

import logging
from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends, HTTPException, status

from commonground.models.user import UserCreate, UserLogin, TokenResponse, RefreshRequest, UserResponse
from commonground.services.auth_service import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token,
)
from commonground.services.db import Database, get_db
from commonground.dependencies import get_current_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


def _issue_tokens(user_id: str) -> TokenResponse:
    return TokenResponse(
        accessToken=create_access_token({"sub": user_id}),
        refreshToken=create_refresh_token({"sub": user_id}),
    )


def _doc_to_user(doc: dict) -> UserResponse:
    return UserResponse(
        id=doc.get("id", str(doc.get("_id", ""))),
        email=doc.get("email", ""),
        displayName=doc.get("display_name", ""),
        emailVerified=doc.get("email_verified", False),
        createdAt=doc.get("created_at", ""),
    )


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(body: UserCreate, db: Database = Depends(get_db)):
    """register a new user. accounts start unverified."""
    email = body.email.strip().lower()

    existing = await db.users.find_one({"email": email})
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    doc = {
        "email": email,
        "hashed_password": hash_password(body.password),
        "display_name": body.display_name,
        "email_verified": False,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    result = await db.users.insert_one(doc)
    user_id = str(result.inserted_id)

    logger.info(f"User registered: {user_id}")
    return _issue_tokens(user_id)


@router.post("/login", response_model=TokenResponse)
async def login(body: UserLogin, db: Database = Depends(get_db)):
    """exchange email and password for tokens"""
    user = await db.users.find_one({"email": body.email.strip().lower()})
    if not user or not verify_password(body.password, user.get("hashed_password", "")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    logger.info(f"User logged in: {user['_id']}")
    return _issue_tokens(str(user["_id"]))


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: Database = Depends(get_db)):
    """trade a refresh token for a fresh token pair"""
    payload = decode_token(body.refresh_token)
    if payload is None or payload.get("type") != "refresh" or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )

    try:
        user = await db.users.find_one({"_id": ObjectId(payload["sub"])})
    except InvalidId:
        user = None
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return _issue_tokens(payload["sub"])


@router.get("/me", response_model=UserResponse)
async def me(current_user: dict = Depends(get_current_user)):
    return _doc_to_user(current_user)
