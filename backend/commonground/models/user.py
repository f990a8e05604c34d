# user models - signup, login, token and profile schemas

from typing import Optional
from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    email: str = Field(..., description="user email address")
    password: str = Field(..., min_length=8, description="plaintext password (min 8 chars)")
    display_name: str = Field(..., alias="displayName", min_length=1, max_length=50)

    model_config = {"populate_by_name": True}


class UserLogin(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")
    token_type: str = "bearer"

    model_config = {"populate_by_name": True}


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., alias="refreshToken")

    model_config = {"populate_by_name": True}


class UserResponse(BaseModel):
    id: str
    email: str
    display_name: str = Field(..., alias="displayName")
    email_verified: bool = Field(False, alias="emailVerified")
    created_at: str = Field(..., alias="createdAt")

    model_config = {"populate_by_name": True}


class UserSummary(BaseModel):
    """author block embedded in discussions and responses"""
    id: str
    display_name: Optional[str] = Field(None, alias="displayName")

    model_config = {"populate_by_name": True}
