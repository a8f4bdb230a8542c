"""
User-related Pydantic schemas.
"""

from pydantic import BaseModel, Field


class UserSignup(BaseModel):
    """Request to create a user."""

    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=6, max_length=50)
    full_name: str = Field(..., min_length=1, max_length=100)


class UserLogin(BaseModel):
    """Request to log in."""

    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=6, max_length=50)


class UserResponse(BaseModel):
    """User fields safe to return to clients."""

    id: str
    username: str
    full_name: str


class TokenResponse(BaseModel):
    """Access and refresh tokens."""

    access_token: str
    refresh_token: str


class LoginResponse(TokenResponse):
    """Tokens plus the logged-in user."""

    user: UserResponse
