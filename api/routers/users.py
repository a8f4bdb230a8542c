"""
User endpoints: signup, login, logout and token refresh.
"""

import logging

from fastapi import APIRouter, Depends, status

from api.dependencies import get_auth_manager, get_current_user, get_refresh_token_payload
from api.schemas.common import MessageResponse, error_responses
from api.schemas.user import LoginResponse, TokenResponse, UserLogin, UserResponse, UserSignup
from movie_catalog.auth import AuthManager
from movie_catalog.models import UserData

router = APIRouter(prefix="/users", responses=error_responses(401, 409, 422))
logger = logging.getLogger("api.users")


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def signup(
    body: UserSignup,
    auth: AuthManager = Depends(get_auth_manager),
):
    """
    Create a user. Usernames are unique.
    """
    user = auth.sign_up(body.username, body.password, body.full_name)
    logger.info(f"User signed up: user_id={user.id}")
    return user.to_public_dict()


@router.post("/login", response_model=LoginResponse)
def login(
    body: UserLogin,
    auth: AuthManager = Depends(get_auth_manager),
):
    """
    Exchange credentials for an access and refresh token pair.
    """
    tokens, user = auth.login(body.username, body.password)
    return {**tokens.to_dict(), "user": user.to_public_dict()}


@router.post("/logout", response_model=MessageResponse)
def logout(
    user: UserData = Depends(get_current_user),
    auth: AuthManager = Depends(get_auth_manager),
):
    """
    Revoke the user's refresh token.
    """
    auth.logout(user.id)
    return {"message": "successfully logged out"}


@router.get("/refresh", response_model=TokenResponse)
def refresh(
    payload: dict = Depends(get_refresh_token_payload),
    auth: AuthManager = Depends(get_auth_manager),
):
    """
    Rotate tokens. Send the refresh token as the bearer token.
    """
    tokens = auth.refresh_tokens(payload["sub"], payload["token"])
    return tokens.to_dict()
