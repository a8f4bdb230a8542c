"""
User authentication.

Passwords are hashed with bcrypt; access and refresh tokens are HS256
JWTs signed with separate secrets. The current refresh token is stored
on the user row so logout and rotation can revoke it.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Tuple

import bcrypt
import jwt

from .config import Config
from .database import DatabaseManager
from .exceptions import AuthenticationError
from .models import TokenPair, UserData
from .utils import setup_logger

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class AuthManager:
    """Sign-up, login, logout and token handling."""

    def __init__(self, config: Config, db: DatabaseManager):
        self.config = config
        self.db = db
        self.logger = setup_logger("auth", config.log_dir)

    # ============ PASSWORDS ============

    def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.config.bcrypt_salt_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            # Stored value is not a bcrypt hash
            return False

    # ============ USER FLOWS ============

    def sign_up(self, username: str, password: str, full_name: str) -> UserData:
        """
        Create a user with a hashed password.

        Raises:
            ConflictError: If the username is taken.
        """
        user = self.db.create_user(username, self.hash_password(password), full_name)
        self.logger.info(f"Signed up user_id={user.id}")
        return user

    def login(self, username: str, password: str) -> Tuple[TokenPair, UserData]:
        """
        Check credentials and issue a token pair.

        Raises:
            AuthenticationError: On unknown username or wrong password.
        """
        user = self.db.get_user_by_username(username)
        if user is None or not self.verify_password(password, user.password):
            self.logger.warning("Login failed: invalid credentials")
            raise AuthenticationError("Invalid credentials")

        tokens = self._issue_tokens(user)
        self.logger.info(f"Logged in user_id={user.id}")
        return tokens, user

    def logout(self, user_id: str) -> None:
        self.db.set_refresh_token(user_id, None)
        self.logger.info(f"Logged out user_id={user_id}")

    def refresh_tokens(self, user_id: str, refresh_token: str) -> TokenPair:
        """
        Rotate the token pair.

        Raises:
            AuthenticationError: If the token is not the one stored for the user.
        """
        user = self.db.get_user_with_refresh_token(user_id, refresh_token)
        if user is None:
            self.logger.warning(f"Refresh rejected for user_id={user_id}")
            raise AuthenticationError("Invalid refresh token")
        return self._issue_tokens(user)

    def _issue_tokens(self, user: UserData) -> TokenPair:
        tokens = TokenPair(
            access_token=self._encode(
                user,
                ACCESS_TOKEN_TYPE,
                self.config.jwt_secret_key,
                self.config.jwt_access_expire_minutes,
            ),
            refresh_token=self._encode(
                user,
                REFRESH_TOKEN_TYPE,
                self.config.jwt_refresh_secret_key,
                self.config.jwt_refresh_expire_minutes,
            ),
        )
        self.db.set_refresh_token(user.id, tokens.refresh_token)
        return tokens

    # ============ TOKENS ============

    def _encode(self, user: UserData, token_type: str, secret: str, expire_minutes: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user.id,
            "username": user.username,
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + timedelta(minutes=expire_minutes),
        }
        return jwt.encode(payload, secret, algorithm=self.config.jwt_algorithm)

    def _decode(self, token: str, secret: str, token_type: str) -> dict:
        try:
            payload = jwt.decode(token, secret, algorithms=[self.config.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token")

        if payload.get("type") != token_type or not payload.get("sub"):
            raise AuthenticationError("Invalid token")
        return payload

    def decode_access_token(self, token: str) -> dict:
        return self._decode(token, self.config.jwt_secret_key, ACCESS_TOKEN_TYPE)

    def decode_refresh_token(self, token: str) -> dict:
        return self._decode(token, self.config.jwt_refresh_secret_key, REFRESH_TOKEN_TYPE)
