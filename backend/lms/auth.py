"""Authentication helpers and FastAPI security dependencies.

This module hashes passwords, issues and decodes JWT tokens, and provides
the `get_current_user` dependency that validates the bearer token and
returns the corresponding `User` from the database.

Token verification raises `AuthError`, which the application's exception
handlers turn into a 401 envelope.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlmodel import Session

from . import models, repositories
from .config import Settings
from .database import get_session
from .errors import AuthError

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return PWD_CTX.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    # OAuth-only accounts have no local password
    if not password_hash:
        return False
    return PWD_CTX.verify(password, password_hash)


def _encode(payload: dict, settings: Settings, lifetime: timedelta) -> str:
    expire = datetime.now(timezone.utc) + lifetime
    payload = dict(payload, exp=int(expire.timestamp()))
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user: models.User, settings: Settings) -> str:
    """Signed access token carrying the user id and role."""
    payload = {"user_id": user.id, "role": user.role, "type": "access"}
    return _encode(payload, settings, timedelta(hours=settings.JWT_EXPIRE_HOURS))


def create_refresh_token(user: models.User, settings: Settings) -> str:
    payload = {"user_id": user.id, "type": "refresh"}
    return _encode(payload, settings, timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS))


def create_verification_token(user: models.User, settings: Settings) -> str:
    payload = {"user_id": user.id, "type": "verify"}
    return _encode(payload, settings, timedelta(hours=24))


def issue_tokens(user: models.User, settings: Settings) -> dict:
    return {
        "access": create_access_token(user, settings),
        "refresh": create_refresh_token(user, settings),
    }


def decode_token(token: str, settings: Settings, expected_type: str = "access") -> dict:
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises `AuthError` when the
    token is expired, malformed or of the wrong type.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.PyJWTError:
        raise AuthError("Invalid token")
    if payload.get("type") != expected_type:
        raise AuthError("Invalid token type")
    if not payload.get("user_id"):
        raise AuthError("Invalid token payload")
    return payload


def _resolve_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    session: Session,
) -> models.User:
    if credentials is None or not credentials.credentials:
        raise AuthError("Not authorized, no token provided")
    payload = decode_token(credentials.credentials, request.app.state.settings)
    user = repositories.UserRepository(session).get(payload["user_id"])
    if user is None:
        raise AuthError("User not found")
    if not user.is_active:
        raise AuthError("Account is deactivated")
    return user


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> models.User:
    """FastAPI dependency that returns the authenticated user.

    The user is loaded through the request's own session so services can
    keep working with the instance after the dependency returns.
    """
    return _resolve_user(request, credentials, session)


def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    session: Session = Depends(get_session),
) -> Optional[models.User]:
    """Like `get_current_user` but anonymous requests yield `None`."""
    if credentials is None:
        return None
    return _resolve_user(request, credentials, session)
