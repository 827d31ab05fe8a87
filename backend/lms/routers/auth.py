"""Registration, login, token refresh and Google sign-in."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlmodel import Session

from .. import models
from ..auth import get_current_user
from ..config import Settings
from ..database import get_session
from ..deps import get_identity_provider, get_settings
from ..errors import LMSError
from ..responses import ok
from ..schemas import AdminRegisterIn, LoginIn, RefreshIn, RegisterIn
from ..services import AuthService
from ..services.common import public_user
from ..utils.oauth import IdentityProvider

logger = logging.getLogger("lms.api.auth")

router = APIRouter(prefix="/api/auth", tags=["auth"])

OAUTH_STATE_COOKIE = "oauth_state"
TOKEN_COOKIES = ("accessToken", "refreshToken", "clientAccessToken", "clientRefreshToken")


@router.post("/register", status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_session), settings: Settings = Depends(get_settings)):
    """Create a student or instructor account and return tokens."""
    return ok(AuthService(db, settings).register(payload), "User registered successfully")


@router.post("/login")
def login(payload: LoginIn, db: Session = Depends(get_session), settings: Settings = Depends(get_settings)):
    return ok(AuthService(db, settings).login(payload.email, payload.password), "Login successful")


@router.post("/refresh")
def refresh(payload: RefreshIn, db: Session = Depends(get_session), settings: Settings = Depends(get_settings)):
    return ok(AuthService(db, settings).refresh(payload.refresh_token), "Token refreshed")


@router.post("/admin", status_code=201)
def create_admin(payload: AdminRegisterIn, db: Session = Depends(get_session), settings: Settings = Depends(get_settings)):
    """Bootstrap the first admin account; refused once one exists."""
    return ok(AuthService(db, settings).create_admin(payload), "Admin account created successfully")


@router.get("/user")
def current_user(user: models.User = Depends(get_current_user)):
    return ok(public_user(user), "User retrieved successfully")


@router.post("/logout")
def logout(user: models.User = Depends(get_current_user)):
    # tokens are stateless; clearing the OAuth cookies is all there is to do
    response = JSONResponse(ok(None, "Logged out successfully"))
    for name in TOKEN_COOKIES:
        response.delete_cookie(name)
    return response


@router.get("/verify-email")
def verify_email(token: str, db: Session = Depends(get_session), settings: Settings = Depends(get_settings)):
    return ok(AuthService(db, settings).verify_email(token), "Email verified successfully")


@router.get("/google")
def google_login(
    settings: Settings = Depends(get_settings),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    state = AuthService.new_oauth_state()
    response = RedirectResponse(provider.authorization_url(state), status_code=302)
    response.set_cookie(
        OAUTH_STATE_COOKIE, state, max_age=600, httponly=True, samesite="lax", secure=settings.is_production
    )
    return response


@router.get("/google/callback")
def google_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    db: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    """Finish Google sign-in: set token cookies and hand over to the client."""
    failure = RedirectResponse(f"{settings.BASE_URL}/login?oauth=fail", status_code=302)
    failure.delete_cookie(OAUTH_STATE_COOKIE)
    expected = request.cookies.get(OAUTH_STATE_COOKIE)
    if not code or not state or state != expected:
        logger.warning("google callback rejected: missing code or state mismatch")
        return failure
    try:
        profile = provider.fetch_profile(code)
        result = AuthService(db, settings).login_with_oauth(profile)
    except LMSError as exc:
        logger.warning("google sign-in failed: %s", exc.message)
        return failure
    tokens = result["tokens"]
    response = RedirectResponse(f"{settings.BASE_URL}/oauth/success", status_code=302)
    response.delete_cookie(OAUTH_STATE_COOKIE)
    access_age = settings.JWT_EXPIRE_HOURS * 3600
    refresh_age = settings.JWT_REFRESH_EXPIRE_DAYS * 86400
    secure = settings.is_production
    response.set_cookie("accessToken", tokens["access"], max_age=access_age, httponly=True, samesite="lax", secure=secure)
    response.set_cookie("refreshToken", tokens["refresh"], max_age=refresh_age, httponly=True, samesite="lax", secure=secure)
    response.set_cookie("clientAccessToken", tokens["access"], max_age=access_age, samesite="lax", secure=secure)
    response.set_cookie("clientRefreshToken", tokens["refresh"], max_age=refresh_age, samesite="lax", secure=secure)
    return response
