"""Authentication related operations (register, login, tokens, OAuth)."""

import logging
import secrets

from sqlmodel import Session

from .. import models, repositories
from ..auth import (
    create_verification_token,
    decode_token,
    hash_password,
    issue_tokens,
    verify_password,
)
from ..config import Settings
from ..errors import AuthError, ConflictError, ForbiddenError, NotFoundError
from ..models import utcnow
from ..outbox import Outbox
from ..schemas import AdminRegisterIn, RegisterIn
from ..utils.oauth import OAuthProfile
from .common import public_user

logger = logging.getLogger("lms.auth")


class AuthService:
    def __init__(self, session: Session, settings: Settings):
        self.session = session
        self.settings = settings
        self.user_repo = repositories.UserRepository(session)

    def _session_payload(self, user: models.User) -> dict:
        return {"user": public_user(user), "tokens": issue_tokens(user, self.settings)}

    def register(self, data: RegisterIn) -> dict:
        """Create a student or instructor account and queue the verification email."""
        if data.role == "admin":
            raise ForbiddenError("Cannot register as admin")
        if self.user_repo.get_by_email(data.email):
            raise ConflictError("User with this email already exists")
        user = self.user_repo.create(models.User(
            name=data.name.strip(),
            email=data.email.lower(),
            password_hash=hash_password(data.password),
            role=data.role,
        ))
        token = create_verification_token(user, self.settings)
        Outbox.email(self.session, user.email, "verify-email", {
            "name": user.name,
            "verification_link": f"{self.settings.BASE_URL}/verify-email?token={token}",
        })
        logger.info("registered user %s (%s)", user.id, user.role)
        return self._session_payload(user)

    def create_admin(self, data: AdminRegisterIn) -> dict:
        """Bootstrap the first admin; refused once any admin exists."""
        if self.user_repo.admin_exists():
            raise ForbiddenError("Admin account already exists")
        if self.user_repo.get_by_email(data.email):
            raise ConflictError("User with this email already exists")
        user = self.user_repo.create(models.User(
            name=data.name.strip(),
            email=data.email.lower(),
            password_hash=hash_password(data.password),
            role="admin",
            is_verified=True,
        ))
        logger.info("created initial admin %s", user.id)
        return self._session_payload(user)

    def login(self, email: str, password: str) -> dict:
        user = self.user_repo.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise AuthError("Invalid credentials")
        if not user.is_active:
            raise AuthError("Account is deactivated")
        user = self.user_repo.update(user.id, {"last_login": utcnow()})
        return self._session_payload(user)

    def refresh(self, refresh_token: str) -> dict:
        payload = decode_token(refresh_token, self.settings, expected_type="refresh")
        user = self.user_repo.get(payload["user_id"])
        if user is None or not user.is_active:
            raise AuthError("Invalid refresh token")
        return {"tokens": issue_tokens(user, self.settings)}

    def verify_email(self, token: str) -> dict:
        payload = decode_token(token, self.settings, expected_type="verify")
        user = self.user_repo.get(payload["user_id"])
        if user is None:
            raise NotFoundError("User not found")
        if not user.is_verified:
            user = self.user_repo.update(user.id, {"is_verified": True})
        return public_user(user)

    def login_with_oauth(self, profile: OAuthProfile) -> dict:
        """Find or create the user behind an external identity.

        An existing local account with the same email is linked to the
        provider rather than duplicated.
        """
        user = self.user_repo.get_by_oauth(profile.provider, profile.subject)
        if user is None:
            user = self.user_repo.get_by_email(profile.email)
            if user is not None:
                user = self.user_repo.update(user.id, {
                    "oauth_provider": profile.provider,
                    "oauth_id": profile.subject,
                    "avatar": user.avatar or profile.avatar,
                    "is_verified": user.is_verified or profile.email_verified,
                })
            else:
                user = self.user_repo.create(models.User(
                    name=profile.name,
                    email=profile.email.lower(),
                    role="student",
                    oauth_provider=profile.provider,
                    oauth_id=profile.subject,
                    avatar=profile.avatar,
                    is_verified=profile.email_verified,
                ))
                logger.info("created user %s from %s sign-in", user.id, profile.provider)
        if not user.is_active:
            raise AuthError("Account is deactivated")
        user = self.user_repo.update(user.id, {"last_login": utcnow()})
        return self._session_payload(user)

    @staticmethod
    def new_oauth_state() -> str:
        return secrets.token_urlsafe(24)
