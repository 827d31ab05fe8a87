"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Settings:
    ENV: str
    LOG_LEVEL: str
    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_HOURS: int
    JWT_REFRESH_EXPIRE_DAYS: int
    ALLOW_INSECURE_JWT: bool
    CORS_ORIGINS: list
    RATE_LIMIT_MAX: int
    RATE_LIMIT_WINDOW_SECONDS: int
    MAX_UPLOAD_BYTES: int
    UPLOAD_DIR: Path
    UPLOAD_BASE_URL: str
    SMTP_HOST: str
    SMTP_PORT: int
    SMTP_USER: str
    SMTP_PASSWORD: str
    SMTP_STARTTLS: bool
    MAIL_FROM: str
    BASE_URL: str
    GOOGLE_CLIENT_ID: str
    GOOGLE_CLIENT_SECRET: str
    GOOGLE_REDIRECT_URI: str
    OUTBOX_MAX_ATTEMPTS: int
    OUTBOX_POLL_SECONDS: float
    OUTBOX_INLINE: bool
    EXIT_ON_FATAL_ERROR: bool

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'lms.db'}")
        self.JWT_SECRET = os.getenv("JWT_SECRET", "change_me_for_prod")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "24"))
        self.JWT_REFRESH_EXPIRE_DAYS = int(os.getenv("JWT_REFRESH_EXPIRE_DAYS", "7"))
        self.ALLOW_INSECURE_JWT = _env_bool("ALLOW_INSECURE_JWT", "false")
        self.CORS_ORIGINS = [
            o.strip()
            for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:3001").split(",")
            if o.strip()
        ]
        # tighter default in production
        default_max = "100" if self.is_production else "1000"
        self.RATE_LIMIT_MAX = int(os.getenv("RATE_LIMIT_MAX", default_max))
        self.RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", str(15 * 60)))
        self.MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(100 * 1024 * 1024)))  # 100 MB default
        self.UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(BASE / "data" / "uploads"))).expanduser().resolve()
        self.UPLOAD_BASE_URL = os.getenv("UPLOAD_BASE_URL", "/uploads").rstrip("/")
        self.SMTP_HOST = os.getenv("SMTP_HOST", "")
        self.SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
        self.SMTP_USER = os.getenv("SMTP_USER", "")
        self.SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
        self.SMTP_STARTTLS = _env_bool("SMTP_STARTTLS", "true")
        self.MAIL_FROM = os.getenv("MAIL_FROM", "LMS System <noreply@lms.example.com>")
        self.BASE_URL = os.getenv("BASE_URL", "http://localhost:3000").rstrip("/")
        self.GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
        self.GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
        self.GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI", "http://localhost:5000/api/auth/google/callback")
        self.OUTBOX_MAX_ATTEMPTS = int(os.getenv("OUTBOX_MAX_ATTEMPTS", "5"))
        self.OUTBOX_POLL_SECONDS = float(os.getenv("OUTBOX_POLL_SECONDS", "2"))
        self.OUTBOX_INLINE = _env_bool("OUTBOX_INLINE", "false")
        self.EXIT_ON_FATAL_ERROR = _env_bool("EXIT_ON_FATAL_ERROR", "true" if self.is_production else "false")
        self._validate()

    @property
    def is_production(self) -> bool:
        return self.ENV in ("prod", "production")

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == "change_me_for_prod":
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if self.RATE_LIMIT_MAX < 1 or self.RATE_LIMIT_WINDOW_SECONDS < 1:
            raise RuntimeError("RATE_LIMIT_MAX and RATE_LIMIT_WINDOW_SECONDS must be positive")
        if self.OUTBOX_MAX_ATTEMPTS < 1:
            raise RuntimeError("OUTBOX_MAX_ATTEMPTS must be >= 1")

