"""FastAPI dependencies for the collaborators built by the app factory."""

from fastapi import Request

from .config import Settings
from .utils.oauth import IdentityProvider
from .utils.storage import ObjectStorage


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider
