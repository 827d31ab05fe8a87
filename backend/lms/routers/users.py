"""Profile endpoints and admin user management."""

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import models
from ..auth import get_current_user
from ..database import get_session
from ..responses import ok
from ..schemas import ChangePasswordIn, ProfileUpdateIn, RoleUpdateIn
from ..services import UserService

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/profile")
def get_profile(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(UserService(db).profile(user), "Profile retrieved successfully")


@router.put("/profile")
def update_profile(payload: ProfileUpdateIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(UserService(db).update_profile(user, payload), "Profile updated successfully")


@router.put("/change-password")
def change_password(payload: ChangePasswordIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    UserService(db).change_password(user, payload)
    return ok(None, "Password changed successfully")


@router.delete("/account")
def delete_account(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Deactivate the caller's own account."""
    UserService(db).deactivate(user.id)
    return ok(None, "Account deleted successfully")


@router.get("")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(UserService(db).list_users(user, page, limit), "Users retrieved successfully")


@router.put("/{user_id}/role")
def update_role(user_id: int, payload: RoleUpdateIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(UserService(db).update_role(user, user_id, payload.role), "User role updated successfully")


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    UserService(db).delete_user(user, user_id)
    return ok(None, "User deleted successfully")
