"""Profile management and admin user administration."""

from sqlmodel import Session

from .. import models, repositories
from ..auth import hash_password, verify_password
from ..errors import BadRequestError, ConflictError
from ..policy import Relation, authorize
from ..schemas import ChangePasswordIn, ProfileUpdateIn
from .common import get_or_404, paginate, public_user


class UserService:
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def profile(self, user: models.User) -> dict:
        return public_user(user)

    def update_profile(self, user: models.User, data: ProfileUpdateIn) -> dict:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "email" in changes:
            changes["email"] = changes["email"].lower()
            existing = self.user_repo.get_by_email(changes["email"])
            if existing is not None and existing.id != user.id:
                raise ConflictError("Email is already in use")
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        return public_user(self.user_repo.update(user.id, changes))

    def change_password(self, user: models.User, data: ChangePasswordIn) -> None:
        if not verify_password(data.current_password, user.password_hash):
            raise BadRequestError("Current password is incorrect")
        self.user_repo.update(user.id, {"password_hash": hash_password(data.new_password)})

    def deactivate(self, user_id: int) -> None:
        self.user_repo.update(user_id, {"is_active": False})

    # --- admin ---------------------------------------------------------------

    def list_users(self, requester: models.User, page: int = 1, limit: int = 20) -> dict:
        authorize(requester, None, Relation.ADMIN)
        users, total = self.user_repo.list_page(limit=limit, offset=(page - 1) * limit)
        return {"users": [public_user(u) for u in users], "pagination": paginate(page, limit, total)}

    def update_role(self, requester: models.User, user_id: int, role: str) -> dict:
        authorize(requester, None, Relation.ADMIN)
        if user_id == requester.id:
            raise BadRequestError("Cannot modify your own role")
        get_or_404(self.user_repo, user_id, "User")
        return public_user(self.user_repo.update(user_id, {"role": role}))

    def delete_user(self, requester: models.User, user_id: int) -> None:
        authorize(requester, None, Relation.ADMIN)
        if user_id == requester.id:
            raise BadRequestError("Cannot delete your own account through this endpoint")
        get_or_404(self.user_repo, user_id, "User")
        self.deactivate(user_id)
