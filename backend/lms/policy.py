"""Access-control policy.

Every authorization decision in the services goes through `evaluate`:
it takes the requester, the id of the user who owns the resource (for
course-scoped resources, the course's instructor) and the relation the
operation requires, and answers allow/deny.
"""

from enum import Enum
from typing import Iterable, Optional

from .errors import AuthError, ForbiddenError
from .models import User


class Relation(str, Enum):
    ADMIN = "admin"
    COURSE_STAFF = "course_staff"
    SELF_OR_STAFF = "self_or_staff"
    SELF = "self"
    AUTHOR = "author"


def is_admin(user: Optional[User]) -> bool:
    return user is not None and user.role == "admin"


def evaluate(
    requester: Optional[User],
    owner_id: Optional[int],
    relation: Relation = Relation.COURSE_STAFF,
    subject_id: Optional[int] = None,
) -> bool:
    """Return True when `requester` may act under `relation`.

    - ADMIN: admins only.
    - COURSE_STAFF: admins or the owner (`owner_id`, the course instructor).
    - SELF_OR_STAFF: COURSE_STAFF, or the subject user (`subject_id`),
      e.g. the student an enrollment belongs to.
    - SELF: admins or the subject user.
    - AUTHOR: the subject user only; admins get no bypass.
    """
    if requester is None or requester.id is None:
        return False
    if relation is Relation.AUTHOR:
        return subject_id is not None and requester.id == subject_id
    if is_admin(requester):
        return True
    if relation is Relation.ADMIN:
        return False
    if relation in (Relation.COURSE_STAFF, Relation.SELF_OR_STAFF):
        if owner_id is not None and requester.id == owner_id:
            return True
    if relation in (Relation.SELF_OR_STAFF, Relation.SELF):
        if subject_id is not None and requester.id == subject_id:
            return True
    return False


def authorize(
    requester: Optional[User],
    owner_id: Optional[int],
    relation: Relation = Relation.COURSE_STAFF,
    subject_id: Optional[int] = None,
    message: str = "Not authorized to perform this action",
) -> None:
    """Raise `ForbiddenError` unless `evaluate` allows the request."""
    if requester is None:
        raise AuthError()
    if not evaluate(requester, owner_id, relation, subject_id):
        raise ForbiddenError(message)


def require_role(requester: Optional[User], roles: Iterable[str], message: Optional[str] = None) -> None:
    if requester is None:
        raise AuthError()
    allowed = tuple(roles)
    if requester.role not in allowed:
        raise ForbiddenError(message or f"Access denied: {requester.role} role is not authorized for this operation")
