import pytest

from lms.errors import AuthError, ForbiddenError
from lms.models import User
from lms.policy import Relation, authorize, evaluate, require_role
from lms.utils.rate_limit import InMemoryRateLimiter


def _user(uid, role="student"):
    return User(id=uid, name=f"user {uid}", email=f"u{uid}@example.com", role=role)


def test_course_staff_allows_owner_and_admin_only():
    owner, other, admin = _user(1, "instructor"), _user(2, "instructor"), _user(3, "admin")
    assert evaluate(owner, owner_id=1)
    assert evaluate(admin, owner_id=1)
    assert not evaluate(other, owner_id=1)
    assert not evaluate(None, owner_id=1)


def test_self_relations():
    student, instructor = _user(5), _user(1, "instructor")
    assert evaluate(student, None, Relation.SELF, subject_id=5)
    assert not evaluate(instructor, 1, Relation.SELF, subject_id=5)
    assert evaluate(instructor, 1, Relation.SELF_OR_STAFF, subject_id=5)
    assert evaluate(student, 1, Relation.SELF_OR_STAFF, subject_id=5)
    assert not evaluate(_user(6), 1, Relation.SELF_OR_STAFF, subject_id=5)


def test_author_relation_has_no_admin_bypass():
    author, admin = _user(5), _user(1, "admin")
    assert evaluate(author, None, Relation.AUTHOR, subject_id=5)
    assert not evaluate(admin, None, Relation.AUTHOR, subject_id=5)
    assert not evaluate(_user(6), 6, Relation.AUTHOR, subject_id=5)
    with pytest.raises(ForbiddenError):
        authorize(admin, None, Relation.AUTHOR, subject_id=5)


def test_admin_relation():
    assert evaluate(_user(1, "admin"), None, Relation.ADMIN)
    assert not evaluate(_user(1, "instructor"), 1, Relation.ADMIN)


def test_authorize_raises():
    with pytest.raises(AuthError):
        authorize(None, 1)
    with pytest.raises(ForbiddenError) as exc:
        authorize(_user(2), 1, message="nope")
    assert exc.value.message == "nope"
    with pytest.raises(ForbiddenError):
        require_role(_user(2), ("instructor", "admin"))
    require_role(_user(2, "instructor"), ("instructor", "admin"))


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_rate_limiter_fixed_window():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(max_requests=2, window_seconds=60, clock=clock)
    assert limiter.allow("a") == (True, 0)
    assert limiter.allow("a") == (True, 0)
    allowed, retry_after = limiter.allow("a")
    assert allowed is False
    assert retry_after == 60
    # other keys have their own window
    assert limiter.allow("b")[0] is True
    clock.now += 45
    assert limiter.allow("a") == (False, 15)
    clock.now += 15
    assert limiter.allow("a") == (True, 0)


def test_rate_limiter_reset():
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
    limiter.allow("a")
    assert limiter.allow("a")[0] is False
    limiter.reset()
    assert limiter.allow("a")[0] is True
