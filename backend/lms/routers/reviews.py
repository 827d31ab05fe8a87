"""Course review endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import models
from ..auth import get_current_user
from ..database import get_session
from ..responses import ok
from ..schemas import ReviewIn
from ..services import ReviewService

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


@router.get("/course/{course_id}")
def course_reviews(
    course_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: Literal["recent", "helpful"] = "recent",
    db: Session = Depends(get_session),
):
    data = ReviewService(db).list_for_course(course_id, page, limit, sort)
    return ok(data, "Reviews retrieved successfully")


@router.get("/course/{course_id}/can-review")
def can_review(course_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(ReviewService(db).can_review(user, course_id), "Review eligibility checked successfully")


@router.post("/course/{course_id}", status_code=201)
def create_review(
    course_id: int,
    payload: ReviewIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(ReviewService(db).create(user, course_id, payload.review_text), "Review created successfully")


@router.get("/user/me")
def my_reviews(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(ReviewService(db).mine(user), "Reviews retrieved successfully")


@router.get("/{review_id}")
def get_review(review_id: int, db: Session = Depends(get_session)):
    return ok(ReviewService(db).get(review_id), "Review retrieved successfully")


@router.put("/{review_id}")
def update_review(
    review_id: int,
    payload: ReviewIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(ReviewService(db).update(user, review_id, payload.review_text), "Review updated successfully")


@router.delete("/{review_id}")
def delete_review(review_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(ReviewService(db).delete(user, review_id), "Review deleted successfully")


@router.post("/{review_id}/helpful")
def mark_helpful(review_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(ReviewService(db).mark_helpful(user, review_id), "Review marked as helpful")
