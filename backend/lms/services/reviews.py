"""Course reviews and helpful marks."""

from typing import List

from sqlmodel import Session

from .. import models, repositories
from ..errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from ..policy import Relation, authorize
from .common import active_enrollment, get_or_404, paginate


class ReviewService:
    def __init__(self, session: Session):
        self.session = session
        self.review_repo = repositories.ReviewRepository(session)
        self.course_repo = repositories.CourseRepository(session)

    def _active(self, review_id: int) -> models.Review:
        review = self.review_repo.get(review_id)
        if review is None or review.is_deleted:
            raise NotFoundError("Review not found")
        return review

    def list_for_course(self, course_id: int, page: int = 1, limit: int = 10, sort: str = "recent") -> dict:
        get_or_404(self.course_repo, course_id, "Course")
        reviews = self.review_repo.list_by_course(course_id, limit=limit, offset=(page - 1) * limit, sort=sort)
        total = self.review_repo.count_by_course(course_id)
        return {"reviews": reviews, "pagination": paginate(page, limit, total)}

    def can_review(self, requester: models.User, course_id: int) -> dict:
        """Eligibility: an active or completed enrollment and no existing review."""
        get_or_404(self.course_repo, course_id, "Course")
        if active_enrollment(self.session, requester.id, course_id) is None:
            return {"can_review": False, "message": "You must be enrolled in this course to review it"}
        existing = self.review_repo.get_active_for(requester.id, course_id)
        if existing is not None:
            return {
                "can_review": False,
                "message": "You have already reviewed this course",
                "review_id": existing.id,
            }
        return {"can_review": True, "message": "You can review this course"}

    def create(self, requester: models.User, course_id: int, review_text: str) -> models.Review:
        eligibility = self.can_review(requester, course_id)
        if not eligibility["can_review"]:
            if "review_id" in eligibility:
                raise ConflictError(eligibility["message"])
            raise ForbiddenError(eligibility["message"])
        return self.review_repo.create(models.Review(
            user_id=requester.id, course_id=course_id, review_text=review_text.strip()
        ))

    def get(self, review_id: int) -> models.Review:
        return self._active(review_id)

    def update(self, requester: models.User, review_id: int, review_text: str) -> models.Review:
        review = self._active(review_id)
        # admins moderate by deleting
        authorize(requester, None, Relation.AUTHOR, subject_id=review.user_id,
                  message="Not authorized to update this review")
        return self.review_repo.update(review_id, {"review_text": review_text.strip()})

    def delete(self, requester: models.User, review_id: int) -> dict:
        review = self._active(review_id)
        authorize(requester, None, Relation.SELF, subject_id=review.user_id,
                  message="Not authorized to delete this review")
        review = self.review_repo.update(review_id, {"is_deleted": True})
        return {"id": review.id, "course_id": review.course_id}

    def mark_helpful(self, requester: models.User, review_id: int) -> models.Review:
        review = self._active(review_id)
        if review.user_id == requester.id:
            raise BadRequestError("You cannot mark your own review as helpful")
        if self.review_repo.has_marked_helpful(review_id, requester.id):
            raise BadRequestError("You have already marked this review as helpful")
        return self.review_repo.mark_helpful(review, requester.id)

    def mine(self, requester: models.User) -> List[dict]:
        return self.review_repo.list_by_user(requester.id)
