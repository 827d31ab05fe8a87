"""Instructor dashboard endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import models
from ..auth import get_current_user
from ..database import get_session
from ..responses import ok
from ..services import InstructorService

router = APIRouter(prefix="/api/instructor", tags=["instructor"])


@router.get("/analytics")
def analytics(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(InstructorService(db).analytics(user), "Instructor analytics retrieved successfully")


@router.get("/activity")
def activity(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(InstructorService(db).activity(user, limit), "Instructor activity retrieved successfully")


@router.get("/tasks")
def tasks(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(InstructorService(db).tasks(user), "Instructor tasks retrieved successfully")
