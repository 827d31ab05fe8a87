"""Module endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import models
from ..auth import get_current_user, get_optional_user
from ..database import get_session
from ..responses import ok
from ..schemas import ModuleIn, ModuleUpdateIn, ReorderIn
from ..services import ModuleService

router = APIRouter(prefix="/api/modules", tags=["modules"])


@router.get("/course/{course_id}")
def course_modules(course_id: int, db: Session = Depends(get_session), user: Optional[models.User] = Depends(get_optional_user)):
    return ok(ModuleService(db).list_for_course(course_id, user), "Modules retrieved successfully")


@router.put("/course/{course_id}/reorder")
def reorder_modules(
    course_id: int,
    payload: ReorderIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    modules = ModuleService(db).reorder(user, course_id, payload.item_id, payload.order_index)
    return ok(modules, "Modules reordered successfully")


@router.post("", status_code=201)
def create_module(payload: ModuleIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(ModuleService(db).create(user, payload), "Module created successfully")


@router.get("/{module_id}")
def get_module(module_id: int, db: Session = Depends(get_session), user: Optional[models.User] = Depends(get_optional_user)):
    return ok(ModuleService(db).get(module_id, user), "Module retrieved successfully")


@router.put("/{module_id}")
def update_module(
    module_id: int,
    payload: ModuleUpdateIn,
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    return ok(ModuleService(db).update(user, module_id, payload), "Module updated successfully")


@router.delete("/{module_id}")
def delete_module(module_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return ok(ModuleService(db).delete(user, module_id), "Module deleted successfully")
