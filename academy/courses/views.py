from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from academy.utils.security import optional_user, require_user
from academy.courses import service

router = APIRouter(prefix="/api/v1", tags=["Courses API"])

# module academy.courses.views
@router.get("/courses")
def list_courses():
    return {"courses": service.list_courses()}

@router.get("/courses/mine")
def my_courses(user: Dict[str, Any] = Depends(require_user)):
    return {"courses": service.list_my_courses(user["id"])}

@router.get("/courses/{slug}")
def course_detail(slug: str, user: Optional[Dict[str, Any]] = Depends(optional_user)):
    return service.get_course(slug, (user or {}).get("id"))

@router.get("/learn/{slug}")
def course_outline(slug: str, user: Dict[str, Any] = Depends(require_user)):
    return service.get_course_outline(slug, user["id"])

@router.get("/learn/{slug}/lessons/{lesson_id}")
def lesson_detail(slug: str, lesson_id: str, user: Dict[str, Any] = Depends(require_user)):
    return service.get_lesson(slug, lesson_id, user["id"])
