"""
Catalogue de cours et accès aux leçons.
Le contenu (modules, leçons) n'est servi qu'aux utilisateurs inscrits.
"""
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from . import repository

# module academy.courses.service
def list_courses() -> List[Dict[str, Any]]:
    return repository.list_published_courses()

def get_course(slug: str, user_id: Optional[str] = None) -> Dict[str, Any]:
    """Cours par slug, avec is_enrolled si un utilisateur est fourni. 404 sinon."""
    course = repository.get_course_by_slug(slug)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found.")
    enrolled = bool(user_id) and repository.user_has_course(user_id, str(course.get("id")))
    return dict(course, is_enrolled=enrolled)

def list_my_courses(user_id: str) -> List[Dict[str, Any]]:
    rows = repository.list_user_courses(user_id)
    courses = []
    for row in rows:
        course = row.get("courses") or {}
        if not course:
            continue
        courses.append(dict(course, enrolled_at=row.get("created_at"), price_paid=row.get("price_paid")))
    return courses

def _require_enrollment(user_id: str, course: Dict[str, Any]) -> None:
    if not repository.user_has_course(user_id, str(course.get("id"))):
        raise HTTPException(status_code=403, detail="You are not enrolled in this course.")

def get_course_outline(slug: str, user_id: str) -> Dict[str, Any]:
    """Modules et leçons triés par 'order'; 404 cours inconnu, 403 non inscrit."""
    course = repository.get_course_by_slug(slug)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found.")
    _require_enrollment(user_id, course)

    modules = sorted(repository.fetch_course_modules(str(course.get("id"))), key=lambda m: m.get("order") or 0)
    for module in modules:
        module["lessons"] = sorted(module.get("lessons") or [], key=lambda l: l.get("order") or 0)
    return {"course": course, "modules": modules}

def get_lesson(slug: str, lesson_id: str, user_id: str) -> Dict[str, Any]:
    course = repository.get_course_by_slug(slug)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found.")
    _require_enrollment(user_id, course)

    lesson = repository.get_lesson(lesson_id)
    module = (lesson or {}).get("modules") or {}
    if not lesson or str(module.get("course_id")) != str(course.get("id")):
        raise HTTPException(status_code=404, detail="Lesson not found.")
    return {"course": course, "lesson": lesson}
