from typing import Dict, Iterable, List, Optional
import logging

import academy.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

COURSE_COLUMNS = "id, title, slug, description, price, thumbnail_image_url, image_url, created_at"

# module academy.courses.repository
def list_published_courses() -> List[dict]:
    """Catalogue public (cours publiés, plus récents d'abord). [] en cas d'erreur."""
    try:
        res = (
            supabase_client.get_supabase()
            .table("courses")
            .select(COURSE_COLUMNS)
            .eq("is_published", True)
            .order("created_at", desc=True)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("courses.repository.list_published_courses failed")
        return []

def get_course_by_slug(slug: str) -> Optional[dict]:
    try:
        res = (
            supabase_client.get_supabase()
            .table("courses")
            .select(COURSE_COLUMNS)
            .eq("slug", slug)
            .eq("is_published", True)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("courses.repository.get_course_by_slug failed slug=%s", slug)
        return None

def get_courses_by_ids(ids: Iterable[str]) -> Dict[str, dict]:
    """Retourne {id: cours} pour les IDs demandés."""
    id_list = [str(i) for i in ids if i]
    if not id_list:
        return {}
    try:
        res = (
            supabase_client.get_supabase()
            .table("courses")
            .select(COURSE_COLUMNS)
            .in_("id", id_list)
            .execute()
        )
        return {str(c.get("id")): c for c in (res.data or [])}
    except Exception:
        logger.exception("courses.repository.get_courses_by_ids failed ids=%s", id_list)
        return {}

def user_has_course(user_id: str, course_id: str) -> bool:
    if not user_id or not course_id:
        return False
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("user_course_enrollments")
            .select("id")
            .eq("user_id", user_id)
            .eq("course_id", course_id)
            .limit(1)
            .execute()
        )
        return bool(res.data)
    except Exception:
        logger.exception("courses.repository.user_has_course failed user_id=%s course_id=%s", user_id, course_id)
        return False

def list_user_courses(user_id: str) -> List[dict]:
    """Inscriptions de l'utilisateur avec le cours joint (tableau de bord)."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("user_course_enrollments")
            .select("id, price_paid, created_at, courses(id, title, slug, description, thumbnail_image_url, image_url)")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("courses.repository.list_user_courses failed user_id=%s", user_id)
        return []

def fetch_course_modules(course_id: str) -> List[dict]:
    """Modules du cours et leurs leçons, triés par 'order'."""
    try:
        res = (
            supabase_client.get_supabase()
            .table("modules")
            .select('id, title, "order", lessons(id, title, "order")')
            .eq("course_id", course_id)
            .order("order", desc=False)
            .order("order", desc=False, foreign_table="lessons")
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("courses.repository.fetch_course_modules failed course_id=%s", course_id)
        return []

def get_lesson(lesson_id: str) -> Optional[dict]:
    try:
        res = (
            supabase_client.get_supabase()
            .table("lessons")
            .select('id, title, content, video_url, "order", module_id, modules(id, title, course_id)')
            .eq("id", lesson_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("courses.repository.get_lesson failed lesson_id=%s", lesson_id)
        return None
