from typing import Any, Dict, List
import logging

import academy.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

CHILDREN = "children"
CLASS_ENROLLMENTS = "class_enrollments"

# module academy.programs.repository
def insert_children(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Insère les enfants en une requête; retourne les lignes créées (avec id)."""
    if not rows:
        return []
    res = supabase_client.get_service_supabase().table(CHILDREN).insert(rows).execute()
    return res.data or []

def insert_class_enrollments(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not rows:
        return []
    res = supabase_client.get_service_supabase().table(CLASS_ENROLLMENTS).insert(rows).execute()
    return res.data or []

def delete_children(child_ids: List[str]) -> None:
    """Compensation si l'insertion des cours échoue après celle des enfants."""
    if not child_ids:
        return
    try:
        supabase_client.get_service_supabase().table(CHILDREN).delete().in_("id", child_ids).execute()
    except Exception:
        logger.exception("programs.repository.delete_children failed ids=%s", child_ids)

def fetch_children_with_enrollments(user_id: str) -> List[Dict[str, Any]]:
    """
    Enfants de l'utilisateur et leurs inscriptions, normalisés sous la clé 'enrollments'
    (format attendu par academy.schedule.projector.project_all).
    """
    res = (
        supabase_client.get_service_supabase()
        .table(CHILDREN)
        .select(f"id, user_id, name, age, created_at, {CLASS_ENROLLMENTS}(id, child_id, class_type, class_level, time_slot, created_at)")
        .eq("user_id", user_id)
        .order("created_at", desc=False)
        .execute()
    )
    children = []
    for row in res.data or []:
        child = dict(row)
        child["enrollments"] = child.pop(CLASS_ENROLLMENTS, None) or []
        children.append(child)
    return children
