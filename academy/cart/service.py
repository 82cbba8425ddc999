"""Panier de cours: lecture normalisée et mutations (ajout idempotent)."""
import logging
from typing import Any, Dict, List

from fastapi import HTTPException

from academy.courses import repository as courses_repository
from . import repository

logger = logging.getLogger(__name__)

# module academy.cart.service
def list_cart(user_id: str) -> Dict[str, Any]:
    """
    Panier normalisé: {"items": [{course_id, title, price, slug, thumbnail_image_url}], "total"}.
    Les lignes dont le cours n'existe plus sont ignorées.
    """
    items: List[Dict[str, Any]] = []
    for row in repository.list_cart_items(user_id):
        course = row.get("courses") or {}
        if not course:
            continue
        items.append({
            "course_id": str(row.get("course_id")),
            "title": course.get("title") or "",
            "price": float(course.get("price") or 0),
            "slug": course.get("slug"),
            "thumbnail_image_url": course.get("thumbnail_image_url"),
        })
    total = round(sum(i["price"] for i in items), 2)
    return {"items": items, "total": total}

def add_to_cart(user_id: str, course_id: str) -> Dict[str, Any]:
    """Ajout idempotent: un cours déjà présent n'est pas dupliqué; un cours possédé -> 409."""
    if not courses_repository.get_courses_by_ids([course_id]):
        raise HTTPException(status_code=404, detail="Course not found.")
    if courses_repository.user_has_course(user_id, course_id):
        raise HTTPException(status_code=409, detail="You already own this course.")
    added = repository.add_cart_item(user_id, course_id)
    logger.info("cart.add user_id=%s course_id=%s added=%s", user_id, course_id, added)
    return {"added": added}

def remove_from_cart(user_id: str, course_id: str) -> Dict[str, Any]:
    removed = repository.remove_cart_item(user_id, course_id)
    return {"removed": removed}

def clear_cart(user_id: str) -> Dict[str, Any]:
    removed = repository.clear_cart(user_id)
    logger.info("cart.clear user_id=%s removed=%s", user_id, removed)
    return {"removed": removed}
