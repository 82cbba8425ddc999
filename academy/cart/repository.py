from typing import Any, Dict, List
import logging

from postgrest.exceptions import APIError

import academy.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

CART_ITEMS = "cart_items"

# module academy.cart.repository
def list_cart_items(user_id: str) -> List[Dict[str, Any]]:
    """
    Articles du panier avec le cours joint (titre, prix, visuel, slug).
    Lève en cas d'erreur base: un panier vide par erreur ferait un checkout vide.
    """
    res = (
        supabase_client.get_service_supabase()
        .table(CART_ITEMS)
        .select("id, course_id, courses:course_id(title, price, thumbnail_image_url, slug)")
        .eq("user_id", user_id)
        .order("created_at", desc=False)
        .execute()
    )
    return res.data or []

def add_cart_item(user_id: str, course_id: str) -> bool:
    """True si ajouté, False si le cours était déjà dans le panier."""
    try:
        (
            supabase_client.get_service_supabase()
            .table(CART_ITEMS)
            .insert({"user_id": user_id, "course_id": course_id})
            .execute()
        )
        return True
    except APIError as e:
        if supabase_client.is_unique_violation(e):
            return False
        raise

def remove_cart_item(user_id: str, course_id: str) -> int:
    res = (
        supabase_client.get_service_supabase()
        .table(CART_ITEMS)
        .delete()
        .eq("user_id", user_id)
        .eq("course_id", course_id)
        .execute()
    )
    return len(res.data or [])

def clear_cart(user_id: str) -> int:
    """Supprime tous les articles du panier; idempotent (supprimer un ensemble vide est sans effet)."""
    res = (
        supabase_client.get_service_supabase()
        .table(CART_ITEMS)
        .delete()
        .eq("user_id", user_id)
        .execute()
    )
    return len(res.data or [])
