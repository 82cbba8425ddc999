from typing import Any, Dict

from .repository import get_user_from_access_token

# module academy.auth.service
def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise l'utilisateur Supabase: {id, email, metadata, token}."""
    raw = get_user_from_access_token(access_token)
    return {
        "id": raw.get("id"),
        "email": raw.get("email"),
        "metadata": raw.get("user_metadata") or {},
        "token": access_token,
    }
