from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request

COOKIE_NAME = "sb_access"

def _token_from_request(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    token = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
    return token or request.cookies.get(COOKIE_NAME)

# module academy.utils.security
def get_current_user(request: Request) -> Dict[str, Any]:
    token = _token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        from academy.auth.service import get_user_from_token
        user = get_user_from_token(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Session expired, please sign in again")
    if not user.get("id"):
        raise HTTPException(status_code=401, detail="Session expired, please sign in again")
    return user

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

def optional_user(request: Request) -> Optional[Dict[str, Any]]:
    """Utilisateur courant ou None (pages publiques enrichies si connecté)."""
    try:
        return get_current_user(request)
    except HTTPException:
        return None
