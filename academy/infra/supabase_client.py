from typing import Optional
from supabase import create_client, Client
from academy.config import SUPABASE_URL, SUPABASE_ANON, SUPABASE_SERVICE_KEY

_supabase: Optional[Client] = None
_service_supabase: Optional[Client] = None

def get_supabase() -> Client:
    global _supabase
    if _supabase is None:
        if not SUPABASE_URL or not SUPABASE_ANON:
            raise RuntimeError("SUPABASE_URL/SUPABASE_ANON_KEY manquants")
        _supabase = create_client(SUPABASE_URL, SUPABASE_ANON)
    return _supabase

def get_service_supabase() -> Client:
    """
    Client service-role (bypass RLS): réservé aux écritures initiées par le serveur
    (webhook Stripe, réconciliation d'achats).
    """
    global _service_supabase
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    return _service_supabase

# Code Postgres: violation de contrainte d'unicité (remonté par PostgREST dans APIError.code)
UNIQUE_VIOLATION = "23505"

def is_unique_violation(exc: Exception) -> bool:
    return str(getattr(exc, "code", "") or "") == UNIQUE_VIOLATION
