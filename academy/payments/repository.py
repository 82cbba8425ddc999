"""
Accès aux données pour la réconciliation des achats (feature 'payments').

Toutes les écritures passent par le client service-role: elles sont déclenchées
soit par le webhook Stripe (aucun utilisateur), soit après vérification de la
session auprès de Stripe (source de vérité), jamais sur la seule foi du client.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from postgrest.exceptions import APIError

import academy.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

PROGRAM_ENROLLMENTS = "program_enrollments"
COURSE_ENROLLMENTS = "user_course_enrollments"

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

# module academy.payments.repository
def find_program_enrollment_by_session(session_id: str) -> Optional[Dict[str, Any]]:
    """Pré-contrôle: inscription programme déjà liée à la session (id, status) ou None."""
    res = (
        supabase_client.get_service_supabase()
        .table(PROGRAM_ENROLLMENTS)
        .select("id, status")
        .eq("stripe_checkout_session_id", session_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def find_course_enrollment_by_session(session_id: str) -> Optional[Dict[str, Any]]:
    """Pré-contrôle: première inscription cours liée à la session (id) ou None."""
    res = (
        supabase_client.get_service_supabase()
        .table(COURSE_ENROLLMENTS)
        .select("id")
        .eq("stripe_checkout_session_id", session_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def get_program_enrollment(enrollment_id: str, user_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table(PROGRAM_ENROLLMENTS)
        .select("id, status, stripe_subscription_id, stripe_checkout_session_id")
        .eq("id", enrollment_id)
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def activate_program_enrollment(
    *,
    enrollment_id: str,
    user_id: str,
    subscription_id: str,
    session_id: str,
) -> List[Dict[str, Any]]:
    """
    Passe l'inscription programme à 'active' (une seule requête UPDATE).
    - Filtre id ET user_id: empêche une écriture sur le compte d'un autre utilisateur.
    - Garde status != 'active': le second déclencheur d'une course ne modifie rien.
    Retour: lignes modifiées ([] si rien à faire).
    """
    res = (
        supabase_client.get_service_supabase()
        .table(PROGRAM_ENROLLMENTS)
        .update({
            "status": "active",
            "stripe_subscription_id": subscription_id,
            "stripe_checkout_session_id": session_id,
            "updated_at": _now_iso(),
        })
        .eq("id", enrollment_id)
        .eq("user_id", user_id)
        .neq("status", "active")
        .execute()
    )
    return res.data or []

def insert_course_enrollment(
    *,
    user_id: str,
    course_id: str,
    session_id: str,
    price_paid: Optional[float],
) -> bool:
    """
    Insère une inscription cours.
    - True: ligne créée
    - False: doublon (contrainte unique (user_id, course_id)) -> déjà satisfait
    Les autres erreurs base de données sont propagées.
    """
    try:
        (
            supabase_client.get_service_supabase()
            .table(COURSE_ENROLLMENTS)
            .insert({
                "user_id": user_id,
                "course_id": course_id,
                "stripe_checkout_session_id": session_id,
                "price_paid": price_paid,
            })
            .execute()
        )
        return True
    except APIError as e:
        if supabase_client.is_unique_violation(e):
            logger.info("payments.repository.insert_course_enrollment duplicate user_id=%s course_id=%s", user_id, course_id)
            return False
        raise

def create_pending_program_enrollment(
    *,
    user_id: str,
    program_name: str,
    selected_slot: str,
    billing_cycle: str,
) -> Dict[str, Any]:
    """
    Crée la ligne 'pending_payment' AVANT la session Stripe: son id voyage
    dans les métadonnées (programEnrollmentId) jusqu'à la réconciliation.
    """
    res = (
        supabase_client.get_service_supabase()
        .table(PROGRAM_ENROLLMENTS)
        .insert({
            "user_id": user_id,
            "program_name": program_name,
            "selected_slot": selected_slot,
            "billing_cycle": billing_cycle,
            "status": "pending_payment",
        })
        .execute()
    )
    rows = res.data or []
    if not rows or not rows[0].get("id"):
        raise RuntimeError("program enrollment insert returned no row")
    return rows[0]

def attach_checkout_session(enrollment_id: str, session_id: str) -> None:
    (
        supabase_client.get_service_supabase()
        .table(PROGRAM_ENROLLMENTS)
        .update({"stripe_checkout_session_id": session_id, "updated_at": _now_iso()})
        .eq("id", enrollment_id)
        .execute()
    )

def mark_program_enrollment_failed(enrollment_id: str) -> None:
    """Best effort: une erreur ici est journalisée, jamais propagée."""
    try:
        (
            supabase_client.get_service_supabase()
            .table(PROGRAM_ENROLLMENTS)
            .update({"status": "creation_failed", "updated_at": _now_iso()})
            .eq("id", enrollment_id)
            .neq("status", "active")
            .execute()
        )
    except Exception:
        logger.exception("payments.repository.mark_program_enrollment_failed enrollment_id=%s", enrollment_id)

def get_active_program_enrollment(user_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table(PROGRAM_ENROLLMENTS)
        .select("id, program_name, selected_slot, billing_cycle, status")
        .eq("user_id", user_id)
        .eq("status", "active")
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None
