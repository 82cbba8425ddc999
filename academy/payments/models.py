# module academy.payments.models
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel


class VerifyResult(BaseModel):
    """Résultat de la réconciliation d'une session Checkout (jamais d'exception côté appelant)."""
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    # Vrai pour les courts-circuits d'idempotence (déjà traité)
    already_verified: bool = False
    # Panier: nombre d'inscriptions créées / ignorées (doublons) / en échec
    created: Optional[int] = None
    skipped: Optional[int] = None
    failed: Optional[int] = None


class VerifyRequest(BaseModel):
    session_id: Optional[str] = None
    checkout_session_id: Optional[str] = None

    def resolved_id(self) -> str:
        return (self.session_id or self.checkout_session_id or "").strip()


class CourseCheckoutRequest(BaseModel):
    course_slug: str


class ProgramCheckoutRequest(BaseModel):
    program_name: str
    selected_slot: str
    billing_cycle: Literal["monthly", "yearly"] = "monthly"


def checkout_response(session: Dict[str, Any]) -> Dict[str, Any]:
    return {"id": session.get("id"), "url": session.get("url")}
