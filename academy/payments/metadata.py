"""
Contrat des métadonnées Stripe (clé -> chaîne) entre création de session et réconciliation.

Clés:
- userId (toujours)
- programEnrollmentId                      -> ProgramPurchase
- courseId (+ courseSlug optionnel)        -> SinglePurchase
- isCartCheckout="true" + courseIds (JSON) -> CartPurchase

Les métadonnées sont validées dès la frontière (parse_purchase) pour éviter de
propager des champs optionnels dans le reste du service.
"""
import json
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel

# Limite Stripe: 500 caractères par valeur de metadata
METADATA_VALUE_MAX = 500

MISSING_INFO = "Required information missing from purchase session."
UNRECOGNIZED = "Unrecognized purchase type."


class PurchaseMetadataError(ValueError):
    """Métadonnées inexploitables; le message est destiné à l'utilisateur."""


class UnrecognizedPurchaseError(PurchaseMetadataError):
    def __init__(self, metadata: Mapping[str, Any]):
        super().__init__(UNRECOGNIZED)
        self.metadata = dict(metadata or {})


class ProgramPurchase(BaseModel):
    kind: Literal["program"] = "program"
    user_id: str
    program_enrollment_id: str


class SinglePurchase(BaseModel):
    kind: Literal["course"] = "course"
    user_id: str
    course_id: str
    course_slug: Optional[str] = None


class CartPurchase(BaseModel):
    kind: Literal["cart"] = "cart"
    user_id: str
    course_ids: List[str]


Purchase = Union[ProgramPurchase, SinglePurchase, CartPurchase]


# module academy.payments.metadata
def parse_purchase(metadata: Optional[Mapping[str, Any]]) -> Purchase:
    """
    Transforme les métadonnées brutes d'une session en variante typée.
    - userId absent -> PurchaseMetadataError(MISSING_INFO)
    - priorité: programme, puis cours unique, puis panier
    - panier: JSON invalide ou liste vide -> PurchaseMetadataError
    - aucune forme reconnue -> UnrecognizedPurchaseError
    """
    meta = dict(metadata or {})
    user_id = str(meta.get("userId") or "").strip()
    if not user_id:
        raise PurchaseMetadataError(MISSING_INFO)

    if meta.get("programEnrollmentId"):
        return ProgramPurchase(user_id=user_id, program_enrollment_id=str(meta["programEnrollmentId"]))

    if meta.get("courseId"):
        return SinglePurchase(
            user_id=user_id,
            course_id=str(meta["courseId"]),
            course_slug=meta.get("courseSlug") or None,
        )

    if meta.get("isCartCheckout") == "true":
        try:
            raw_ids = json.loads(meta.get("courseIds") or "")
        except (TypeError, ValueError):
            raise PurchaseMetadataError("Invalid cart data in purchase session.")
        if not isinstance(raw_ids, list):
            raise PurchaseMetadataError("Invalid cart data in purchase session.")
        course_ids = [str(c) for c in raw_ids if str(c or "").strip()]
        if not course_ids:
            raise PurchaseMetadataError("No courses found in cart checkout.")
        return CartPurchase(user_id=user_id, course_ids=course_ids)

    raise UnrecognizedPurchaseError(meta)


def program_metadata(user_id: str, program_enrollment_id: str) -> Dict[str, str]:
    return {"userId": user_id, "programEnrollmentId": program_enrollment_id}


def course_metadata(user_id: str, course_id: str, course_slug: Optional[str] = None) -> Dict[str, str]:
    meta = {"userId": user_id, "courseId": course_id}
    if course_slug:
        meta["courseSlug"] = course_slug
    return meta


def cart_metadata(user_id: str, course_ids: List[str]) -> Dict[str, str]:
    """
    Sérialise le panier en JSON compact.
    Pas de troncature: un JSON tronqué serait illisible à la réconciliation.
    """
    encoded = json.dumps([str(c) for c in course_ids], separators=(",", ":"))
    if len(encoded) > METADATA_VALUE_MAX:
        raise PurchaseMetadataError("Too many courses in cart for a single checkout.")
    return {"userId": user_id, "isCartCheckout": "true", "courseIds": encoded}
