"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
"""
import stripe
from typing import Any, Dict, List, Optional
from fastapi import Request

from academy.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET, STRIPE_API_VERSION

# module academy.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - En absence de clé, les appels Stripe échoueront côté SDK (ex: No API key provided).
    """
    if STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
    if STRIPE_API_VERSION:
        stripe.api_version = STRIPE_API_VERSION
    return stripe

def as_dict(obj: Any) -> Dict[str, Any]:
    # StripeObject -> dict récursif (les objets expandés restent lisibles via .get)
    if hasattr(obj, "to_dict_recursive"):
        return obj.to_dict_recursive()
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    mode: str,
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, str],
    customer_email: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    - mode: "payment" (cours, panier) ou "subscription" (programme familial)
    - success_url: doit contenir le jeton {CHECKOUT_SESSION_ID}
    - metadata: contrat de academy.payments.metadata
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    params: Dict[str, Any] = {
        "line_items": line_items,
        "mode": mode,
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata,
        "payment_method_types": ["card"],
    }
    if customer_email:
        params["customer_email"] = customer_email
    session = stripe.checkout.Session.create(**params)
    return as_dict(session)

def get_session(session_id: str, expand: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Récupère une session Stripe Checkout par son identifiant.
    expand=["subscription"] pour obtenir l'objet abonnement (programmes).
    """
    require_stripe()
    if expand:
        session = stripe.checkout.Session.retrieve(session_id, expand=expand)
    else:
        session = stripe.checkout.Session.retrieve(session_id)
    return as_dict(session)

def subscription_id_of(session: Dict[str, Any]) -> Optional[str]:
    """Lit l'id d'abonnement, que la session soit expandée (dict) ou non (str)."""
    sub = (session or {}).get("subscription")
    if isinstance(sub, str):
        return sub or None
    if isinstance(sub, dict):
        return sub.get("id") or None
    return getattr(sub, "id", None)

async def parse_event(request: Request):
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    - Valide la signature via Webhook.construct_event (STRIPE_WEBHOOK_SECRET)
    Lève ValueError (payload) ou stripe.SignatureVerificationError (signature).
    """
    require_stripe()
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    if not sig_header or not STRIPE_WEBHOOK_SECRET:
        raise ValueError("Webhook signature or secret missing")
    return stripe.Webhook.construct_event(payload, sig_header, STRIPE_WEBHOOK_SECRET)
