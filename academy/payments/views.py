import logging
from typing import Any, Dict, Optional

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from academy.utils.security import require_user
from academy.utils.rate_limit import optional_rate_limit
from academy.payments import checkout
from academy.payments import service as payments_service
from academy.payments import stripe_client
from academy.payments.models import (
    CourseCheckoutRequest,
    ProgramCheckoutRequest,
    VerifyRequest,
    VerifyResult,
    checkout_response,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

# module academy.payments.views
@router.post("/checkout/course", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_course_checkout(payload: CourseCheckoutRequest, user: Dict[str, Any] = Depends(require_user)):
    """
    Session Checkout pour un cours.
    - Entrée JSON: {"course_slug": "..."}
    - Sortie: {"id": "cs_...", "url": "https://checkout.stripe.com/..."}
    - Erreurs: 404 cours inconnu, 409 déjà inscrit, 400 échec Stripe
    """
    try:
        session = checkout.create_course_checkout_session(user, payload.course_slug)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("payments.checkout course failed slug=%s", payload.course_slug)
        raise HTTPException(status_code=400, detail=str(e))
    return checkout_response(session)

@router.post("/checkout/cart", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_cart_checkout(user: Dict[str, Any] = Depends(require_user)):
    """Session Checkout pour le panier de l'utilisateur. 400 si panier vide."""
    try:
        session = checkout.create_cart_checkout_session(user)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("payments.checkout cart failed user_id=%s", user.get("id"))
        raise HTTPException(status_code=400, detail=str(e))
    return checkout_response(session)

@router.post("/checkout/program", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_program_checkout(payload: ProgramCheckoutRequest, user: Dict[str, Any] = Depends(require_user)):
    try:
        session = checkout.create_program_checkout_session(
            user,
            payload.program_name,
            payload.selected_slot,
            payload.billing_cycle,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("payments.checkout program failed user_id=%s", user.get("id"))
        raise HTTPException(status_code=400, detail=str(e))
    return checkout_response(session)

@router.get("/verify", response_model=VerifyResult)
def verify_get(
    session_id: Optional[str] = None,
    checkout_session_id: Optional[str] = None,
    user: Dict[str, Any] = Depends(require_user),
):
    """
    Vérification côté client après redirection (success_url).
    - Accepte session_id (cours, programme) ou checkout_session_id (panier)
    - 200 avec le VerifyResult (success true/false); 400 si identifiant absent
    """
    resolved = VerifyRequest(session_id=session_id, checkout_session_id=checkout_session_id).resolved_id()
    if not resolved:
        raise HTTPException(status_code=400, detail=payments_service.SESSION_REQUIRED)
    return payments_service.verify_purchase(resolved, expected_user_id=user.get("id"))

@router.post("/verify", response_model=VerifyResult)
async def verify_post(request: Request, user: Dict[str, Any] = Depends(require_user)):
    """Variante POST: identifiant en query ou en JSON {"session_id": "..."}."""
    payload = VerifyRequest(
        session_id=request.query_params.get("session_id"),
        checkout_session_id=request.query_params.get("checkout_session_id"),
    )
    if not payload.resolved_id():
        try:
            body = await request.json()
        except Exception:
            body = None
        if isinstance(body, dict):
            payload = VerifyRequest(
                session_id=body.get("session_id"),
                checkout_session_id=body.get("checkout_session_id"),
            )
    resolved = payload.resolved_id()
    if not resolved:
        raise HTTPException(status_code=400, detail=payments_service.SESSION_REQUIRED)
    return payments_service.verify_purchase(resolved, expected_user_id=user.get("id"))

@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe.
    - Signature invalide/absente: 400, aucun traitement
    - Événement authentifié: toujours 200 {"received": true} (+ "warning" si le traitement a échoué)
    """
    try:
        event = await stripe_client.parse_event(request)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("payments.webhook rejected error=%s", e)
        raise HTTPException(status_code=400, detail=f"Webhook Error: {e}")

    try:
        result = payments_service.handle_webhook_event(stripe_client.as_dict(event))
    except Exception as e:
        logger.exception("payments.webhook processing crashed")
        result = {"received": True, "error": str(e)}
    return JSONResponse(result)
