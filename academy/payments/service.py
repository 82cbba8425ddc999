"""
Cas d'usage 'payments': réconciliation d'une session Checkout en droits durables.

verify_purchase(session_id) est appelé deux fois pour un même paiement:
- par le client après la redirection (success_url)
- par le webhook Stripe (checkout.session.completed)
Les deux chemins convergent sans dupliquer d'effet (livraison au moins une fois,
effet exactement une fois), uniquement grâce à la base:
- pré-contrôle des inscriptions déjà liées à la session
- contrainte unique (user_id, course_id) sur les inscriptions cours
- UPDATE gardé par status != 'active' sur les inscriptions programme
"""
import logging
from typing import Any, Dict, Optional

from academy.infra.revalidate import revalidate_path
from academy.cart import repository as cart_repository
from . import repository
from . import stripe_client
from . import metadata as meta
from .metadata import CartPurchase, ProgramPurchase, Purchase, SinglePurchase
from .models import VerifyResult

logger = logging.getLogger(__name__)

SESSION_REQUIRED = "Session ID is required."
ALREADY_VERIFIED = "Purchase already verified."
PRECHECK_FAILED = "Database error during pre-check."
NOT_COMPLETED = "Payment not completed successfully."
SUBSCRIPTION_MISSING = "Subscription details missing."
UPDATE_FAILED = "Failed to update enrollment record."
OTHER_ACCOUNT = "This purchase belongs to another account."
UNKNOWN_ERROR = "An unknown error occurred during verification."

HANDLED_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")


def _fail(error: str) -> VerifyResult:
    return VerifyResult(success=False, error=error)

def _already(session_id: str, message: str = ALREADY_VERIFIED, **ctx: Any) -> VerifyResult:
    logger.info("payments.verify already_verified session_id=%s %s", session_id, " ".join(f"{k}={v}" for k, v in ctx.items()))
    return VerifyResult(success=True, message=message, already_verified=True)

def is_session_paid(session: Dict[str, Any]) -> bool:
    """Stripe fait foi: session 'complete' ou paiement 'paid' suffit."""
    return session.get("status") == "complete" or session.get("payment_status") == "paid"

def to_major_units(amount_minor: Optional[int]) -> Optional[float]:
    """Centimes -> unités (None si total absent ou nul)."""
    if not amount_minor:
        return None
    return amount_minor / 100

# module academy.payments.service
def verify_purchase(session_id: str, expected_user_id: Optional[str] = None) -> VerifyResult:
    """
    Vérifie une session Checkout et écrit les droits correspondants, une seule fois.
    Étapes:
      1) pré-contrôle en base (session déjà traitée -> succès "déjà vérifié", aucune écriture)
      2) lecture de la session chez Stripe (expand subscription)
      3) contrôle de complétion (status/payment_status)
      4) dispatch selon les métadonnées (programme, cours, panier)
    expected_user_id: si fourni (chemin client), la session doit appartenir à cet utilisateur.
    Toute erreur est retournée dans VerifyResult(success=False, error=...).
    """
    session_id = (session_id or "").strip()
    if not session_id:
        return _fail(SESSION_REQUIRED)

    logger.info("payments.verify start session_id=%s", session_id)
    try:
        try:
            program = repository.find_program_enrollment_by_session(session_id)
            if program and program.get("status") == "active":
                return _already(session_id, program_enrollment_id=program.get("id"))
            course = repository.find_course_enrollment_by_session(session_id)
        except Exception:
            logger.exception("payments.verify precheck failed session_id=%s", session_id)
            return _fail(PRECHECK_FAILED)
        if course:
            return _already(session_id, course_enrollment_id=course.get("id"))

        session = stripe_client.get_session(session_id, expand=["subscription"])
        logger.info(
            "payments.verify retrieved session_id=%s status=%s payment_status=%s",
            session_id, session.get("status"), session.get("payment_status"),
        )
        if not is_session_paid(session):
            logger.info("payments.verify not_paid session_id=%s", session_id)
            return _fail(NOT_COMPLETED)

        try:
            purchase = meta.parse_purchase(session.get("metadata"))
        except meta.UnrecognizedPurchaseError as e:
            logger.warning("payments.verify unrecognized session_id=%s metadata=%s", session_id, e.metadata)
            return _fail(str(e))
        except meta.PurchaseMetadataError as e:
            logger.error("payments.verify bad_metadata session_id=%s error=%s metadata=%s", session_id, e, session.get("metadata"))
            return _fail(str(e))

        if expected_user_id and purchase.user_id != expected_user_id:
            logger.warning("payments.verify user_mismatch session_id=%s expected=%s", session_id, expected_user_id)
            return _fail(OTHER_ACCOUNT)

        return apply_purchase(purchase, session, session_id)
    except Exception as e:
        logger.exception("payments.verify failed session_id=%s", session_id)
        return _fail(str(e) or UNKNOWN_ERROR)

def apply_purchase(purchase: Purchase, session: Dict[str, Any], session_id: str) -> VerifyResult:
    if isinstance(purchase, ProgramPurchase):
        return _complete_program(purchase, session, session_id)
    if isinstance(purchase, SinglePurchase):
        return _complete_course(purchase, session, session_id)
    if isinstance(purchase, CartPurchase):
        return _complete_cart(purchase, session, session_id)
    raise TypeError(f"unsupported purchase {purchase!r}")

def _complete_program(purchase: ProgramPurchase, session: Dict[str, Any], session_id: str) -> VerifyResult:
    subscription_id = stripe_client.subscription_id_of(session)
    if not subscription_id:
        logger.error(
            "payments.verify subscription_missing session_id=%s program_enrollment_id=%s",
            session_id, purchase.program_enrollment_id,
        )
        return _fail(SUBSCRIPTION_MISSING)

    try:
        updated = repository.activate_program_enrollment(
            enrollment_id=purchase.program_enrollment_id,
            user_id=purchase.user_id,
            subscription_id=subscription_id,
            session_id=session_id,
        )
        current = None if updated else repository.get_program_enrollment(purchase.program_enrollment_id, purchase.user_id)
    except Exception as e:
        logger.exception("payments.verify program_update failed program_enrollment_id=%s", purchase.program_enrollment_id)
        return _fail(str(e) or UPDATE_FAILED)

    if not updated:
        if current and current.get("status") == "active":
            return _already(session_id, program_enrollment_id=purchase.program_enrollment_id)
        logger.error(
            "payments.verify program_not_found program_enrollment_id=%s user_id=%s",
            purchase.program_enrollment_id, purchase.user_id,
        )
        return _fail(UPDATE_FAILED)

    logger.info("payments.verify program_activated program_enrollment_id=%s session_id=%s", purchase.program_enrollment_id, session_id)
    revalidate_path("/dashboard")
    return VerifyResult(success=True, message="Program enrollment verified.")

def _complete_course(purchase: SinglePurchase, session: Dict[str, Any], session_id: str) -> VerifyResult:
    price_paid = to_major_units(session.get("amount_total"))
    try:
        created = repository.insert_course_enrollment(
            user_id=purchase.user_id,
            course_id=purchase.course_id,
            session_id=session_id,
            price_paid=price_paid,
        )
    except Exception as e:
        logger.exception("payments.verify course_insert failed course_id=%s session_id=%s", purchase.course_id, session_id)
        return _fail(str(e) or UNKNOWN_ERROR)

    if not created:
        return _already(session_id, "Course purchase already verified.", course_id=purchase.course_id)

    logger.info("payments.verify course_enrolled course_id=%s user_id=%s session_id=%s", purchase.course_id, purchase.user_id, session_id)
    if purchase.course_slug:
        revalidate_path(f"/courses/{purchase.course_slug}")
    revalidate_path("/dashboard")
    return VerifyResult(success=True, message="Course purchase verified.")

def _complete_cart(purchase: CartPurchase, session: Dict[str, Any], session_id: str) -> VerifyResult:
    """
    Inscriptions séquentielles, une par cours du panier.
    - prix uniforme: total / nombre de cours (arrondi au centime)
    - doublon: ignoré et compté; autre échec: journalisé, compté, on continue
    - le panier n'est vidé qu'après avoir tenté chaque insertion
    """
    total = to_major_units(session.get("amount_total"))
    per_course = round(total / len(purchase.course_ids), 2) if total is not None else None

    created = skipped = failed = 0
    for course_id in purchase.course_ids:
        try:
            if repository.insert_course_enrollment(
                user_id=purchase.user_id,
                course_id=course_id,
                session_id=session_id,
                price_paid=per_course,
            ):
                created += 1
            else:
                skipped += 1
        except Exception:
            failed += 1
            logger.exception("payments.verify cart_item failed course_id=%s session_id=%s", course_id, session_id)

    try:
        removed = cart_repository.clear_cart(purchase.user_id)
        logger.info("payments.verify cart_cleared user_id=%s removed=%s", purchase.user_id, removed)
    except Exception:
        logger.exception("payments.verify cart_clear failed user_id=%s", purchase.user_id)

    logger.info(
        "payments.verify cart_done session_id=%s created=%s skipped=%s failed=%s",
        session_id, created, skipped, failed,
    )
    revalidate_path("/courses")
    revalidate_path("/dashboard")
    return VerifyResult(
        success=True,
        message=f"Cart purchase verified. {created} new enrollment(s) created.",
        already_verified=(created == 0 and failed == 0),
        created=created,
        skipped=skipped,
        failed=failed,
    )

def handle_checkout_completed(session: Dict[str, Any]) -> VerifyResult:
    """
    Chemin webhook: même contrat que le chemin client.
    La session est relue chez Stripe par verify_purchase, la charge utile de l'événement ne fait pas foi.
    """
    session_id = str((session or {}).get("id") or "")
    return verify_purchase(session_id)

def handle_webhook_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Traite un événement Stripe déjà authentifié.
    Retourne toujours {"received": True}: le code HTTP accuse réception, pas le succès;
    un échec est journalisé en warning pour suivi manuel.
    """
    event_type = (event or {}).get("type")
    if event_type not in HANDLED_EVENTS:
        logger.info("payments.webhook ignored type=%s", event_type)
        return {"received": True}

    session = ((event.get("data") or {}).get("object") or {})
    result = handle_checkout_completed(session)
    if not result.success:
        logger.warning(
            "payments.webhook processing_failed event_id=%s session_id=%s error=%s",
            event.get("id"), session.get("id"), result.error,
        )
        return {"received": True, "warning": result.error}
    logger.info("payments.webhook processed event_id=%s session_id=%s message=%s", event.get("id"), session.get("id"), result.message)
    return {"received": True, "message": result.message}
