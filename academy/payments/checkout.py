"""
Création des sessions Stripe Checkout (cours, panier, programme familial).

Chaque session embarque exactement les métadonnées que la réconciliation
(academy.payments.service.verify_purchase) sait lire, et son success_url
contient le jeton {CHECKOUT_SESSION_ID} pour la vérification côté client.
"""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from fastapi import HTTPException

from academy.config import (
    APP_URL,
    CHECKOUT_CURRENCY,
    STRIPE_MONTHLY_PRICE_ID,
    STRIPE_YEARLY_PRICE_ID,
)
from academy.cart import repository as cart_repository
from academy.courses import repository as courses_repository
from academy.programs import repository as programs_repository
from academy.programs.models import PROGRAM_SLOTS
from . import metadata as meta
from . import repository
from . import stripe_client
from .surcharges import compute_surcharges, family_counts, surcharge_line_items

logger = logging.getLogger(__name__)

CONFIG_ERROR = "Server configuration error. Please contact support."
INITIATE_FAILED = "Failed to initiate enrollment. Please try again."


def to_minor_units(price: Any) -> int:
    """Prix (unités) -> centimes Stripe."""
    try:
        amount = int(round(float(price) * 100))
    except (TypeError, ValueError):
        raise ValueError(f"invalid price: {price!r}")
    if amount <= 0:
        raise ValueError(f"invalid price: {price!r}")
    return amount

def course_line_item(course: Dict[str, Any]) -> Dict[str, Any]:
    product: Dict[str, Any] = {"name": course.get("title") or "Course"}
    image = course.get("thumbnail_image_url") or course.get("image_url")
    if image:
        product["images"] = [image]
    return {
        "price_data": {
            "currency": CHECKOUT_CURRENCY,
            "product_data": product,
            "unit_amount": to_minor_units(course.get("price")),
        },
        "quantity": 1,
    }

# module academy.payments.checkout
def create_course_checkout_session(user: Dict[str, Any], course_slug: str, base_url: Optional[str] = None) -> Dict[str, Any]:
    """
    Achat unique d'un cours (mode "payment"), aucune ligne en base avant paiement.
    Erreurs: 404 cours inconnu, 409 déjà inscrit, 400 prix invalide.
    """
    base = (base_url or APP_URL).rstrip("/")
    user_id = str(user.get("id") or "")
    course = courses_repository.get_course_by_slug(course_slug)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found.")
    course_id = str(course.get("id"))
    if courses_repository.user_has_course(user_id, course_id):
        raise HTTPException(status_code=409, detail="You are already enrolled in this course.")

    try:
        line_item = course_line_item(course)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    slug = quote(str(course.get("slug") or course_slug), safe="")
    session = stripe_client.create_session(
        line_items=[line_item],
        mode="payment",
        success_url=f"{base}/courses/{slug}?success=true&session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{base}/courses/{slug}?canceled=true",
        metadata=meta.course_metadata(user_id, course_id, course.get("slug")),
        customer_email=user.get("email"),
    )
    logger.info("payments.checkout course session_id=%s user_id=%s course_id=%s", session.get("id"), user_id, course_id)
    return session

def create_cart_checkout_session(user: Dict[str, Any], base_url: Optional[str] = None) -> Dict[str, Any]:
    """
    Paiement du panier: une ligne par cours.
    Les cours déjà possédés sont exclus; panier vide (après exclusion) -> 400.
    """
    base = (base_url or APP_URL).rstrip("/")
    user_id = str(user.get("id") or "")
    items = cart_repository.list_cart_items(user_id)

    line_items: List[Dict[str, Any]] = []
    course_ids: List[str] = []
    for item in items:
        course = item.get("courses") or {}
        course_id = str(item.get("course_id") or "")
        if not course_id or not course or course_id in course_ids:
            continue
        if courses_repository.user_has_course(user_id, course_id):
            logger.info("payments.checkout cart skip_owned user_id=%s course_id=%s", user_id, course_id)
            continue
        try:
            line_items.append(course_line_item(course))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        course_ids.append(course_id)

    if not line_items:
        raise HTTPException(status_code=400, detail="Your cart is empty.")

    try:
        metadata = meta.cart_metadata(user_id, course_ids)
    except meta.PurchaseMetadataError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session = stripe_client.create_session(
        line_items=line_items,
        mode="payment",
        success_url=f"{base}/courses?success=true&checkout_session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{base}/courses?canceled=true",
        metadata=metadata,
        customer_email=user.get("email"),
    )
    logger.info("payments.checkout cart session_id=%s user_id=%s items=%s", session.get("id"), user_id, len(course_ids))
    return session

def create_program_checkout_session(
    user: Dict[str, Any],
    program_name: str,
    selected_slot: str,
    billing_cycle: str = "monthly",
    base_url: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Abonnement au programme familial.
    1) ligne program_enrollments 'pending_payment' (son id part dans les métadonnées)
    2) session "subscription": prix de base + suppléments (enfants/cours au-delà du forfait)
    3) id de session enregistré sur la ligne
    Échec après l'étape 1: la ligne passe en 'creation_failed'.
    """
    base = (base_url or APP_URL).rstrip("/")
    user_id = str(user.get("id") or "")
    if selected_slot not in PROGRAM_SLOTS:
        raise HTTPException(status_code=400, detail="Invalid program slot.")

    price_id = STRIPE_MONTHLY_PRICE_ID if billing_cycle == "monthly" else STRIPE_YEARLY_PRICE_ID
    if not price_id:
        logger.error("payments.checkout program price_missing billing_cycle=%s", billing_cycle)
        raise HTTPException(status_code=500, detail=CONFIG_ERROR)

    try:
        children = programs_repository.fetch_children_with_enrollments(user_id)
    except Exception:
        logger.exception("payments.checkout program children lookup failed user_id=%s", user_id)
        children = []
    child_count, extra_class_count = family_counts(children)
    surcharges = compute_surcharges(child_count, extra_class_count)
    interval = "year" if billing_cycle == "yearly" else "month"

    try:
        enrollment = repository.create_pending_program_enrollment(
            user_id=user_id,
            program_name=program_name,
            selected_slot=selected_slot,
            billing_cycle=billing_cycle,
        )
    except Exception:
        logger.exception("payments.checkout program insert failed user_id=%s", user_id)
        raise HTTPException(status_code=500, detail=INITIATE_FAILED)
    enrollment_id = str(enrollment["id"])

    success_url = (
        f"{base}/dashboard?program_enrollment=success"
        f"&program_name={quote(program_name, safe='')}&slot={quote(selected_slot, safe='')}"
        f"&session_id={{CHECKOUT_SESSION_ID}}"
    )
    try:
        session = stripe_client.create_session(
            line_items=[{"price": price_id, "quantity": 1}] + surcharge_line_items(surcharges, interval),
            mode="subscription",
            success_url=success_url,
            cancel_url=f"{base}/programs?canceled=true",
            metadata=meta.program_metadata(user_id, enrollment_id),
            customer_email=user.get("email"),
        )
    except Exception:
        logger.exception("payments.checkout program session failed enrollment_id=%s", enrollment_id)
        repository.mark_program_enrollment_failed(enrollment_id)
        raise

    try:
        repository.attach_checkout_session(enrollment_id, session.get("id"))
    except Exception:
        # La réconciliation retrouve la ligne via programEnrollmentId
        logger.exception("payments.checkout program attach_session failed enrollment_id=%s", enrollment_id)

    logger.info(
        "payments.checkout program session_id=%s enrollment_id=%s child_fee=%s class_fee=%s",
        session.get("id"), enrollment_id, surcharges.child_fee, surcharges.class_fee,
    )
    return session
