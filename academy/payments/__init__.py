"""
Module 'payments' (feature-first): point d'entrée public.
Réunit métadonnées Stripe, client Stripe, barème des suppléments, création de sessions et réconciliation.
"""

from .metadata import (
    CartPurchase,
    ProgramPurchase,
    Purchase,
    PurchaseMetadataError,
    SinglePurchase,
    UnrecognizedPurchaseError,
    cart_metadata,
    course_metadata,
    parse_purchase,
    program_metadata,
)
from .stripe_client import require_stripe, create_session, get_session, parse_event
from .surcharges import Surcharges, compute_surcharges, count_extra_classes, surcharge_line_items
from .checkout import (
    create_cart_checkout_session,
    create_course_checkout_session,
    create_program_checkout_session,
)
from .service import handle_checkout_completed, handle_webhook_event, verify_purchase
from .models import VerifyResult

__all__ = [
    # metadata
    "CartPurchase",
    "ProgramPurchase",
    "Purchase",
    "PurchaseMetadataError",
    "SinglePurchase",
    "UnrecognizedPurchaseError",
    "cart_metadata",
    "course_metadata",
    "parse_purchase",
    "program_metadata",
    # stripe
    "require_stripe",
    "create_session",
    "get_session",
    "parse_event",
    # surcharges
    "Surcharges",
    "compute_surcharges",
    "count_extra_classes",
    "surcharge_line_items",
    # checkout
    "create_cart_checkout_session",
    "create_course_checkout_session",
    "create_program_checkout_session",
    # reconciliation
    "VerifyResult",
    "handle_checkout_completed",
    "handle_webhook_event",
    "verify_purchase",
]
