"""
Barème des suppléments du programme familial (logique pure, pas de Stripe, pas de DB).

L'abonnement de base couvre 2 enfants et 3 cours par enfant.
Au-delà: 20 $/mois par enfant supplémentaire, 50 $/mois par cours supplémentaire.
"""
from typing import Any, Dict, Iterable, List, Tuple

from pydantic import BaseModel

from academy.config import (
    CHECKOUT_CURRENCY,
    STRIPE_ADDITIONAL_CHILD_PRICE_ID,
    STRIPE_ADDITIONAL_CLASS_PRICE_ID,
)

INCLUDED_CHILDREN = 2
INCLUDED_CLASSES_PER_CHILD = 3
ADDITIONAL_CHILD_FEE = 20
ADDITIONAL_CLASS_FEE = 50


class Surcharges(BaseModel):
    extra_children: int
    extra_classes: int
    child_fee: int
    class_fee: int

    @property
    def total(self) -> int:
        return self.child_fee + self.class_fee


# module academy.payments.surcharges
def compute_surcharges(child_count: int, extra_class_count: int) -> Surcharges:
    """
    child_count: nombre total d'enfants inscrits.
    extra_class_count: nombre de cours au-delà du forfait, déjà sommé sur tous les enfants
    (voir count_extra_classes).
    """
    if child_count < 0 or extra_class_count < 0:
        raise ValueError("counts must be non-negative")
    extra_children = max(0, child_count - INCLUDED_CHILDREN)
    return Surcharges(
        extra_children=extra_children,
        extra_classes=extra_class_count,
        child_fee=extra_children * ADDITIONAL_CHILD_FEE,
        class_fee=extra_class_count * ADDITIONAL_CLASS_FEE,
    )

def count_extra_classes(class_counts: Iterable[int]) -> int:
    """Somme, enfant par enfant, des cours au-delà de INCLUDED_CLASSES_PER_CHILD."""
    return sum(max(0, int(n) - INCLUDED_CLASSES_PER_CHILD) for n in class_counts)

def _recurring_line(price_id: str, name: str, unit_fee: int, quantity: int, interval: str) -> Dict[str, Any]:
    # Les prix configurés sont mensuels; un abonnement annuel exige des lignes annuelles
    if price_id and interval == "month":
        return {"price": price_id, "quantity": quantity}
    months = 12 if interval == "year" else 1
    return {
        "quantity": quantity,
        "price_data": {
            "currency": CHECKOUT_CURRENCY,
            "unit_amount": unit_fee * months * 100,
            "recurring": {"interval": interval},
            "product_data": {"name": name},
        },
    }

def surcharge_line_items(surcharges: Surcharges, interval: str = "month") -> List[Dict[str, Any]]:
    """
    Lignes Stripe récurrentes pour les suppléments (quantité = unités supplémentaires).
    - Utilise STRIPE_ADDITIONAL_*_PRICE_ID si configuré (mensuel uniquement),
      sinon price_data inline; interval="year" facture 12 mois par unité.
    - Aucune ligne si aucun supplément.
    """
    line_items: List[Dict[str, Any]] = []
    if surcharges.extra_children > 0:
        line_items.append(_recurring_line(
            STRIPE_ADDITIONAL_CHILD_PRICE_ID, "Additional child", ADDITIONAL_CHILD_FEE,
            surcharges.extra_children, interval,
        ))
    if surcharges.extra_classes > 0:
        line_items.append(_recurring_line(
            STRIPE_ADDITIONAL_CLASS_PRICE_ID, "Additional class", ADDITIONAL_CLASS_FEE,
            surcharges.extra_classes, interval,
        ))
    return line_items

def family_counts(children: Iterable[Dict[str, Any]]) -> Tuple[int, int]:
    """(nombre d'enfants, cours au-delà du forfait) à partir des enfants et de leurs 'enrollments'."""
    children = list(children or [])
    extra = count_extra_classes(len(c.get("enrollments") or []) for c in children)
    return len(children), extra
