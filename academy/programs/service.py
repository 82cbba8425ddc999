"""
Inscription familiale (enfants + cours) et lecture pour le tableau de bord.
"""
import logging
from typing import Any, Dict, List

from fastapi import HTTPException

from academy.payments import repository as payments_repository
from academy.payments.surcharges import family_counts
from . import repository
from .models import FamilyRegistration, is_known_class

logger = logging.getLogger(__name__)

# module academy.programs.service
def validate_classes(registration: FamilyRegistration) -> None:
    """Chaque (type, niveau, créneau) doit exister au catalogue; pas de doublon par enfant."""
    for child in registration.children:
        seen = set()
        for choice in child.classes:
            if not is_known_class(*choice.key()):
                raise HTTPException(
                    status_code=400,
                    detail=f"Unknown class selection: {choice.class_type}/{choice.class_level}/{choice.time_slot}",
                )
            if choice.key() in seen:
                raise HTTPException(status_code=400, detail=f"Duplicate class selection for {child.name}")
            seen.add(choice.key())

def register_family(user_id: str, registration: FamilyRegistration) -> Dict[str, Any]:
    """
    Enregistre les enfants puis leurs cours.
    - Rattache les enfants à l'inscription programme active, si elle existe.
    - Si l'insertion des cours échoue, les enfants créés sont supprimés.
    Retour: {"children": [...], "child_count", "extra_class_count"}
    """
    validate_classes(registration)

    try:
        program = payments_repository.get_active_program_enrollment(user_id)
    except Exception:
        logger.exception("programs.register active_program lookup failed user_id=%s", user_id)
        program = None
    program_id = (program or {}).get("id")

    child_rows = [
        {"user_id": user_id, "name": c.name, "age": c.age, "program_enrollment_id": program_id}
        for c in registration.children
    ]
    try:
        created = repository.insert_children(child_rows)
    except Exception:
        logger.exception("programs.register insert_children failed user_id=%s", user_id)
        raise HTTPException(status_code=500, detail="Failed to register children. Please try again.")
    if len(created) != len(registration.children):
        logger.error("programs.register children_mismatch user_id=%s expected=%s got=%s", user_id, len(registration.children), len(created))
        repository.delete_children([str(r.get("id")) for r in created if r.get("id")])
        raise HTTPException(status_code=500, detail="Failed to register children. Please try again.")

    enrollment_rows = []
    for child_in, child_row in zip(registration.children, created):
        for choice in child_in.classes:
            enrollment_rows.append({
                "child_id": child_row.get("id"),
                "class_type": choice.class_type,
                "class_level": choice.class_level,
                "time_slot": choice.time_slot,
            })
    try:
        enrollments = repository.insert_class_enrollments(enrollment_rows)
    except Exception:
        logger.exception("programs.register insert_class_enrollments failed user_id=%s", user_id)
        repository.delete_children([str(r.get("id")) for r in created if r.get("id")])
        raise HTTPException(status_code=500, detail="Failed to save class selections. Please try again.")

    by_child: Dict[str, List[Dict[str, Any]]] = {}
    for e in enrollments:
        by_child.setdefault(str(e.get("child_id")), []).append(e)
    children = [dict(row, enrollments=by_child.get(str(row.get("id")), [])) for row in created]

    child_count, extra_class_count = family_counts(children)
    logger.info(
        "programs.register ok user_id=%s children=%s classes=%s",
        user_id, len(children), len(enrollments),
    )
    return {"children": children, "child_count": child_count, "extra_class_count": extra_class_count}

def list_children(user_id: str) -> List[Dict[str, Any]]:
    try:
        return repository.fetch_children_with_enrollments(user_id)
    except Exception:
        logger.exception("programs.list_children failed user_id=%s", user_id)
        return []
