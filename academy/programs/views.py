from typing import Any, Dict

from fastapi import APIRouter, Depends

from academy.utils.security import require_user
from academy.utils.rate_limit import optional_rate_limit
from academy.programs import service
from academy.programs.models import CLASS_CATALOGUE, FamilyRegistration
from academy.schedule.slots import describe

router = APIRouter(prefix="/api/v1/programs", tags=["Programs API"])

# module academy.programs.views
@router.get("/classes")
def list_classes():
    """Catalogue des cours du programme familial (type -> niveaux -> créneau)."""
    return {
        "classes": [
            {
                "class_type": class_type,
                "levels": [
                    {"class_level": level, "time_slot": slot, "description": describe(slot)}
                    for level, slot in levels.items()
                ],
            }
            for class_type, levels in CLASS_CATALOGUE.items()
        ]
    }

@router.post("/register", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def register(payload: FamilyRegistration, user: Dict[str, Any] = Depends(require_user)):
    return service.register_family(user["id"], payload)

@router.get("/children")
def children(user: Dict[str, Any] = Depends(require_user)):
    return {"children": service.list_children(user["id"])}
