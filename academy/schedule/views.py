from typing import Any, Dict

from fastapi import APIRouter, Depends

from academy.utils.security import require_user
from academy.schedule import service

router = APIRouter(prefix="/api/v1/schedule", tags=["Schedule API"])

# module academy.schedule.views
@router.get("/upcoming")
def upcoming(user: Dict[str, Any] = Depends(require_user)):
    """Séances à venir (liste triée) et regroupement par jour pour l'affichage."""
    occurrences = service.upcoming_for_user(user["id"])
    return {
        "upcoming": [o.model_dump(mode="json") for o in occurrences],
        "by_day": service.upcoming_by_day(occurrences),
    }
