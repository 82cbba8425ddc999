from datetime import datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from academy.config import SCHEDULE_TIMEZONE
from academy.programs import service as programs_service
from .projector import UpcomingOccurrence, group_by_day, project_all

# module academy.schedule.service
def upcoming_for_user(user_id: str, reference: Optional[datetime] = None) -> List[UpcomingOccurrence]:
    """Prochaines séances de chaque enfant de l'utilisateur, triées par date."""
    children = programs_service.list_children(user_id)
    return project_all(children, reference or datetime.now(ZoneInfo(SCHEDULE_TIMEZONE)))

def upcoming_by_day(occurrences: List[UpcomingOccurrence]) -> List[Dict[str, Any]]:
    return [
        {"date": day.isoformat(), "classes": [o.model_dump(mode="json") for o in items]}
        for day, items in group_by_day(occurrences).items()
    ]
