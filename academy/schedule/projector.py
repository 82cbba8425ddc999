"""
Projection des créneaux hebdomadaires vers leurs prochaines dates (logique pure).

Une semaine commence le dimanche. Le créneau calculé doit être STRICTEMENT
postérieur à la référence: une référence égale à l'heure du créneau renvoie
l'occurrence de la semaine suivante.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel

from .slots import describe, get_slot

logger = logging.getLogger(__name__)


class UpcomingOccurrence(BaseModel):
    date: datetime
    child_name: str
    description: str
    slot: str


def _start_of_week(day_start: datetime) -> datetime:
    # datetime.weekday(): lundi=0 ... dimanche=6 -> décalage jusqu'au dimanche précédent
    return day_start - timedelta(days=(day_start.weekday() + 1) % 7)

# module academy.schedule.projector
def next_occurrence(slot_id: str, reference: datetime) -> Optional[datetime]:
    """
    Prochaine occurrence du créneau après `reference` (même tzinfo que la référence).
    Créneau inconnu: warning + None.
    """
    detail = get_slot(slot_id)
    if detail is None:
        logger.warning("schedule.next_occurrence unknown slot=%s", slot_id)
        return None

    day_start = reference.replace(hour=0, minute=0, second=0, microsecond=0)
    candidate = _start_of_week(day_start) + timedelta(days=detail.day)
    candidate = candidate.replace(hour=detail.hour, minute=detail.minute)
    if not candidate > reference:
        candidate += timedelta(weeks=1)
    return candidate

def project_all(children: Optional[Iterable[Mapping[str, Any]]], reference: datetime) -> List[UpcomingOccurrence]:
    """
    Une entrée par inscription de chaque enfant, triée par date croissante.
    Pas de dédoublonnage; un créneau inconnu est ignoré.
    """
    occurrences: List[UpcomingOccurrence] = []
    for child in children or []:
        for enrollment in child.get("enrollments") or []:
            slot = enrollment.get("time_slot") or ""
            when = next_occurrence(slot, reference)
            if when is None:
                continue
            occurrences.append(UpcomingOccurrence(
                date=when,
                child_name=child.get("name") or "",
                description=describe(slot),
                slot=slot,
            ))
    occurrences.sort(key=lambda o: o.date)
    return occurrences

def group_by_day(occurrences: Iterable[UpcomingOccurrence]) -> Dict[date, List[UpcomingOccurrence]]:
    """Regroupement par jour calendaire pour l'affichage (ordre conservé)."""
    grouped: Dict[date, List[UpcomingOccurrence]] = {}
    for occ in occurrences:
        grouped.setdefault(occ.date.date(), []).append(occ)
    return grouped
