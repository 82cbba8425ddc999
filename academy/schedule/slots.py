# module academy.schedule.slots
from typing import Dict, NamedTuple, Optional


class SlotDetail(NamedTuple):
    day: int  # 0 = dimanche ... 6 = samedi
    hour: int
    minute: int
    description: str


SLOTS: Dict[str, SlotDetail] = {
    # Punjabi
    "sunday_beginner": SlotDetail(0, 10, 0, "Punjabi/Gurmukhi (Beginner)"),
    "sunday_advanced": SlotDetail(0, 11, 30, "Punjabi/Gurmukhi (Mid/Advanced)"),
    # Math
    "saturday_math_grade1_5": SlotDetail(6, 11, 0, "Math (Grade 1-5)"),
    "saturday_math_grade6_8": SlotDetail(6, 12, 30, "Math (Grade 6-8)"),
    "saturday_math_grade9_plus": SlotDetail(6, 14, 0, "Math (Grade 9+)"),
    # Coding
    "saturday_coding_beginner": SlotDetail(6, 16, 0, "Coding (Beginner)"),
    "saturday_coding_advanced": SlotDetail(6, 18, 0, "Coding (Mid/Advanced)"),
}

def get_slot(slot_id: str) -> Optional[SlotDetail]:
    return SLOTS.get(slot_id or "")

def describe(slot_id: str) -> str:
    detail = get_slot(slot_id)
    return detail.description if detail else f"Unknown Class ({slot_id})"
