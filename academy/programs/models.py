# module academy.programs.models
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

ClassType = Literal["punjabi", "math", "coding"]

# Catalogue fermé: (type, niveau) -> créneau (clé de academy.schedule.slots.SLOTS)
CLASS_CATALOGUE: Dict[str, Dict[str, str]] = {
    "punjabi": {
        "beginner": "sunday_beginner",
        "advanced": "sunday_advanced",
    },
    "math": {
        "grade1-5": "saturday_math_grade1_5",
        "grade6-8": "saturday_math_grade6_8",
        "grade9+": "saturday_math_grade9_plus",
    },
    "coding": {
        "beginner": "saturday_coding_beginner",
        "advanced": "saturday_coding_advanced",
    },
}

PROGRAM_SLOTS = ("sunday_beginner", "sunday_advanced")


def is_known_class(class_type: str, class_level: str, time_slot: str) -> bool:
    return CLASS_CATALOGUE.get(class_type, {}).get(class_level) == time_slot


class ClassChoice(BaseModel):
    class_type: ClassType
    class_level: str
    time_slot: str

    def key(self) -> Tuple[str, str, str]:
        return (self.class_type, self.class_level, self.time_slot)


class ChildIn(BaseModel):
    name: str = Field(min_length=2)
    age: int = Field(ge=3, le=18)
    classes: List[ClassChoice] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters.")
        return v


class FamilyRegistration(BaseModel):
    children: List[ChildIn] = Field(min_length=1)
    phone: Optional[str] = None
