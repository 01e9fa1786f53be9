"""Datenmodell für Schülernoten und Test-Statistiken (Pydantic v2)."""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_grade_id() -> str:
    return uuid4().hex


class ElementGrade(BaseModel):
    """Punktzahl eines Schülers für ein Element eines zusammengesetzten Tests."""

    element_id: str
    points_earned: float = 0.0


class Grade(BaseModel):
    """Ergebnis eines Schülers in einem Test.

    ``calculated_grade`` ist das Formelergebnis vor Rundung,
    ``final_grade`` die gerundete Note oder die manuelle Überschreibung.
    """

    id: str = Field(default_factory=new_grade_id)
    test_id: str
    student_id: int
    school_year: str                          # beim Speichern vom Test übernommen
    points_earned: Optional[float] = None     # nur bei CvTE-Tests
    element_grades: list[ElementGrade] = []   # nur bei zusammengesetzten Tests
    manual_override: Optional[float] = None
    calculated_grade: float = 0.0
    final_grade: float = 0.0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def key(self) -> tuple[str, int]:
        return self.test_id, self.student_id

    @property
    def is_overridden(self) -> bool:
        return self.manual_override is not None


class GradeStatistics(BaseModel):
    """Kennzahlen über alle Noten eines Tests."""

    average: float = 0.0
    highest: float = 0.0
    lowest: float = 0.0
    under_threshold: int = 0     # Noten < 5,5
    above_threshold: int = 0     # Noten ≥ 5,5
    total_graded: int = 0
