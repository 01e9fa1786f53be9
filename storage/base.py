"""Schnittstelle zwischen Notenberechnung und Persistenz.

Das Schuljahr wird immer explizit übergeben; ein Repository liest keine
globalen Einstellungen.
"""

from abc import ABC, abstractmethod
from typing import Optional

from models.assessment import Test
from models.grade import Grade


class StorageError(RuntimeError):
    """Datenbestand nicht lesbar oder nicht schreibbar."""


class GradeRepository(ABC):
    """Tests und Noten lesen/schreiben."""

    # ─── Tests ───

    @abstractmethod
    def list_tests(self, school_year: Optional[str] = None,
                   class_group: Optional[str] = None) -> list[Test]:
        """Alle Tests, optional gefiltert nach Schuljahr und Klasse."""

    @abstractmethod
    def get_test(self, test_id: str) -> Optional[Test]:
        ...

    @abstractmethod
    def add_test(self, test: Test) -> None:
        ...

    @abstractmethod
    def replace_test(self, test: Test) -> None:
        """Ersetzt den Test mit gleicher ID."""

    @abstractmethod
    def remove_test_cascade(self, test_id: str) -> bool:
        """Löscht Test und alle zugehörigen Noten. False wenn unbekannt."""

    # ─── Noten ───

    @abstractmethod
    def list_grades(self, test_id: Optional[str] = None,
                    school_year: Optional[str] = None,
                    student_id: Optional[int] = None) -> list[Grade]:
        ...

    def get_grade(self, test_id: str, student_id: int) -> Optional[Grade]:
        matches = self.list_grades(test_id=test_id, student_id=student_id)
        return matches[0] if matches else None

    @abstractmethod
    def upsert_grade(self, grade: Grade) -> None:
        """Speichert eine Note; Schlüssel ist (test_id, student_id)."""

    @abstractmethod
    def replace_grades_for_test(self, test_id: str, grades: list[Grade]) -> None:
        """Ersetzt alle Noten eines Tests in einem Schreibvorgang."""
