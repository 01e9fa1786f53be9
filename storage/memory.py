"""Flüchtiger Speicher (für Tests und Einbettung)."""

from typing import Optional

from models.assessment import Test
from models.grade import Grade
from storage.base import GradeRepository


def filter_tests(tests: list[Test], school_year: Optional[str],
                 class_group: Optional[str]) -> list[Test]:
    return [
        t for t in tests
        if (school_year is None or t.school_year == school_year)
        and (class_group is None or class_group in t.class_groups)
    ]


def filter_grades(grades: list[Grade], test_id: Optional[str],
                  school_year: Optional[str], student_id: Optional[int]) -> list[Grade]:
    return [
        g for g in grades
        if (test_id is None or g.test_id == test_id)
        and (school_year is None or g.school_year == school_year)
        and (student_id is None or g.student_id == student_id)
    ]


def merge_grade(grades: list[Grade], grade: Grade) -> list[Grade]:
    """Neue Liste mit ``grade`` anstelle der Note mit gleichem Schlüssel."""
    result = [g for g in grades if g.key != grade.key]
    result.append(grade)
    return result


class MemoryGradeStore(GradeRepository):

    def __init__(self, tests: Optional[list[Test]] = None,
                 grades: Optional[list[Grade]] = None) -> None:
        self._tests: list[Test] = list(tests or [])
        self._grades: list[Grade] = list(grades or [])

    def list_tests(self, school_year=None, class_group=None) -> list[Test]:
        return filter_tests(self._tests, school_year, class_group)

    def get_test(self, test_id: str) -> Optional[Test]:
        return next((t for t in self._tests if t.id == test_id), None)

    def add_test(self, test: Test) -> None:
        if self.get_test(test.id) is not None:
            raise ValueError(f"Test-ID bereits vergeben: {test.id}")
        self._tests.append(test)

    def replace_test(self, test: Test) -> None:
        self._tests = [test if t.id == test.id else t for t in self._tests]

    def remove_test_cascade(self, test_id: str) -> bool:
        if self.get_test(test_id) is None:
            return False
        self._grades = [g for g in self._grades if g.test_id != test_id]
        self._tests = [t for t in self._tests if t.id != test_id]
        return True

    def list_grades(self, test_id=None, school_year=None, student_id=None) -> list[Grade]:
        return filter_grades(self._grades, test_id, school_year, student_id)

    def upsert_grade(self, grade: Grade) -> None:
        self._grades = merge_grade(self._grades, grade)

    def replace_grades_for_test(self, test_id: str, grades: list[Grade]) -> None:
        self._grades = [g for g in self._grades if g.test_id != test_id] + list(grades)
