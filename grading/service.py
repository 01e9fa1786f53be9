"""Anwendungslogik für Tests und Noten über einem ``GradeRepository``."""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from grading.recalculation import build_grade, recalculate_grades, scoring_changed
from grading.statistics import PASS_THRESHOLD, compute_test_statistics, weighted_average
from models.assessment import Test
from models.grade import ElementGrade, Grade, GradeStatistics
from storage.base import GradeRepository

logger = logging.getLogger(__name__)


class GradeServiceError(Exception):
    """Ungültige Operation auf Tests oder Noten."""


class UnknownTestError(GradeServiceError):
    def __init__(self, test_id: str) -> None:
        super().__init__(f"Test nicht gefunden: {test_id}")
        self.test_id = test_id


class GradeService:
    """Speichern, Neuberechnen, Löschen und Auswerten von Noten."""

    def __init__(self, store: GradeRepository,
                 pass_threshold: float = PASS_THRESHOLD) -> None:
        self.store = store
        self.pass_threshold = pass_threshold

    def _require_test(self, test_id: str) -> Test:
        test = self.store.get_test(test_id)
        if test is None:
            raise UnknownTestError(test_id)
        return test

    # ─── Tests ───

    def create_test(self, test: Test) -> Test:
        self.store.add_test(test)
        logger.info(f"Test angelegt: {test.id} ({', '.join(test.class_groups)})")
        return test

    def update_test(self, test_id: str, **changes: Any) -> Test:
        """Übernimmt Änderungen und berechnet bei geänderter Bewertung alle Noten neu.

        Die neuen Noten werden erst vollständig berechnet und dann in einem
        einzigen Schreibvorgang gespeichert.
        """
        old = self._require_test(test_id)
        merged = old.model_dump()
        merged.update(changes)
        merged.update(id=test_id, updated_at=datetime.now(timezone.utc))
        try:
            updated = Test.model_validate(merged)
        except ValidationError as e:
            raise GradeServiceError(f"Ungültige Änderung an Test {test_id}:\n{e}") from e

        if scoring_changed(old, updated):
            grades = self.store.list_grades(test_id=test_id)
            recalculated = recalculate_grades(updated, grades)
            self.store.replace_test(updated)
            self.store.replace_grades_for_test(test_id, recalculated)
        else:
            self.store.replace_test(updated)
        return updated

    def delete_test(self, test_id: str) -> None:
        if not self.store.remove_test_cascade(test_id):
            raise UnknownTestError(test_id)

    # ─── Noten ───

    def save_grade(self, test_id: str, student_id: int, points_earned: float,
                   manual_override: Optional[float] = None) -> Grade:
        """Speichert die Punktzahl eines Schülers für einen CvTE-Test."""
        test = self._require_test(test_id)
        if not test.is_scaled:
            raise GradeServiceError(f"Test {test_id} ist kein CvTE-Test.")
        grade = build_grade(
            test, student_id,
            points_earned=points_earned,
            manual_override=manual_override,
            existing=self.store.get_grade(test_id, student_id),
        )
        self.store.upsert_grade(grade)
        return grade

    def save_composite_grade(self, test_id: str, student_id: int,
                             element_grades: Sequence[ElementGrade],
                             manual_override: Optional[float] = None) -> Grade:
        """Speichert Elementpunkte eines Schülers für einen zusammengesetzten Test."""
        test = self._require_test(test_id)
        if not test.is_composite:
            raise GradeServiceError(f"Test {test_id} ist kein zusammengesetzter Test.")
        known = {e.id for e in test.scoring.elements}
        unknown = sorted({g.element_id for g in element_grades} - known)
        if unknown:
            raise GradeServiceError(
                f"Unbekannte Elemente für Test {test_id}: {', '.join(unknown)}"
            )
        grade = build_grade(
            test, student_id,
            element_grades=element_grades,
            manual_override=manual_override,
            existing=self.store.get_grade(test_id, student_id),
        )
        self.store.upsert_grade(grade)
        return grade

    # ─── Auswertung ───

    def test_statistics(self, test_id: str, school_year: Optional[str] = None) -> GradeStatistics:
        self._require_test(test_id)
        grades = self.store.list_grades(test_id=test_id, school_year=school_year)
        return compute_test_statistics(grades, self.pass_threshold)

    def student_average(self, student_id: int, class_group: str,
                        school_year: str) -> Optional[float]:
        """Gewichteter Durchschnitt eines Schülers über alle Tests einer Klasse."""
        tests = {t.id: t for t in self.store.list_tests(school_year, class_group)}
        grades = [
            g for g in self.store.list_grades(school_year=school_year, student_id=student_id)
            if g.test_id in tests
        ]
        return weighted_average(grades, tests)
