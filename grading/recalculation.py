"""Noten eines Tests aufbauen und nach Änderungen am Test neu berechnen."""

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Optional

from grading.engine import (
    calculate_composite_grade,
    calculate_scaled_grade,
    final_grade,
    sanitize_points,
)
from models.assessment import Test
from models.grade import ElementGrade, Grade

logger = logging.getLogger(__name__)


def calculate_for_test(test: Test, points_earned: Optional[float] = None,
                       element_grades: Sequence[ElementGrade] = ()) -> float:
    """Berechnete (ungerundete) Note je nach Bewertungsmodell des Tests."""
    scoring = test.scoring
    if test.is_scaled:
        if points_earned is None:
            return 0.0
        return calculate_scaled_grade(
            points_earned, scoring.max_points, scoring.n_term,
            scoring.r_term, scoring.calculation_mode,
        )
    return calculate_composite_grade(
        element_grades, scoring.elements, scoring.custom_formula,
    )


def build_grade(
    test: Test,
    student_id: int,
    *,
    points_earned: Optional[float] = None,
    element_grades: Sequence[ElementGrade] = (),
    manual_override: Optional[float] = None,
    existing: Optional[Grade] = None,
    now: Optional[datetime] = None,
) -> Grade:
    """Erzeugt die gespeicherte Note für eine Eingabe.

    Das Schuljahr wird vom Test übernommen; ID und Erstellzeit einer
    bestehenden Note bleiben erhalten.
    """
    now = now or datetime.now(timezone.utc)
    if test.is_scaled:
        points = None if points_earned is None else sanitize_points(points_earned)
        elements: list[ElementGrade] = []
    else:
        points = None
        elements = list(element_grades)

    calculated = calculate_for_test(test, points, elements)
    data = dict(
        test_id=test.id,
        student_id=student_id,
        school_year=test.school_year,
        points_earned=points,
        element_grades=elements,
        manual_override=manual_override,
        calculated_grade=calculated,
        final_grade=final_grade(calculated, manual_override),
        updated_at=now,
    )
    if existing is not None:
        data.update(id=existing.id, created_at=existing.created_at)
    else:
        data.update(created_at=now)
    return Grade(**data)


def recalculate_grade(test: Test, grade: Grade, now: datetime) -> Grade:
    """Neue Note aus den gespeicherten Rohdaten; manuelle Überschreibung bleibt."""
    if test.is_scaled:
        update = {"element_grades": []}
        calculated = calculate_for_test(test, points_earned=grade.points_earned)
    else:
        update = {"points_earned": None}
        calculated = calculate_for_test(test, element_grades=grade.element_grades)

    update.update(
        calculated_grade=calculated,
        final_grade=final_grade(calculated, grade.manual_override),
        updated_at=now,
    )
    return grade.model_copy(update=update)


def recalculate_grades(test: Test, grades: Iterable[Grade],
                       now: Optional[datetime] = None) -> list[Grade]:
    """Berechnet alle Noten von ``test`` neu und gibt eine neue Liste zurück.

    Noten anderer Tests werden unverändert übernommen. Die Eingabe wird
    nicht verändert; der Aufrufer schreibt das Ergebnis in einem Schritt.
    """
    now = now or datetime.now(timezone.utc)
    result: list[Grade] = []
    count = 0
    for grade in grades:
        if grade.test_id == test.id:
            result.append(recalculate_grade(test, grade, now))
            count += 1
        else:
            result.append(grade)
    logger.info(f"Test {test.id}: {count} Noten neu berechnet")
    return result


def scoring_changed(old: Test, new: Test) -> bool:
    """True wenn sich ein Parameter des Bewertungsmodells geändert hat."""
    return old.scoring != new.scoring
