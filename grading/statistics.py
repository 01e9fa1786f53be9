"""Kennzahlen pro Test und gewichteter Durchschnitt über mehrere Tests."""

from collections.abc import Iterable, Mapping
from typing import Optional

from grading.engine import round_half_up
from models.assessment import Test
from models.grade import Grade, GradeStatistics

PASS_THRESHOLD = 5.5


def compute_test_statistics(grades: Iterable[Grade],
                            threshold: float = PASS_THRESHOLD) -> GradeStatistics:
    """Durchschnitt (1 Stelle), Höchst-/Tiefstnote und Anzahl unter/ab ``threshold``.

    Leere Eingabe ergibt eine Statistik mit lauter Nullen.
    """
    finals = [g.final_grade for g in grades]
    if not finals:
        return GradeStatistics()

    return GradeStatistics(
        average=round_half_up(sum(finals) / len(finals), 1),
        highest=max(finals),
        lowest=min(finals),
        under_threshold=sum(1 for f in finals if f < threshold),
        above_threshold=sum(1 for f in finals if f >= threshold),
        total_graded=len(finals),
    )


def weighted_average(grades: Iterable[Grade],
                     tests: Mapping[str, Test]) -> Optional[float]:
    """Durchschnitt der Endnoten, gewichtet mit dem Testgewicht.

    Unbekannte Tests zählen einfach. None wenn keine Noten vorliegen.
    """
    total = 0.0
    total_weight = 0.0
    for grade in grades:
        test = tests.get(grade.test_id)
        weight = test.weight if test is not None and test.weight > 0 else 1.0
        total += grade.final_grade * weight
        total_weight += weight

    if total_weight == 0:
        return None
    return total / total_weight
